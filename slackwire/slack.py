
import types
import urllib.parse

import tornado.gen

from . import channels, users, team, chat, rtm, auth, reactions, emoji, files
from . import DEFAULT_URL, build_api, invoke
from .errors import SlackValidationError

_ESCAPES = (("&", "&amp;"), ("<", "&lt;"), (">", "&gt;"))


def _clean_base_url(base_url):
    base_url = base_url or DEFAULT_URL
    parsed = urllib.parse.urlparse(base_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise SlackValidationError("bad_url: Invalid URL [{0}]".format(base_url))
    if not base_url.endswith("/"):
        base_url += "/"
    return base_url


class Slack(object):
    """Client for the Slack Web API.

    token           the bearer token sent with every call
    base_url        the API root, every method name is appended to it
    http_client     a tornado.httpclient.AsyncHTTPClient (default: the shared one)

    Method groups live under ``self.api`` (``self.api.chat.post_message(...)``);
    every call is a coroutine returning the decoded response namespace or
    raising SlackAPIError.
    """

    def __init__(self, token, base_url=DEFAULT_URL, http_client=None):
        if not token:
            raise SlackValidationError("no_token: You must provide a Slack token to use the API")
        self.token = token
        self.base_url = _clean_base_url(base_url)
        self.http_client = http_client

        args = (token, self.base_url, http_client)
        self.api = types.SimpleNamespace()
        self.api.channels = channels.ChannelsAPI(*args)
        self.api.groups = channels.GroupsAPI(*args)
        self.api.im = channels.IMAPI(*args)
        self.api.users = users.UsersAPI(*args)
        self.api.team = team.TeamAPI(*args)
        self.api.chat = chat.ChatAPI(*args)
        self.api.rtm = rtm.RealTimeMessagingAPI(*args)
        self.api.auth = auth.AuthAPI(*args)
        self.api.reactions = reactions.ReactionsAPI(*args)
        self.api.emoji = emoji.EmojiAPI(*args)
        self.api.files = files.FilesAPI(*args)

    def invoke(self, method_name, **params):
        """Call any method by name, e.g. invoke("auth.test")

        No parameter schema is applied, the token is always added.
        """
        api = build_api({ "url": method_name, "strict": False, "params": {} },
            self.base_url, token=self.token, http_client=self.http_client)
        return invoke(api, **params)

    def conversation_api(self, channel):
        """The method group matching a channel id: C -> channels, G -> groups, D -> im
        """
        if not channel:
            raise SlackValidationError("channel is required")
        prefix = channel[0]
        if prefix == "G":
            return self.api.groups
        if prefix == "D":
            return self.api.im
        return self.api.channels

    def mark(self, channel, ts):
        """Move the read marker of a channel, group or IM to ts
        """
        return self.conversation_api(channel).mark(channel=channel, ts=ts)

    def history(self, channel, **params):
        return self.conversation_api(channel).history(channel=channel, **params)

    def post_message(self, channel, text, escape=False, attachments=None, **params):
        if escape and text is not None:
            for char, replacement in _ESCAPES:
                text = text.replace(char, replacement)
        return self.api.chat.post_message(channel=channel, text=text,
            attachments=attachments or None, **params)

    def _check_reaction_target(self, name, file, file_comment, channel, timestamp):
        if not name:
            raise SlackValidationError("Please provide the emoji name")
        if not file and not file_comment and not (channel and timestamp):
            raise SlackValidationError("Please provide file or file_comment or both channel and timestamp")

    def add_reaction(self, name, file=None, file_comment=None, channel=None, timestamp=None):
        self._check_reaction_target(name, file, file_comment, channel, timestamp)
        return self.api.reactions.add(name=name, file=file, file_comment=file_comment,
            channel=channel, timestamp=timestamp)

    def remove_reaction(self, name, file=None, file_comment=None, channel=None, timestamp=None):
        self._check_reaction_target(name, file, file_comment, channel, timestamp)
        return self.api.reactions.remove(name=name, file=file, file_comment=file_comment,
            channel=channel, timestamp=timestamp)

    def upload(self, fileobj, filename, title=None, filetype=None, initial_comment=None,
            channels=None):
        """Upload a file, optionally sharing it on channels.

        The file object is streamed, it is not read into memory.
        """
        if not filename:
            raise SlackValidationError("You must specify the filename for the upload")
        return self.api.files.upload(file=fileobj, filename=filename, title=title,
            filetype=filetype, initial_comment=initial_comment, channels=channels or None)

    @staticmethod
    def oauth_access(client_id, client_secret, code, redirect_uri=None, base_url=DEFAULT_URL,
            http_client=None):
        """Exchange an OAuth code for an access token (no token is sent)
        """
        if not client_id or not client_secret or not code:
            raise SlackValidationError("bad_oauth: Bad OAuth credentials provided")
        api = auth.OAuthAPI(_clean_base_url(base_url), http_client)
        return api.access(client_id=client_id, client_secret=client_secret, code=code,
            redirect_uri=redirect_uri)

    @classmethod
    @tornado.gen.coroutine
    def from_oauth(cls, client_id, client_secret, code, redirect_uri=None, base_url=DEFAULT_URL,
            http_client=None):
        data = yield cls.oauth_access(client_id, client_secret, code, redirect_uri=redirect_uri,
            base_url=base_url, http_client=http_client)
        return cls(data.access_token, base_url=base_url, http_client=http_client)
