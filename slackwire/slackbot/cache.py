
import tornado.gen

from .events import CHANNEL_EVENTS, USER_EVENTS


class Cache(object):
    """Names and ids of the team, scoped to one bot.

    Filled from the rtm.start reply, kept current from the event stream and
    refreshable through the API.
    """

    def __init__(self, slack):
        self.slack = slack
        self.self_id = None
        self.team = None
        self.channel_name_to_id = {}
        self.channel_is_in = set()
        self.channel_id_to_name = {}
        self.user_name_to_id = {}
        self.user_id_to_name = {}

    def get_channel_id_from_name(self, name):
        return self.channel_name_to_id.get(name)

    def get_channel_name_from_id(self, id):
        return self.channel_id_to_name.get(id)

    def get_user_id_from_name(self, name):
        return self.user_name_to_id.get(name)

    def get_user_name_from_id(self, id):
        return self.user_id_to_name.get(id)

    def _set_channel(self, id, name, is_member=True):
        if not id or not name:
            return
        old_name = self.channel_id_to_name.get(id)
        if old_name is not None and self.channel_name_to_id.get(old_name) == id:
            self.channel_name_to_id.pop(old_name)
        self.channel_id_to_name[id] = name
        self.channel_name_to_id[name] = id
        if is_member:
            self.channel_is_in.add(id)

    def _set_user(self, id, name):
        if not id or not name:
            return
        old_name = self.user_id_to_name.get(id)
        if old_name is not None and self.user_name_to_id.get(old_name) == id:
            self.user_name_to_id.pop(old_name)
        self.user_id_to_name[id] = name
        self.user_name_to_id[name] = id

    def load(self, reply):
        """Load everything from a rtm.start reply
        """
        self.self_id = (getattr(reply, "self", None) or {}).get("id")
        self.team = getattr(reply, "team", None)
        for user in getattr(reply, "users", None) or []:
            self._set_user(user.get("id"), user.get("name"))
        for channel in getattr(reply, "channels", None) or []:
            self._set_channel(channel.get("id"), channel.get("name"), channel.get("is_member", False))
        for group in getattr(reply, "groups", None) or []:
            self._set_channel(group.get("id"), group.get("name"))
        for im in getattr(reply, "ims", None) or []:
            self._set_channel(im.get("id"), self.user_id_to_name.get(im.get("user")))

    def observe(self, event):
        if event.kind in CHANNEL_EVENTS:
            if event.kind == "group_left":
                self.channel_is_in.discard(event.channel)
            elif event.kind == "im_created":
                self._set_channel(event.channel, self.user_id_to_name.get(event.user))
            else:
                self._set_channel(event.channel, event.name,
                    is_member=event.kind != "channel_created" or event.user == self.self_id)
        elif event.kind in USER_EVENTS:
            self._set_user(event.user, event.name)

    @tornado.gen.coroutine
    def reload_channels_cache(self):
        data = yield self.slack.api.channels.list(exclude_members=True)
        self.channel_name_to_id = { channel["name"]: channel["id"] for channel in data.channels }
        self.channel_id_to_name = { channel["id"]: channel["name"] for channel in data.channels }
        self.channel_is_in = { channel["id"] for channel in data.channels if channel.get("is_member") }

    @tornado.gen.coroutine
    def reload_users_cache(self):
        data = yield self.slack.api.users.list(presence=False)
        self.user_name_to_id = { member["name"]: member["id"] for member in data.members }
        self.user_id_to_name = { member["id"]: member["name"] for member in data.members }

    @tornado.gen.coroutine
    def fetch_all(self):
        yield self.reload_users_cache()
        yield self.reload_channels_cache()
