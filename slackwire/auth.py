
from . import _GenericAPI, DEFAULT_URL

_API = {
    "test": {
        "url": "auth.test",
        "params": {},
        "parse_data": ("url", "team", "user", "team_id", "user_id")
    },
}

_OAUTH_API = {
    "access": {
        "url": "oauth.access",
        "auth": False,
        "retry": False,
        "params": {
            "client_id": { "type": "string", "is_required": True },
            "client_secret": { "type": "string", "is_required": True },
            "code": { "type": "string", "is_required": True },
            "redirect_uri": { "type": "string" },
        },
        "parse_data": ("access_token", "scope", "team_name", "team_id", "incoming_webhook", "bot")
    },
}

class AuthAPI(_GenericAPI):

    def __init__(self, token, base_url=DEFAULT_URL, http_client=None):
        super().__init__(token, _API, base_url, http_client)


class OAuthAPI(_GenericAPI):

    def __init__(self, base_url=DEFAULT_URL, http_client=None):
        super().__init__(None, _OAUTH_API, base_url, http_client)
