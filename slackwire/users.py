
from . import _GenericAPI, DEFAULT_URL

_API = {
    "info": {
        "url": "users.info",
        "params": {
            "user": { "type": "string", "is_required": True },
        },
        "parse_data": ("user", )
    },
    "list": {
        "url": "users.list",
        "params": {
            "presence": { "type": "bool_string" },
        },
        "parse_data": ("members", )
    },
    "invite": {
        "url": "users.admin.invite",
        "retry": False,
        "params": {
            "email": { "type": "string", "is_required": True },
            "first_name": { "type": "string" },
            "last_name": { "type": "string" },
            "channels": { "type": "comma_string" },
            "restricted": { "type": "bool" },
            "ultra_restricted": { "type": "bool" },
            "set_active": { "type": "bool" },
        },
    },
}

class UsersAPI(_GenericAPI):

    def __init__(self, token, base_url=DEFAULT_URL, http_client=None):
        super().__init__(token, _API, base_url, http_client)
