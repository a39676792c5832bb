
from . import _GenericAPI, DEFAULT_URL

_API = {
    "start": {
        "url": "rtm.start",
        "params": {
            "simple_latest": { "type": "bool_string" },
            "no_unreads": { "type": "bool_string" },
        },
        "parse_data": ("url", "self", "team", "latest_event_ts", "channels",
            "groups", "ims", "users", "bots")
    },
}

class RealTimeMessagingAPI(_GenericAPI):

    def __init__(self, token, base_url=DEFAULT_URL, http_client=None):
        super().__init__(token, _API, base_url, http_client)
