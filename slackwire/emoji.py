
from . import _GenericAPI, DEFAULT_URL

_API = {
    "list": {
        "url": "emoji.list",
        "params": {},
        "parse_data": ("emoji", )
    },
}

class EmojiAPI(_GenericAPI):

    def __init__(self, token, base_url=DEFAULT_URL, http_client=None):
        super().__init__(token, _API, base_url, http_client)
