
from . import _GenericAPI, DEFAULT_URL

_TARGET = {
    "file": { "type": "string" },
    "file_comment": { "type": "string" },
    "channel": { "type": "string" },
    "timestamp": { "type": "string" },
}

_API = {
    "add": {
        "url": "reactions.add",
        "retry": False,
        "params": dict(_TARGET, name={ "type": "string", "is_required": True }),
    },
    "remove": {
        "url": "reactions.remove",
        "retry": False,
        "params": dict(_TARGET, name={ "type": "string", "is_required": True }),
    },
    "get": {
        "url": "reactions.get",
        "params": dict(_TARGET, full={ "type": "bool_string" }),
        "parse_data": ("type", "channel", "message", "file", "comment")
    },
    "list": {
        "url": "reactions.list",
        "params": {
            "user": { "type": "string" },
            "full": { "type": "bool_string" },
            "count": { "type": "int" },
            "page": { "type": "int" },
        },
        "parse_data": ("items", "paging")
    },
}

class ReactionsAPI(_GenericAPI):

    def __init__(self, token, base_url=DEFAULT_URL, http_client=None):
        super().__init__(token, _API, base_url, http_client)
