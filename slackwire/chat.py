
from . import _GenericAPI, DEFAULT_URL

_API = {
    "post_message": {
        "url": "chat.postMessage",
        "retry": False,
        "params": {
            "channel": { "type": "string", "is_required": True },
            "text": { "type": "string" },
            "username": { "type": "string" },
            "attachments": { "type": "json" },
            "as_user": { "type": "bool_string" },
            "thread_ts": { "type": "string" },
            "parse": { "type": "string", "choices": ("full", "none") },
            "link_names": { "type": "int" },
            "unfurl_links": { "type": "bool_string" },
            "unfurl_media": { "type": "bool_string" },
            "icon_url": { "type": "string" },
            "icon_emoji": { "type": "string" },
        },
        "parse_data": ("channel", "ts", "message")
    },
}

class ChatAPI(_GenericAPI):

    def __init__(self, token, base_url=DEFAULT_URL, http_client=None):
        super().__init__(token, _API, base_url, http_client)
