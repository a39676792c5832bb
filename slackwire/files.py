
from . import _GenericAPI, DEFAULT_URL
from .api_wrapper import RestAPI

_API = {
    "upload": {
        "url": "files.upload",
        "request_body_type": RestAPI.MULTIPART,
        # the body is streamed from the file object, it cannot be replayed
        "retry": False,
        "params": {
            "file": { "type": "file", "is_required": True },
            "filename": { "type": "string", "is_required": True },
            "title": { "type": "string" },
            "filetype": { "type": "string" },
            "initial_comment": { "type": "string" },
            "channels": { "type": "comma_string" },
        },
        "parse_data": ("file", )
    },
}

class FilesAPI(_GenericAPI):

    def __init__(self, token, base_url=DEFAULT_URL, http_client=None):
        super().__init__(token, _API, base_url, http_client)
