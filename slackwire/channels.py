"""
Channels, private groups and direct messages share most of their methods. The
definitions below are shared between the three families; only the url prefix
and a handful of family specific methods differ.
"""

from . import _GenericAPI, DEFAULT_URL

_CHANNEL = { "type": "string", "is_required": True }

_COMMON = {
    "history": {
        "url": "history",
        "params": {
            "channel": _CHANNEL,
            "latest": { "type": "string" },
            "oldest": { "type": "string" },
            "inclusive": { "type": "bool" },
            "count": { "type": "int" },
            "unreads": { "type": "bool" },
        },
        "parse_data": ("latest", "messages", "has_more")
    },
    "mark": {
        "url": "mark",
        "params": {
            "channel": _CHANNEL,
            "ts": { "type": "string", "is_required": True },
        },
    },
}

_SHARED = {
    "archive": {
        "url": "archive",
        "params": { "channel": _CHANNEL },
    },
    "unarchive": {
        "url": "unarchive",
        "params": { "channel": _CHANNEL },
    },
    "kick": {
        "url": "kick",
        "params": {
            "channel": _CHANNEL,
            "user": { "type": "string", "is_required": True },
        },
    },
    "leave": {
        "url": "leave",
        "params": { "channel": _CHANNEL },
    },
    "rename": {
        "url": "rename",
        "params": {
            "channel": _CHANNEL,
            "name": { "type": "string", "is_required": True },
        },
        "parse_data": ("channel", )
    },
    "set_purpose": {
        "url": "setPurpose",
        "params": {
            "channel": _CHANNEL,
            "purpose": { "type": "string", "is_required": True },
        },
        "parse_data": ("purpose", )
    },
    "set_topic": {
        "url": "setTopic",
        "params": {
            "channel": _CHANNEL,
            "topic": { "type": "string", "is_required": True },
        },
        "parse_data": ("topic", )
    },
    "invite": {
        "url": "invite",
        "params": {
            "channel": _CHANNEL,
            "user": { "type": "string", "is_required": True },
        },
    },
    "list": {
        "url": "list",
        "params": {
            "exclude_archived": { "type": "bool" },
            "exclude_members": { "type": "bool" },
        },
    },
}

_OPEN_CLOSE = {
    "close": {
        "url": "close",
        "params": { "channel": _CHANNEL },
        "parse_data": ("no_op", "already_closed")
    },
    "open": {
        "url": "open",
        "params": { "channel": _CHANNEL },
        "parse_data": ("no_op", "already_open", "channel")
    },
}

_CHANNELS_ONLY = {
    "create": {
        "url": "create",
        "retry": False,
        "params": { "name": { "type": "string", "is_required": True } },
        "parse_data": ("channel", )
    },
    "info": {
        "url": "info",
        "params": { "channel": _CHANNEL },
        "parse_data": ("channel", )
    },
    "join": {
        "url": "join",
        "params": { "name": { "type": "string", "is_required": True } },
        "parse_data": ("channel", "already_in_channel")
    },
}

_GROUPS_ONLY = {
    "create": {
        "url": "create",
        "retry": False,
        "params": { "name": { "type": "string", "is_required": True } },
        "parse_data": ("group", )
    },
    "create_child": {
        "url": "createChild",
        "retry": False,
        "params": { "channel": _CHANNEL },
        "parse_data": ("group", )
    },
    "info": {
        "url": "info",
        "params": { "channel": _CHANNEL },
        "parse_data": ("group", )
    },
}


def _definitions(prefix, *families):
    definitions = {}
    for family in families:
        for name, definition in family.items():
            definition = dict(definition)
            definition["url"] = "{0}.{1}".format(prefix, definition["url"])
            definitions[name] = definition
    return definitions


class ChannelsAPI(_GenericAPI):

    def __init__(self, token, base_url=DEFAULT_URL, http_client=None):
        super().__init__(token, _definitions("channels", _COMMON, _SHARED, _CHANNELS_ONLY),
            base_url, http_client)


class GroupsAPI(_GenericAPI):

    def __init__(self, token, base_url=DEFAULT_URL, http_client=None):
        super().__init__(token, _definitions("groups", _COMMON, _SHARED, _OPEN_CLOSE, _GROUPS_ONLY),
            base_url, http_client)


class IMAPI(_GenericAPI):

    def __init__(self, token, base_url=DEFAULT_URL, http_client=None):
        super().__init__(token, _definitions("im", _COMMON, _OPEN_CLOSE, {
            "list": { "url": "list", "params": {}, "parse_data": ("ims", ) },
        }), base_url, http_client)
