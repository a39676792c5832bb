"""
Decoding of RTM frames.

Every frame carries a "type" discriminator but the remaining fields depend on
it: most events are flat, while channel and user events nest a whole channel or
user object. decode() reads the discriminator once, picks the parser for that
variant and always produces an Event, flattening nested objects so consumers
only deal with one shape.
"""
import json

CHANNEL_EVENTS = ("channel_created", "channel_joined", "channel_rename",
    "im_created", "group_joined", "group_left", "group_rename")
USER_EVENTS = ("user_change", "team_join")

ERROR = "error"
MESSAGE = "message"
GOODBYE = "goodbye"


class EventParseError(ValueError):
    pass


class EventEdit(object):

    def __init__(self, user=None, ts=None):
        self.user = user
        self.ts = ts

    def __repr__(self):
        return "EventEdit(user={0!r}, ts={1!r})".format(self.user, self.ts)


class EventError(object):
    """The error carried by an event

    is_parse_failure is True when the frame could not be decoded, False when
    the server (or the connection) reported the error.
    """

    def __init__(self, code=0, msg="", is_parse_failure=False):
        self.code = code
        self.msg = msg
        self.is_parse_failure = is_parse_failure

    def __repr__(self):
        return "EventError(code={0!r}, msg={1!r}, is_parse_failure={2!r})".format(
            self.code, self.msg, self.is_parse_failure)


class Event(object):
    """A single RTM event, whatever its shape on the wire
    """

    def __init__(self, kind="", channel=None, user=None, text=None, ts=None, context=None):
        self.kind = kind
        self.channel = channel
        self.user = user
        self.text = text
        self.ts = ts
        self.hidden = False
        self.subtype = None
        self.edited = None
        self.message = None
        self.deleted_ts = None
        self.topic = None
        self.purpose = None
        self.name = None
        self.old_name = None
        self.members = []
        self.upload = False
        self.file = None
        self.comment = None
        self.reactions = []
        self.reply_to = None
        self.ok = None
        self.error = None
        self.context = context

    @property
    def is_error(self):
        return self.kind == ERROR

    @property
    def is_parse_failure(self):
        return self.is_error and self.error is not None and self.error.is_parse_failure

    @classmethod
    def parse_failure(cls, msg, context=None):
        event = cls(kind=ERROR, context=context)
        event.error = EventError(0, msg, is_parse_failure=True)
        return event

    def __repr__(self):
        if self.is_error:
            return "Event(kind='error', error={0!r})".format(self.error)
        return "Event(kind={0!r}, channel={1!r}, user={2!r}, ts={3!r}, text={4!r})".format(
            self.kind, self.channel, self.user, self.ts, self.text)


def _get(payload, key, types, default=None):
    value = payload.get(key)
    if value is None:
        return default
    if not isinstance(value, types):
        raise EventParseError("field {0!r} has an unexpected type {1}".format(
            key, type(value).__name__))
    return value


def _string(payload, key):
    return _get(payload, key, str)


def _object(payload, key):
    return _get(payload, key, dict)


def _parse_edit(payload):
    edited = _object(payload, "edited")
    if edited is None:
        return None
    return EventEdit(user=_string(edited, "user"), ts=_string(edited, "ts"))


def _parse_error(payload):
    error = payload.get("error")
    if error is None:
        return None
    if isinstance(error, str):
        return EventError(0, error)
    if not isinstance(error, dict):
        raise EventParseError("field 'error' has an unexpected type {0}".format(
            type(error).__name__))
    code = _get(error, "code", int, 0)
    return EventError(code, _string(error, "msg") or "")


def _parse_message(payload, event):
    """The generic parser, every flat field is copied over
    """
    event.channel = _string(payload, "channel")
    event.user = _string(payload, "user")
    event.text = _string(payload, "text")
    event.ts = _string(payload, "ts")
    event.hidden = _get(payload, "hidden", bool, False)
    event.subtype = _string(payload, "subtype")
    event.edited = _parse_edit(payload)
    event.deleted_ts = _string(payload, "deleted_ts")
    event.topic = _string(payload, "topic")
    event.purpose = _string(payload, "purpose")
    event.name = _string(payload, "name")
    event.old_name = _string(payload, "old_name")
    event.members = _get(payload, "members", list, [])
    event.upload = _get(payload, "upload", bool, False)
    event.file = _object(payload, "file")
    event.comment = _object(payload, "comment")
    event.reactions = _get(payload, "reactions", list, [])
    event.reply_to = _get(payload, "reply_to", int)
    event.ok = _get(payload, "ok", bool)
    event.error = _parse_error(payload)

    nested = _object(payload, "message")
    if nested is not None:
        event.message = Event(kind=_string(nested, "type") or "", context=event.context)
        _parse_message(nested, event.message)
    return event


def _parse_channel_event(payload, event):
    """channel_created and friends nest the whole channel object
    """
    channel = payload.get("channel")
    if isinstance(channel, dict):
        event.channel = _string(channel, "id")
        event.user = _string(channel, "creator") or _string(channel, "user") or _string(payload, "user")
        event.name = _string(channel, "name")
    elif isinstance(channel, str):
        event.channel = channel
        event.user = _string(payload, "user")
        event.name = _string(payload, "name")
    elif channel is not None:
        raise EventParseError("field 'channel' has an unexpected type {0}".format(
            type(channel).__name__))
    event.ts = _string(payload, "ts") or _string(payload, "event_ts")
    return event


def _parse_user_event(payload, event):
    """user_change and team_join nest the whole user object
    """
    user = _object(payload, "user")
    if user is not None:
        event.user = _string(user, "id")
        event.name = _string(user, "name")
    event.ts = _string(payload, "event_ts")
    return event


_PARSERS = {}
_PARSERS.update({ kind: _parse_channel_event for kind in CHANNEL_EVENTS })
_PARSERS.update({ kind: _parse_user_event for kind in USER_EVENTS })


def parser_for(kind):
    return _PARSERS.get(kind, _parse_message)


def decode(frame, context=None):
    """Decode one raw frame into (Event, is_parse_failure)

    A frame that cannot be decoded still produces an Event, of kind "error"
    with error.is_parse_failure set.
    """
    if isinstance(frame, bytes):
        frame = frame.decode("utf-8", errors="replace")
    if frame is None or not frame.strip():
        return Event.parse_failure("unexpected EOF", context=context), True

    try:
        payload = json.loads(frame)
        if not isinstance(payload, dict):
            raise EventParseError("frame is not an object")
        kind = _get(payload, "type", str, "")
        event = Event(kind=kind, context=context)
        parser_for(kind)(payload, event)
    except (ValueError, RecursionError) as e:
        return Event.parse_failure("{0} - {1}".format(e, frame), context=context), True

    if event.is_error and event.error is None:
        event.error = EventError(0, "unknown error")
    return event, False
