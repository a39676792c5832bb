
import uuid
import logging
import datetime

import tornado.gen
import tornado.util
import tornado.locks
import tornado.queues
import tornado.ioloop

from ..errors import SlackError
from .events import decode, GOODBYE
from .cache import Cache
from .markers import ReadMarkerBatcher
from .transport import RTMTransport


class SlackBot(object):
    """Keep an RTM session alive and hand out its events in order.

    slack                   the Slack client
    origin                  Origin header sent on the websocket handshake
    context                 opaque value attached to every event
    reconnect_delay         seconds between two reconnect attempts
    mark_interval           seconds between two read marker flushes
    flush_on_stop           flush pending read markers when stopping
    deliver_parse_failures  hand frames that could not be decoded to consumers
    queue_events            keep events for read_event(). The default (None)
                            queues only when no listener is registered at
                            start()
    ping_interval           websocket keepalive interval in seconds
    transport               replace the websocket transport

    Events are delivered to listeners and, unless disabled, to a queue that
    outlives reconnects. The stream is only torn down on end-of-stream, a
    server error event or goodbye; parse failures never trigger a reconnect.
    """

    def __init__(self, slack, origin=None, context=None, reconnect_delay=60, mark_interval=60,
            flush_on_stop=False, deliver_parse_failures=True, queue_events=None,
            ping_interval=30, transport=None):
        self.slack = slack
        self.origin = origin
        self.context = context
        self.reconnect_delay = reconnect_delay
        self.flush_on_stop = flush_on_stop
        self.deliver_parse_failures = deliver_parse_failures
        self.transport = transport or RTMTransport(slack, ping_interval=ping_interval)
        self.cache = Cache(slack)
        self.markers = ReadMarkerBatcher(slack, interval=mark_interval)
        self.queue_events = queue_events
        self.events = tornado.queues.Queue() if queue_events else None

        self.listeners = {}

        self._inbound = None
        self._dispatcher = None
        self._stopping = False
        self._stopped = tornado.locks.Event()

    @property
    def connected(self):
        return self.transport.connection is not None

    @tornado.gen.coroutine
    def start(self):
        """Connect and start dispatching, a failure to connect is raised

        A stopped bot can be started again.
        """
        if self._dispatcher is not None and not self._dispatcher.done():
            raise SlackError("SlackBot is already running")
        self._stopping = False
        self._stopped.clear()
        if self.events is None and (self.queue_events or
                (self.queue_events is None and not self.listeners)):
            self.events = tornado.queues.Queue()

        reply = yield self._connect()
        self.markers.start()
        self._dispatcher = self._dispatch_loop()
        return reply

    @tornado.gen.coroutine
    def stop(self):
        if self._stopping:
            return
        self._stopping = True
        self._stopped.set()
        yield self.markers.stop(flush=self.flush_on_stop)
        self.transport.stop()
        if self._inbound is not None:
            self._inbound.put_nowait(None)
        if self._dispatcher is not None:
            yield self._dispatcher

    def send(self, channel, text):
        return self.transport.send(channel, text)

    def read_event(self, timeout=None):
        """Wait for the next event

        timeout is a datetime.timedelta or an absolute IOLoop deadline.
        """
        if self.events is None:
            raise SlackError("queue_events is disabled, use add_event_listener")
        return self.events.get(timeout)

    @tornado.gen.coroutine
    def _connect(self):
        reply = yield self.transport.start(self.origin)
        self.cache.load(reply)
        self._inbound = tornado.queues.Queue()
        tornado.ioloop.IOLoop.current().spawn_callback(self._read_loop,
            self.transport.connection, self._inbound)
        return reply

    @tornado.gen.coroutine
    def _read_loop(self, connection, inbound):
        """Decode the frames of one connection, None marks the end of the stream
        """
        try:
            while True:
                frame = yield connection.read_message()
                if frame is None:
                    break
                event, is_parse_failure = decode(frame, context=self.context)
                if is_parse_failure:
                    logging.warning("Unable to decode frame: {0}".format(event.error.msg))
                yield inbound.put(event)
        except Exception:
            logging.exception("RTM reader failed, closing the stream")
        yield inbound.put(None)

    @tornado.gen.coroutine
    def _dispatch_loop(self):
        while not self._stopping:
            event = yield self._inbound.get()
            if self._stopping:
                break

            if event is None:
                logging.info("Incoming messages are closed, reconnecting")
                yield self._reconnect()
                continue

            if event.is_parse_failure:
                if self.deliver_parse_failures:
                    yield self._deliver(event)
                continue

            yield self._deliver(event)
            if event.is_error:
                logging.warning("Received error from Slack - {0} ({1}), reconnecting".format(
                    event.error.code, event.error.msg))
                yield self._reconnect()
            elif event.kind == GOODBYE:
                logging.info("Received goodbye, reconnecting")
                yield self._reconnect()

    @tornado.gen.coroutine
    def _reconnect(self):
        """Drop the connection and retry every reconnect_delay seconds until it is
        back or the bot is stopped
        """
        self.transport.stop()
        self._inbound = None
        while not self._stopping:
            try:
                yield self._stopped.wait(timeout=datetime.timedelta(seconds=self.reconnect_delay))
            except tornado.util.TimeoutError:
                pass
            if self._stopping:
                return False

            try:
                yield self._connect()
            except SlackError as e:
                logging.warning("Unable to reconnect, retrying in {0} seconds: {1}".format(
                    self.reconnect_delay, e))
                continue
            except Exception:
                logging.exception("Unexpected failure while reconnecting, retrying in {0} seconds".format(
                    self.reconnect_delay))
                continue

            if self._stopping:
                self.transport.stop()
                return False
            logging.info("Reconnected")
            return True
        return False

    @tornado.gen.coroutine
    def _deliver(self, event):
        self.cache.observe(event)
        self.markers.observe(event)
        self._fire_event(None, event)
        self._fire_event(event.kind, event)
        if self.events is not None:
            yield self.events.put(event)

    def _fire_event(self, event_name, event):
        handlers = self.listeners.get(event_name)
        if handlers:
            for name, handler in list(handlers.items()):
                try:
                    handler(event)
                except Exception:
                    logging.exception("Listener {0} failed on {1}".format(name, event_name))

    def add_event_listener(self, event_name, func, name=None):
        """Call func(event) for every event of kind event_name (None: every event)
        """
        name = name or uuid.uuid4()
        if event_name not in self.listeners:
            self.listeners[event_name] = {}

        self.listeners[event_name][name] = func
        return name

    def remove_event_listener(self, event_name, name):
        if event_name not in self.listeners:
            return None
        if name not in self.listeners[event_name]:
            return None
        return self.listeners[event_name].pop(name)


from . import events
from . import cache
from . import markers
from . import transport
