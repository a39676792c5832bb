
import logging

import tornado.gen
import tornado.ioloop

from ..errors import SlackError
from .events import MESSAGE


class ReadMarkerBatcher(object):
    """Batch read markers and send them every {interval} seconds

    Only the latest timestamp per channel is kept between two flushes. A mark
    that fails is not retried, a later message on the same channel supersedes
    it.
    """

    def __init__(self, slack, interval=60):
        self.slack = slack
        self.interval = interval
        self.pending = {}
        self._callback = None

    def observe(self, event):
        if event.kind != MESSAGE or not event.channel or not event.ts:
            return
        self.pending[event.channel] = event.ts

    @tornado.gen.coroutine
    def flush(self):
        pending, self.pending = self.pending, {}
        for channel, ts in pending.items():
            try:
                yield self.slack.mark(channel, ts)
            except SlackError as e:
                logging.warning("Unable to mark {0} read at {1}: {2}".format(channel, ts, e))

    def _tick(self):
        if self.pending:
            tornado.ioloop.IOLoop.current().spawn_callback(self.flush)

    def start(self):
        if self._callback is None:
            self._callback = tornado.ioloop.PeriodicCallback(self._tick, self.interval * 1000)
            self._callback.start()

    @tornado.gen.coroutine
    def stop(self, flush=False):
        """Stop the timer, markers still pending are dropped unless flush is True
        """
        if self._callback is not None:
            self._callback.stop()
            self._callback = None
        if flush:
            yield self.flush()
