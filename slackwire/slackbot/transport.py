
import json
import logging

import tornado.gen
import tornado.locks
import tornado.iostream
import tornado.httpclient
import tornado.websocket

from ..errors import SlackAPIError, SlackTransportError


class RTMTransport(object):
    """The websocket half of a session.

    Holds the current connection (None when disconnected) and the outbound
    message id. A send holds self.lock across the id increment and the write,
    so it always sees a live connection together with the next id.
    """

    def __init__(self, slack, ping_interval=30):
        self.slack = slack
        self.ping_interval = ping_interval
        self.connection = None
        self.message_id = 0
        self.lock = tornado.locks.Lock()

    @tornado.gen.coroutine
    def start(self, origin=None):
        """Ask for a websocket url with rtm.start and connect to it

        Returns the decoded rtm.start reply. Raises SlackAPIError when rtm.start
        fails and SlackTransportError when the websocket cannot be opened.
        """
        reply = yield self.slack.api.rtm.start()
        if not getattr(reply, "url", None):
            raise SlackAPIError("invalid_response", "rtm.start returned no websocket url")
        headers = {}
        if origin:
            headers["Origin"] = origin
        request = tornado.httpclient.HTTPRequest(reply.url, headers=headers)
        try:
            connection = yield tornado.websocket.websocket_connect(request,
                ping_interval=self.ping_interval)
        except (OSError, tornado.httpclient.HTTPClientError, tornado.websocket.WebSocketError) as e:
            raise SlackTransportError("Unable to connect to {0}: {1}".format(reply.url, e)) from e

        with (yield self.lock.acquire()):
            old, self.connection = self.connection, connection
        if old is not None:
            old.close()
        logging.info("RTM connected to {0}".format(reply.url))
        return reply

    @tornado.gen.coroutine
    def send(self, channel, text):
        """Send a simple text message, returns the id it was sent with
        """
        with (yield self.lock.acquire()):
            if self.connection is None:
                raise SlackTransportError("RTM channel is not open")
            self.message_id += 1
            message_id = self.message_id
            try:
                yield self.connection.write_message(json.dumps({
                    "id": message_id,
                    "type": "message",
                    "channel": channel,
                    "text": text,
                }))
            except (tornado.websocket.WebSocketClosedError, tornado.iostream.StreamClosedError) as e:
                raise SlackTransportError("RTM channel is closed") from e
        return message_id

    def stop(self):
        """Close the connection, a pending read_message() resolves to None
        """
        connection, self.connection = self.connection, None
        if connection is not None:
            connection.close()
