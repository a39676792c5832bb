from tornado import gen
from tornado.testing import AsyncTestCase, gen_test

from slackwire.errors import SlackAPIError, SlackTransportError
from slackwire.slackbot.transport import RTMTransport
from tests.fakes import FakeConnection
from tests.mock_slack import MockSlackTestCase, message_frame


class SendTest(AsyncTestCase):

    @gen_test
    def test_send_without_connection(self):
        transport = RTMTransport(slack=None)
        with self.assertRaises(SlackTransportError):
            yield transport.send("C1", "hello")

    @gen_test
    def test_concurrent_sends_never_share_an_id(self):
        transport = RTMTransport(slack=None)
        connection = FakeConnection([])
        transport.connection = connection
        ids = yield [ transport.send("C1", str(i)) for i in range(5) ]
        self.assertEqual(sorted(ids), [1, 2, 3, 4, 5])
        self.assertEqual([ frame["id"] for frame in connection.sent ], [1, 2, 3, 4, 5])
        self.assertEqual(connection.sent[0], { "id": 1, "type": "message", "channel": "C1", "text": "0" })

    @gen_test
    def test_stop_closes_and_clears_the_connection(self):
        transport = RTMTransport(slack=None)
        connection = FakeConnection([])
        transport.connection = connection
        pending = connection.read_message()
        transport.stop()
        self.assertTrue(connection.closed)
        self.assertIsNone(transport.connection)
        frame = yield pending
        self.assertIsNone(frame)
        with self.assertRaises(SlackTransportError):
            yield transport.send("C1", "late")


class WebsocketTest(MockSlackTestCase):

    @gen_test
    def test_start_connects_to_the_returned_url(self):
        self.serve_rtm()
        self.server.scripts = [{ "frames": [message_frame("hi")] }]
        transport = RTMTransport(self.slack)
        reply = yield transport.start(origin="http://example.com")
        self.assertEqual(reply.self["id"], "U0")
        self.assertEqual(self.server.origins, ["http://example.com"])

        frame = yield transport.connection.read_message()
        self.assertIn('"hi"', frame)

        first = yield transport.send("C1", "one")
        second = yield transport.send("C1", "two")
        self.assertEqual((first, second), (1, 2))
        while len(self.server.received) < 2:
            yield gen.sleep(0.01)
        self.assertEqual([ m["text"] for m in self.server.received ], ["one", "two"])

        connection = transport.connection
        transport.stop()
        frame = yield connection.read_message()
        self.assertIsNone(frame)

    @gen_test
    def test_ids_keep_increasing_across_connections(self):
        self.serve_rtm()
        transport = RTMTransport(self.slack)
        yield transport.start()
        yield transport.send("C1", "one")
        transport.stop()
        yield transport.start()
        message_id = yield transport.send("C1", "two")
        self.assertEqual(message_id, 2)
        self.assertEqual(self.server.origins, [None, None])

    @gen_test
    def test_rtm_start_failure_is_raised(self):
        self.server.responses["rtm.start"] = (200, { "ok": False, "error": "invalid_auth" })
        transport = RTMTransport(self.slack)
        with self.assertRaises(SlackAPIError):
            yield transport.start()
        self.assertIsNone(transport.connection)

    @gen_test
    def test_reply_without_url_is_an_api_error(self):
        self.serve_rtm(url=None)
        transport = RTMTransport(self.slack)
        with self.assertRaises(SlackAPIError) as cm:
            yield transport.start()
        self.assertEqual(cm.exception.error, "invalid_response")
        self.assertIsNone(transport.connection)

    @gen_test
    def test_websocket_failure_is_a_transport_error(self):
        self.serve_rtm(url=self.ws_url("/missing"))
        transport = RTMTransport(self.slack)
        with self.assertRaises(SlackTransportError):
            yield transport.start()
        self.assertIsNone(transport.connection)
