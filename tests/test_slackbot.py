import json
import datetime

from tornado import gen
from tornado.testing import AsyncTestCase, gen_test

from slackwire.errors import SlackAPIError, SlackError, SlackTransportError
from slackwire.slackbot import SlackBot
from tests.fakes import FakeSlack, FakeTransport
from tests.mock_slack import MockSlackTestCase, message_frame

TIMEOUT = datetime.timedelta(seconds=2)

SERVER_ERROR = json.dumps({ "type": "error", "error": { "code": 1, "msg": "Socket URL has expired" } })


class ReconnectTest(AsyncTestCase):

    def make_bot(self, scripts, **kwargs):
        self.slack = FakeSlack()
        self.transport = FakeTransport(scripts)
        kwargs.setdefault("reconnect_delay", 0.01)
        kwargs.setdefault("mark_interval", 3600)
        return SlackBot(self.slack, transport=self.transport, **kwargs)

    @gen.coroutine
    def read(self, bot, count):
        events = []
        for _ in range(count):
            event = yield bot.read_event(timeout=TIMEOUT)
            events.append(event)
        return events

    @gen_test
    def test_parse_failure_keeps_the_connection(self):
        bot = self.make_bot([{ "frames": [message_frame("1"), '{"type": "mess', message_frame("2")] }])
        yield bot.start()
        events = yield self.read(bot, 3)
        self.assertEqual([ e.kind for e in events ], ["message", "error", "message"])
        self.assertTrue(events[1].error.is_parse_failure)
        self.assertEqual((self.transport.starts, self.transport.stops), (1, 0))
        self.assertTrue(bot.connected)
        yield bot.stop()

    @gen_test
    def test_parse_failures_can_be_dropped(self):
        bot = self.make_bot([{ "frames": ["garbage", message_frame("1"), ""] + [message_frame("2")] }],
            deliver_parse_failures=False)
        yield bot.start()
        events = yield self.read(bot, 2)
        self.assertEqual([ e.text for e in events ], ["1", "2"])
        self.assertEqual(self.transport.starts, 1)
        yield bot.stop()

    @gen_test
    def test_server_error_reconnects(self):
        bot = self.make_bot([
            { "frames": [message_frame("1"), SERVER_ERROR, message_frame("lost")] },
            { "frames": [message_frame("2")] },
        ])
        yield bot.start()
        events = yield self.read(bot, 3)
        self.assertEqual([ e.kind for e in events ], ["message", "error", "message"])
        self.assertFalse(events[1].error.is_parse_failure)
        self.assertEqual(events[1].error.msg, "Socket URL has expired")
        self.assertEqual(events[2].text, "2")
        self.assertEqual(self.transport.starts, 2)
        self.assertTrue(self.transport.connections[0].closed)
        yield bot.stop()

    @gen_test
    def test_end_of_stream_reconnects_silently(self):
        bot = self.make_bot([
            { "frames": [message_frame("1"), message_frame("2"), message_frame("3")], "hold_open": False },
            { "frames": [message_frame("4")] },
        ])
        yield bot.start()
        events = yield self.read(bot, 4)
        self.assertEqual([ e.kind for e in events ], ["message"] * 4)
        self.assertEqual([ e.text for e in events ], ["1", "2", "3", "4"])
        self.assertEqual(self.transport.starts, 2)
        self.assertTrue(bot.events.empty())
        yield bot.stop()

    @gen_test
    def test_goodbye_reconnects(self):
        bot = self.make_bot([
            { "frames": ['{"type": "goodbye"}'] },
            { "frames": [message_frame("after")] },
        ])
        yield bot.start()
        events = yield self.read(bot, 2)
        self.assertEqual([ e.kind for e in events ], ["goodbye", "message"])
        self.assertEqual(self.transport.starts, 2)
        yield bot.stop()

    @gen_test
    def test_failed_reconnects_are_retried(self):
        bot = self.make_bot([
            { "frames": [message_frame("1")], "hold_open": False },
            SlackTransportError("connection refused"),
            SlackAPIError("ratelimited"),
            { "frames": [message_frame("2")] },
        ])
        yield bot.start()
        events = yield self.read(bot, 2)
        self.assertEqual([ e.text for e in events ], ["1", "2"])
        self.assertEqual(self.transport.starts, 4)
        yield bot.stop()

    @gen_test
    def test_unexpected_reconnect_failures_are_retried(self):
        bot = self.make_bot([
            { "frames": [message_frame("1")], "hold_open": False },
            AttributeError("'NoneType' object has no attribute 'url'"),
            { "frames": [message_frame("2")] },
        ])
        yield bot.start()
        events = yield self.read(bot, 2)
        self.assertEqual([ e.text for e in events ], ["1", "2"])
        self.assertEqual(self.transport.starts, 3)
        yield bot.stop()

    @gen_test
    def test_deeply_nested_frame_keeps_the_stream_going(self):
        bot = self.make_bot([{ "frames": ["[" * 100000 + "]" * 100000, message_frame("1")] }])
        yield bot.start()
        events = yield self.read(bot, 2)
        self.assertEqual([ e.kind for e in events ], ["error", "message"])
        self.assertTrue(events[0].error.is_parse_failure)
        self.assertEqual(self.transport.starts, 1)
        yield bot.stop()

    @gen_test
    def test_reader_failure_ends_the_stream(self):
        # an int frame makes decode itself blow up
        bot = self.make_bot([
            { "frames": [message_frame("1"), 5, message_frame("lost")] },
            { "frames": [message_frame("2")] },
        ])
        yield bot.start()
        events = yield self.read(bot, 2)
        self.assertEqual([ e.text for e in events ], ["1", "2"])
        self.assertEqual(self.transport.starts, 2)
        yield bot.stop()

    @gen_test
    def test_restart_after_stop(self):
        bot = self.make_bot([{ "frames": [message_frame("1")] }, { "frames": [message_frame("2")] }])
        yield bot.start()
        with self.assertRaises(SlackError):
            yield bot.start()
        events = yield self.read(bot, 1)
        yield bot.stop()
        self.assertFalse(bot.connected)

        yield bot.start()
        self.assertTrue(bot.connected)
        events += yield self.read(bot, 1)
        self.assertEqual([ e.text for e in events ], ["1", "2"])
        self.assertEqual(self.transport.starts, 2)
        yield bot.stop()

    @gen_test
    def test_listener_only_bot_does_not_queue(self):
        seen = []
        bot = self.make_bot([{ "frames": [message_frame("1")] }])
        bot.add_event_listener(None, seen.append)
        yield bot.start()
        while not seen:
            yield gen.sleep(0.01)
        self.assertIsNone(bot.events)
        yield bot.stop()

    @gen_test
    def test_first_connect_failure_is_raised(self):
        bot = self.make_bot([SlackAPIError("invalid_auth")])
        with self.assertRaises(SlackAPIError):
            yield bot.start()

    @gen_test
    def test_stop_interrupts_the_reconnect_wait(self):
        bot = self.make_bot([{ "frames": [], "hold_open": False }], reconnect_delay=3600)
        yield bot.start()
        while self.transport.stops == 0:
            yield gen.sleep(0.01)
        yield bot.stop()
        self.assertEqual(self.transport.starts, 1)
        self.assertFalse(bot.connected)

    @gen_test
    def test_stop_closes_the_connection(self):
        bot = self.make_bot([{ "frames": [message_frame("1")] }])
        yield bot.start()
        yield self.read(bot, 1)
        yield bot.stop()
        self.assertTrue(self.transport.connections[0].closed)
        self.assertEqual(self.transport.starts, 1)

    @gen_test
    def test_context_is_attached(self):
        context = { "team": "acme" }
        bot = self.make_bot([{ "frames": [message_frame("1"), "{"] }], context=context)
        yield bot.start()
        events = yield self.read(bot, 2)
        self.assertTrue(all(e.context is context for e in events))
        yield bot.stop()

    @gen_test
    def test_listeners(self):
        seen, messages = [], []

        def broken(event):
            raise RuntimeError("boom")

        bot = self.make_bot([{ "frames": [message_frame("1"), '{"type": "presence_change"}'] }],
            queue_events=False)
        bot.add_event_listener(None, seen.append)
        bot.add_event_listener("message", broken, name="broken")
        bot.add_event_listener("message", messages.append)
        yield bot.start()
        while len(seen) < 2:
            yield gen.sleep(0.01)
        self.assertEqual([ e.kind for e in seen ], ["message", "presence_change"])
        self.assertEqual(len(messages), 1)
        self.assertIs(bot.remove_event_listener("message", "broken"), broken)
        self.assertIsNone(bot.remove_event_listener("message", "broken"))
        with self.assertRaises(SlackError):
            bot.read_event()
        yield bot.stop()

    @gen_test
    def test_delivered_messages_feed_the_read_markers(self):
        bot = self.make_bot([{ "frames": [message_frame("1", channel="C1", ts="1.000001"),
            message_frame("2", channel="C1", ts="1.000002"), message_frame("3", channel="G1", ts="1.000003")] }],
            flush_on_stop=True)
        yield bot.start()
        yield self.read(bot, 3)
        self.assertEqual(bot.markers.pending, { "C1": "1.000002", "G1": "1.000003" })
        yield bot.stop()
        self.assertEqual(sorted(self.slack.marks), [("C1", "1.000002"), ("G1", "1.000003")])

    @gen_test
    def test_cache_follows_the_stream(self):
        bot = self.make_bot([{ "frames": [
            json.dumps({ "type": "channel_created", "channel": { "id": "C2", "name": "random", "creator": "U1" } }),
            json.dumps({ "type": "team_join", "user": { "id": "U2", "name": "ann" } }),
        ] }])
        yield bot.start()
        self.assertEqual(bot.cache.get_channel_name_from_id("C1"), "general")
        self.assertEqual(bot.cache.self_id, "U0")
        yield self.read(bot, 2)
        self.assertEqual(bot.cache.get_channel_id_from_name("random"), "C2")
        self.assertEqual(bot.cache.get_user_name_from_id("U2"), "ann")
        yield bot.stop()

    @gen_test
    def test_send_goes_through_the_transport(self):
        bot = self.make_bot([{ "frames": [] }])
        yield bot.start()
        message_id = yield bot.send("C1", "hello")
        self.assertEqual(message_id, 1)
        self.assertEqual(self.transport.connection.sent, [{ "id": 1, "type": "message",
            "channel": "C1", "text": "hello" }])
        yield bot.stop()


class RoundTripTest(MockSlackTestCase):

    @gen_test
    def test_reconnect_over_a_real_websocket(self):
        self.serve_rtm(channels=[{ "id": "C1", "name": "general", "is_member": True }])
        self.server.scripts = [
            { "frames": [message_frame("1"), message_frame("2"), message_frame("3")], "close": True },
            { "frames": [message_frame("4")] },
        ]
        bot = SlackBot(self.slack, reconnect_delay=0.01, mark_interval=3600)
        yield bot.start()
        events = []
        for _ in range(4):
            event = yield bot.read_event(timeout=TIMEOUT)
            events.append(event)
        self.assertEqual([ e.kind for e in events ], ["message"] * 4)
        self.assertEqual([ e.text for e in events ], ["1", "2", "3", "4"])
        self.assertEqual(len(self.server.sockets), 2)
        self.assertEqual(len(self.server.calls_to("rtm.start")), 2)

        message_id = yield bot.send("C1", "pong")
        self.assertEqual(message_id, 1)
        yield bot.stop()
        self.assertFalse(bot.connected)

    @gen_test
    def test_flush_on_stop_marks_channels_read(self):
        self.serve_rtm()
        self.server.scripts = [{ "frames": [message_frame("1", channel="C1", ts="5.000001"),
            message_frame("2", channel="D1", ts="5.000002")] }]
        bot = SlackBot(self.slack, reconnect_delay=0.01, mark_interval=3600, flush_on_stop=True)
        yield bot.start()
        for _ in range(2):
            yield bot.read_event(timeout=TIMEOUT)
        yield bot.stop()
        self.assertEqual(self.server.calls_to("channels.mark")[0]["ts"], "5.000001")
        self.assertEqual(self.server.calls_to("im.mark")[0]["ts"], "5.000002")
