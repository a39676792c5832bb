"""
Print the messages of a team as they arrive.

    python -m slackwire --token=xoxb-... --mark_interval=5
"""
import sys
import logging

import tornado.gen
import tornado.ioloop
import tornado.options
from tornado.options import define, options

from .slack import Slack
from .slackbot import SlackBot
from .errors import SlackError
from . import DEFAULT_URL

define("token", type=str, default=None, help="token to connect to slack")
define("base_url", type=str, default=DEFAULT_URL, help="the Slack API root")
define("reconnect_delay", type=float, default=60, help="seconds between reconnect attempts")
define("mark_interval", type=float, default=60, help="seconds between read marker flushes")
define("flush_on_stop", type=bool, default=True, help="flush read markers when exiting")
define("deliver_parse_failures", type=bool, default=False, help="print frames that failed to decode")


def format_event(bot, event):
    channel = bot.cache.get_channel_name_from_id(event.channel) or event.channel
    user = bot.cache.get_user_name_from_id(event.user) or event.user
    return "#{0} {1}: {2}".format(channel, user, event.text)


@tornado.gen.coroutine
def tail(bot):
    yield bot.start()
    logging.info("Watching as {0}".format(bot.cache.get_user_name_from_id(bot.cache.self_id)))
    while True:
        event = yield bot.read_event()
        if event.kind == "message":
            print(format_event(bot, event))
        elif event.is_error:
            print("error {0}: {1}".format(event.error.code, event.error.msg), file=sys.stderr)


def main():
    tornado.options.parse_command_line()
    if not options.token:
        logging.error("Please provide the token from https://api.slack.com/web")
        sys.exit(1)

    bot = SlackBot(Slack(options.token, base_url=options.base_url),
        reconnect_delay=options.reconnect_delay, mark_interval=options.mark_interval,
        flush_on_stop=options.flush_on_stop,
        deliver_parse_failures=options.deliver_parse_failures)
    io_loop = tornado.ioloop.IOLoop.current()
    try:
        io_loop.run_sync(lambda: tail(bot))
    except SlackError as e:
        logging.error("Unable to start: {0}".format(e))
        sys.exit(1)
    except KeyboardInterrupt:
        io_loop.run_sync(bot.stop)


if __name__ == "__main__":
    main()
