
import json
import types
import logging
import functools

import tornado.gen
from .api_wrapper import RestAPI
from .errors import SlackError, SlackAPIError, SlackTransportError, SlackValidationError

DEFAULT_URL = "https://slack.com/api/"

TOKEN_PARAM = { "type": "string", "is_required": True }


def _post_response(response, parse_data=None):
    """Decode the {"ok": ..., "error": ...} envelope into response.data
    """
    response.json_body = None
    response.data = None
    try:
        body = response.decoded_body if hasattr(response, "decoded_body") else response.body
        response.json_body = json.loads(body)
    except (TypeError, ValueError):
        logging.warning("Unable to decode response from {0}".format(response.request.url))
        return False

    if not isinstance(response.json_body, dict):
        return False

    response.data = types.SimpleNamespace()
    response.data.ok = bool(response.json_body.get("ok"))
    response.data.error = response.json_body.get("error")
    if response.data.ok:
        keys = parse_data if parse_data is not None else response.json_body.keys()
        for key in keys:
            setattr(response.data, key, response.json_body.get(key))
    return False


@tornado.gen.coroutine
def invoke(api, **params):
    """Call a RestAPI and check the success flag.

    Returns the decoded namespace, raises SlackAPIError otherwise.
    """
    response = yield api(**params)
    if response.code < 200 or response.code >= 300:
        raise SlackAPIError("http_error", "Unexpected status code: {0} ({1})".format(
            response.code, response.reason), status_code=response.code)
    if response.data is None:
        raise SlackAPIError("invalid_response", "Response from {0} is not a json object".format(
            api.url), status_code=response.code)
    if not response.data.ok:
        logging.warning("{0} failed: {1}".format(api.url, response.data.error))
        raise SlackAPIError(response.data.error or "unknown_error", status_code=response.code)
    return response.data


def build_api(definition, base_url, token=None, http_client=None):
    """Turn one method definition into a configured RestAPI

    The definition keys on top of RestAPI.from_config are
    parse_data          the keys to copy into the decoded namespace (default: all)
    auth                whether the bearer token is sent (default: True)
    retry               whether the call is safe to retry (default: True)
    """
    definition = dict(definition)
    parse_data = definition.pop("parse_data", None)
    needs_token = definition.pop("auth", True)
    retry = definition.pop("retry", True)
    if needs_token:
        params = dict(definition.get("params", {}))
        params["token"] = TOKEN_PARAM
        definition["params"] = params

    api = RestAPI.from_config(definition).set_base_url(base_url).set(decode="utf-8")
    if not retry:
        api.set(retries_status=())
    if http_client is not None:
        api.set_httpclient(http_client)
    if needs_token and token is not None:
        api.partial(token=token)
    api.add_post_response_hook(hooks=functools.partial(_post_response, parse_data=parse_data))
    return api


class _GenericAPI(object):

    def __init__(self, token, api_definitions, base_url=DEFAULT_URL, http_client=None):
        self.token = token
        self.base_url = base_url
        self.http_client = http_client

        for function_name, definition in api_definitions.items():
            api = build_api(definition, base_url, token=token, http_client=http_client)
            setattr(self, function_name, functools.partial(invoke, api))


from . import slack
from . import slackbot
from .slack import Slack
from .slackbot import SlackBot
