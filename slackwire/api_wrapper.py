"""
The request wrapper lets a remote method be described as a dictionary and then
called like a coroutine.

    auth_test = RestAPI.from_config({
        "url": "auth.test",
        "params": { "token": { "type": "string", "is_required": True } },
    }).set_base_url("https://slack.com/api/")

    response = yield auth_test(token="xoxb-...")

Parameters are validated and coerced before anything touches the network, so a
bad call raises SlackValidationError synchronously.

Some note:

Retries are driven by status code. Leave retries_status empty for calls that
are not safe to repeat (posting messages, uploads).
"""
import json
import uuid
import logging
import mimetypes
import urllib.parse

import tornado.gen
import tornado.httpclient

from .errors import SlackTransportError, SlackValidationError

# the code tornado used to report for connection level failures
TRANSPORT_FAILURE_CODE = 599

UPLOAD_CHUNK_SIZE = 64 * 1024


@tornado.gen.coroutine
def fetch_with_retries(http_client, request, max_tries=None, retries_status=None,
        retry_delay=5):
    """Fetch a request with retries

    http_client         The httpclient to use
    request             The request to fetch
    max_tries           The max number of tries to try (default: 5)
    retries_status      The status to retry on. (default: no retries)
                        (provide a list/tuple of int)
    retry_delay         Seconds to wait between two tries

    Connection failures are treated as status 599. When the last try fails at
    the connection level, SlackTransportError is raised.
    """
    max_tries = max_tries if max_tries is not None else 5
    retries_status = retries_status if retries_status is not None else tuple()

    tries = 0
    while True:
        tries += 1
        error = None
        try:
            response = yield http_client.fetch(request, raise_error=False)
            code = response.code
        except (OSError, tornado.httpclient.HTTPClientError) as e:
            response, error = None, e
            code = getattr(e, "code", TRANSPORT_FAILURE_CODE)

        if code in retries_status and tries < max_tries:
            logging.debug("Fail to fetch: {url}, Code: {code}, retrying ... {current_try}/{max_try}".format(
                url=request.url, code=code, current_try=tries, max_try=max_tries))
            yield tornado.gen.sleep(retry_delay)
            continue
        if response is None:
            raise SlackTransportError("Fail to fetch {0}: {1}".format(request.url, error)) from error
        return response


def multipart_producer(boundary, fields, files):
    """Create a body_producer that streams a multipart/form-data body.

    fields              key/value pairs of plain form fields
    files               key -> (filename, file object) pairs

    File objects are read in UPLOAD_CHUNK_SIZE chunks, never as a whole.
    """
    boundary_bytes = boundary.encode()

    @tornado.gen.coroutine
    def _produce(write):
        for key, value in fields.items():
            yield write(b"--" + boundary_bytes + b"\r\n")
            yield write('Content-Disposition: form-data; name="{0}"\r\n\r\n'.format(key).encode())
            yield write(str(value).encode("utf-8"))
            yield write(b"\r\n")

        for key, (filename, fileobj) in files.items():
            mtype = mimetypes.guess_type(filename)[0] or "application/octet-stream"
            yield write(b"--" + boundary_bytes + b"\r\n")
            yield write('Content-Disposition: form-data; name="{0}"; filename="{1}"\r\n'.format(
                key, filename).encode("utf-8"))
            yield write("Content-Type: {0}\r\n\r\n".format(mtype).encode())
            while True:
                chunk = fileobj.read(UPLOAD_CHUNK_SIZE)
                if not chunk:
                    break
                if isinstance(chunk, str):
                    chunk = chunk.encode("utf-8")
                yield write(chunk)
            yield write(b"\r\n")

        yield write(b"--" + boundary_bytes + b"--\r\n")

    return _produce


class RestAPI(object):
    """
    Usage:
    from slackwire.api_wrapper import RestAPI

    user_info_config = {
        "url": "users.info",
        "params": { "user" : { "type": "string", "is_required": True } },
    }

    user_info = RestAPI.from_config(user_info_config).set_base_url(base_url)

    response = yield user_info(user="U123")

    do not use the constructor of RestAPI directly
    """

    ##### Commonly used constants #######
    POST="POST"

    FORM="form"
    MULTIPART="multipart"

    REQUEST_CONTENT_TYPE = (FORM, MULTIPART)

    TYPE_STRING = "string"
    TYPE_INT = "int"
    TYPE_COMMA_STRING = "comma_string"
    TYPE_BOOL = "bool"
    TYPE_BOOL_STRING = "bool_string"
    TYPE_JSON = "json"
    TYPE_FILE = "file"
    PARAM_TYPES = (
        TYPE_STRING, TYPE_INT, TYPE_COMMA_STRING,
        TYPE_BOOL, TYPE_BOOL_STRING, TYPE_JSON, TYPE_FILE,
    )

    def __init__(self):
        self._http_client = None
        self.base_url = None
        self.post_response_hooks = []
        self.retries_status = {502, 503, 504, 599}
        self.max_tries = 3
        self.retry_delay = 5
        self.strict = True
        self._partial_values = {}
        self.decode = None

    @classmethod
    def from_config(cls, config):
        api = RestAPI()
        api.url = config.get("url")
        api.method = RestAPI.POST
        api.request_body_type = (config.get("request_body_type") if
                "request_body_type" in config else RestAPI.FORM)
        if api.request_body_type not in RestAPI.REQUEST_CONTENT_TYPE:
            raise SlackValidationError("Invalid request body type {0}".format(api.request_body_type))

        api.strict = config.get("strict", True)
        api.params = config.get("params") if "params" in config else {}
        return api

    @property
    def http_client(self):
        if self._http_client is None:
            self._http_client = tornado.httpclient.AsyncHTTPClient()
        return self._http_client

    def set(self, **params):
        """Set the other stuffs in one shot

        The stuffs that can be set here are
        decode, retries_status, max_tries, retry_delay

        decode                  what encoding to decode the response to. (default None)
        retries_status          what status to retry the request on. (default 502, 503, 504, 599)
        max_tries               the number of tries when trying to perform the request. (default 3)
        retry_delay             seconds between two tries (default 5)
        """
        if "decode" in params:
            self.decode = params["decode"]
        if "retries_status" in params:
            self.retries_status = params["retries_status"]
        if "max_tries" in params:
            self.max_tries = params["max_tries"]
        if "retry_delay" in params:
            self.retry_delay = params["retry_delay"]
        return self

    def set_base_url(self, base_url):
        """Set the base url the method name is appended to
        """
        self.base_url = base_url
        return self

    def set_httpclient(self, http_client):
        """Set a default AsyncHTTPClient to use

        http_client             a tornado.httpclient.AsyncHTTPClient instance

        return                  instance of RestAPI
        """
        self._http_client = http_client
        return self

    def add_post_response_hook(self, hooks):
        """Add a post response hook

        hooks                   a function that is call when the response is completed.
                                This function will be called for any status code.
        """
        self.post_response_hooks.append(hooks)
        return self

    def partial(self, **params):
        """Partially fill this api.

        **params                fill the object with partial data.

        This is how the token is bound to every method of a client.
        """
        for key, param in params.items():
            if self.strict and key not in self.params:
                raise SlackValidationError("Invalid params {0}".format(key))
            self._partial_values[key] = param
        return self

    def __call__(self, **params):
        """The actual call method

        Note: This will return a future, that needs to be yield.
        Please call this with keyword arguments
        """
        request = self._create_request(params=params)
        return self._fetch_and_parse(request=request, retries_status=self.retries_status,
            max_tries=self.max_tries)

    @tornado.gen.coroutine
    def _fetch_and_parse(self, request, retries_status, max_tries):
        """Fetch and parse
        return the response, do not do any processing except parsing

        please call this with keyword arguments
        """
        response = yield fetch_with_retries(request=request, http_client=self.http_client,
            retries_status=retries_status, max_tries=max_tries, retry_delay=self.retry_delay)
        if response.body is not None and self.decode is not None:
            response.decoded_body = response.body.decode(self.decode)

        if response.code < 200 or response.code >= 300:
            logging.warning(("Request error:\nURL: {}\nMethod: {}\nCode: {}\nBody: {}").format(
                    response.request.url, response.request.method, response.code, response.body))

        for hook in self.post_response_hooks:
            hook(response)

        return response

    def _create_request(self, params):
        """Internal method to create request
        """
        for param_key in params:
            if param_key in self._partial_values:
                raise SlackValidationError("param {0} have been fixed".format(param_key))

        actual_params = {}
        actual_params.update(params)
        actual_params.update(self._partial_values)
        actual_params = { k: v for k, v in actual_params.items() if v is not None }

        self._clean_and_check_if_ready(actual_params)
        url = self._build_url()
        # create the actual request
        _r = { "method": self.method, "headers": {} }

        if self.request_body_type == RestAPI.MULTIPART:
            files = {}
            for key in list(actual_params.keys()):
                if self.params.get(key, {}).get("type") == RestAPI.TYPE_FILE:
                    fileobj = actual_params.pop(key)
                    files[key] = (actual_params.get("filename") or key, fileobj)
            boundary = uuid.uuid4().hex
            _r["headers"]["Content-Type"] = "multipart/form-data; boundary={0}".format(boundary)
            _r["body_producer"] = multipart_producer(boundary, actual_params, files)
        else:
            _r["body"] = urllib.parse.urlencode(actual_params)
            _r["headers"]["Content-Type"] = "application/x-www-form-urlencoded"

        _r["url"] = url
        request = tornado.httpclient.HTTPRequest(**_r)
        return request

    def _clean_and_check_if_ready(self, actual_params):
        """Check if the request is ready to be called

        raise SlackValidationError if not enough param is passed to create the request
        """
        if self.base_url is None:
            raise SlackValidationError("base_url is not set")
        for key, param in self.params.items():
            if param.get("is_required") and key not in actual_params:
                raise SlackValidationError("param {0} is required".format(key))

            if actual_params.get(key) is not None:
                old_value = actual_params[key]
                new_value = self._check_type_and_value_for_param(key, old_value, param)
                actual_params[key] = new_value

        if self.strict:
            for key in list(actual_params.keys()):
                if key not in self.params:
                    raise SlackValidationError("{0} is not a valid param".format(key))
        else:
            for key, value in list(actual_params.items()):
                if key not in self.params and isinstance(value, bool):
                    actual_params[key] = { True: "true", False: "false" }.get(value)

    def _check_type_and_value_for_param(self, key, value, param):
        if param.get("type") is not None:
            param_type = param.get("type")
            if param_type in RestAPI.PARAM_TYPES:
                if param_type == "string":
                    value = str(value)
                elif param_type == "int":
                    try:
                        value = int(value)
                    except (TypeError, ValueError):
                        raise SlackValidationError("{0} cannot be converted to a int".format(value))
                elif param_type == "bool":
                    if not isinstance(value, bool):
                        raise SlackValidationError("{0} is not a boolean".format(value))
                    value = { True: "1", False: "0" }.get(value)
                elif param_type == "json":
                    try:
                        value = json.dumps(value)
                    except (TypeError, ValueError):
                        raise SlackValidationError("{0} cannot be serialized to json".format(value))
                elif param_type == "file":
                    if not hasattr(value, "read"):
                        raise SlackValidationError("{0} is not a readable file".format(key))
                elif param_type == "comma_string":
                    if isinstance(value, str):
                        pass
                    elif isinstance(value, (list, tuple)):
                        try:
                            value = ",".join(value)
                        except TypeError:
                            raise SlackValidationError("{0} cannot be converted to a comma separated string".format(value))
                    else:
                        raise SlackValidationError("{0} cannot be converted to a comma separated string".format(value))
                elif param_type == "bool_string":
                    if isinstance(value, str):
                        value_lowered = value.lower()
                        if value_lowered not in {"true", "false"}:
                            raise SlackValidationError("{0} is not valid bool_string value".format(value))
                        value = value_lowered
                    elif isinstance(value, bool):
                        value = { True: "true", False: "false" }.get(value)
                    else:
                        raise SlackValidationError("{0} is not valid bool_string value".format(value))

        if value is not None:
            if param.get("choices") is not None:
                if not value in param.get("choices"):
                    raise SlackValidationError("{0} not is not a valid value for {1}".format(value, key))

        return value

    def _build_url(self):
        return self.base_url + self.url
