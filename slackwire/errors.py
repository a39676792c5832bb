
class SlackError(Exception):
    pass


class SlackAPIError(SlackError):
    """Raised when a call returns a non-2xx status or an ``ok: false`` envelope.

    error           the server's error string (or "http_error"/"invalid_response")
    detail          optional human readable detail
    status_code     the HTTP status of the response, if any
    """

    def __init__(self, error, detail=None, status_code=None):
        self.error = error
        self.detail = detail
        self.status_code = status_code
        message = error if detail is None else "{0}: {1}".format(error, detail)
        super().__init__(message)


class SlackTransportError(SlackError):
    pass


class SlackValidationError(SlackError, ValueError):
    pass
