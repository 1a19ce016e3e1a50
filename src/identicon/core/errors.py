"""Error taxonomy for the identicon pipeline.

Every failure the service can report is an :class:`IdenticonError` subclass.
Pipeline stages and the request gate raise them; only the HTTP layer
(:mod:`identicon.api.main`) translates them into status codes, using the
``status_code`` and ``retriable`` attributes declared here.

========================  ======  =========  ==================================
Error                     Status  Retriable  Raised by
========================  ======  =========  ==================================
``InputTooLong``          400     no         input extraction, ``derive()``
``InputMalformed``        400     no         input extraction
``ServiceOverloaded``     503     yes        ``RequestGate.acquire()``
``GateTimeout``           503     yes        ``RequestGate.acquire()``
``ClientDisconnected``    499     no         HTTP endpoint disconnect watcher
``EncodingFailed``        500     no         ``encode()``
========================  ======  =========  ==================================
"""

from __future__ import annotations


class IdenticonError(Exception):
    """Base class for all identicon service errors.

    Attributes:
        kind: Stable machine-readable name of the failure, echoed to clients
            in the ``error`` field of JSON error bodies.
        status_code: HTTP status the endpoint responds with.
        retriable: Whether a client may reasonably retry the same request.
        message: Client-safe description of the failure.
    """

    kind: str = "internal_error"
    status_code: int = 500
    retriable: bool = False
    default_message: str = "internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InputTooLong(IdenticonError):
    """The input identifier exceeds the maximum accepted length."""

    kind = "input_too_long"
    status_code = 400
    default_message = "input identifier is too long"

    def __init__(self, length: int, max_length: int) -> None:
        self.length = length
        self.max_length = max_length
        super().__init__(f"input identifier is {length} bytes, maximum is {max_length}")


class InputMalformed(IdenticonError):
    """The input identifier could not be extracted from the request."""

    kind = "input_malformed"
    status_code = 400
    default_message = "input identifier is malformed"


class ServiceOverloaded(IdenticonError):
    """The gate's wait queue is full; the request was shed on arrival."""

    kind = "service_overloaded"
    status_code = 503
    retriable = True
    default_message = "service is overloaded, try again later"


class GateTimeout(IdenticonError):
    """The request waited longer than the gate timeout for a rendering slot."""

    kind = "gate_timeout"
    status_code = 503
    retriable = True
    default_message = "timed out waiting for a rendering slot, try again later"


class ClientDisconnected(IdenticonError):
    """The client went away before the response was ready."""

    kind = "client_disconnected"
    status_code = 499
    default_message = "client closed request"


class EncodingFailed(IdenticonError):
    """The encoder hit an internal inconsistency.

    This should be unreachable for buffers produced by the rasterizer and is
    always logged as an unexpected fault.
    """

    kind = "encoding_failed"
    status_code = 500
    default_message = "image encoding failed"
