"""Typed failures raised by the Model Runner SDK."""


class ModelRunnerError(Exception):
    """Base class for every error raised by the SDK.

    Attributes:
        partial_result: Output accumulated by a batch operation before it failed.
    """

    partial_result: str | None = None


class ServiceUnavailableError(ModelRunnerError):
    """The runner answered 503 and is not ready to serve requests."""

    def __init__(self, message: str = "service unavailable"):
        super().__init__(message)


class TransportError(ModelRunnerError):
    """The request could not be completed at the connection level."""

    def __init__(self, path: str, cause: BaseException):
        super().__init__(f"error querying {path}: {cause}")
        self.path = path
        self.cause = cause


class StreamReadError(ModelRunnerError):
    """The connection failed while a response body was being read."""

    def __init__(self, cause: BaseException):
        super().__init__(f"error reading response stream: {cause}")
        self.cause = cause


class StatusError(ModelRunnerError):
    """The runner answered with an unexpected non-2xx status."""

    def __init__(self, message: str, status: int | None = None, body: str = ""):
        super().__init__(message)
        self.status = status
        self.body = body


class ModelNotFoundError(ModelRunnerError):
    """An identifier-scoped request returned 404."""

    def __init__(self, model: str, message: str | None = None):
        super().__init__(message or f"model not found: {model}")
        self.model = model


class UnknownModelIdentifierError(ModelRunnerError):
    """No catalog entry matched a short ID or digest."""

    def __init__(self, token: str):
        super().__init__(f"model with ID {token} not found")
        self.token = token


class DecodeError(ModelRunnerError):
    """A response body or stream line could not be decoded."""

    def __init__(self, message: str, raw: str | None = None):
        super().__init__(message)
        self.raw = raw


class StreamTruncatedError(ModelRunnerError):
    """A progress stream closed before a terminal message was read."""

    def __init__(self, operation: str, model: str):
        super().__init__(f"unexpected end of stream while {operation} model {model}")
        self.operation = operation
        self.model = model


class ProgressError(ModelRunnerError):
    """The runner reported a failure inside a progress stream."""

    def __init__(self, message: str, server_message: str = ""):
        super().__init__(message)
        self.server_message = server_message
