"""HTTP transport for the model runner API."""

import json
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from http import HTTPStatus
from http.client import HTTPException
from typing import Any, Callable, Protocol

from pydantic import BaseModel

from model_runner_sdk.config import SDKSettings, get_base_url, get_sdk_config
from model_runner_sdk.errors import ServiceUnavailableError, StreamReadError, TransportError
from model_runner_sdk.logger import logger

MODELS_PREFIX = "/models"
INFERENCE_PREFIX = "/engines"


class Response(Protocol):
    """The parts of an HTTP response the SDK reads."""

    status: int
    reason: str

    def read(self, amt: int | None = None) -> bytes: ...

    def __iter__(self): ...

    def close(self) -> None: ...


RequestExecutor = Callable[[urllib.request.Request], Response]


class UrllibExecutor:
    """Default request executor built on urllib.

    Non-2xx answers come back as responses rather than exceptions so that the
    transport can classify them.
    """

    def __init__(self, timeout: float | None = None, opener: urllib.request.OpenerDirector | None = None):
        self.timeout = timeout
        self.opener = opener or urllib.request.build_opener()

    def __call__(self, request: urllib.request.Request) -> Response:
        try:
            if self.timeout is None:
                return self.opener.open(request)
            return self.opener.open(request, timeout=self.timeout)
        except urllib.error.HTTPError as exc:
            return exc


def encode_body(body: Any) -> bytes:
    if isinstance(body, BaseModel):
        return body.model_dump_json(by_alias=True).encode("utf-8")
    return json.dumps(body).encode("utf-8")


@dataclass
class Transport:
    """Issue one request per call against the runner and classify unavailability."""

    executor: RequestExecutor
    base_url: str = field(default_factory=get_base_url)

    @classmethod
    def from_settings(cls, config: SDKSettings | None = None, executor: RequestExecutor | None = None) -> "Transport":
        config = config or get_sdk_config()
        if executor is None:
            executor = UrllibExecutor(timeout=config.connection.timeout)
        return cls(executor=executor, base_url=get_base_url(config))

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def send(self, method: str, path: str, body: Any = None) -> Response:
        """Send a request and hand the open response to the caller.

        Args:
            method: HTTP method.
            path: Route relative to the runner base address, query included.
            body: Optional JSON-serializable payload or pydantic model.

        Returns:
            The open response. The caller must close it.

        Raises:
            ServiceUnavailableError: If the runner answers 503.
            TransportError: If the request could not be performed.
        """
        headers = {}
        data = None
        if body is not None:
            data = encode_body(body)
            headers["Content-Type"] = "application/json"

        request = urllib.request.Request(self.url(path), data=data, headers=headers, method=method)
        logger.debug(f"{method} {request.full_url}")

        try:
            response = self.executor(request)
        except (urllib.error.URLError, HTTPException, OSError) as exc:
            raise TransportError(path, exc) from exc

        if response.status == HTTPStatus.SERVICE_UNAVAILABLE:
            response.close()
            logger.debug(f"{method} {path} answered 503, runner is not ready")
            raise ServiceUnavailableError()

        return response


def read_text(response: Response) -> str:
    """Read the remaining body of a response as text."""
    return read_body(response).decode("utf-8", errors="replace")


def read_body(response: Response) -> bytes:
    """Read the remaining body of a successful response.

    Raises:
        StreamReadError: If the connection fails before the body is complete.
    """
    try:
        return response.read()
    except (OSError, HTTPException) as exc:
        raise StreamReadError(exc) from exc
