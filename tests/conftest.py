import io
import json
from urllib.parse import urlsplit

import pytest

from model_runner_sdk.main import ModelRunnerClient
from model_runner_sdk.transport import Transport

TEST_BASE_URL = "http://localhost/exp/vDD4.40"


class FakeResponse(io.BytesIO):
    """In-memory response body; `error` is raised once the body runs out."""

    def __init__(self, status: int = 200, body: bytes | str = b"", reason: str = "", error: BaseException | None = None):
        if isinstance(body, str):
            body = body.encode()
        super().__init__(body)
        self.status = status
        self.reason = reason
        self.error = error

    def __iter__(self):
        if self.error is None:
            return super().__iter__()
        return self._lines_then_error()

    def _lines_then_error(self):
        while line := self.readline():
            yield line
        raise self.error

    def read(self, size: int | None = -1) -> bytes:
        if self.error is not None:
            raise self.error
        return super().read(size)


class FakeExecutor:
    """Answer requests from a table of canned responses, in order per route."""

    def __init__(self):
        self.routes: dict[tuple[str, str], list] = {}
        self.requests: list[dict] = []
        self.responses: list[FakeResponse] = []

    def add(
        self,
        method: str,
        path: str,
        status: int = 200,
        body: bytes | str | list | dict = b"",
        reason: str = "",
        error: BaseException | None = None,
    ):
        if isinstance(body, (list, dict)):
            body = json.dumps(body)
        self.routes.setdefault((method, path), []).append((status, body, reason, error))

    def fail(self, method: str, path: str, exc: BaseException):
        self.routes.setdefault((method, path), []).append(exc)

    def calls(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r["method"] == method and r["path"] == path)

    def __call__(self, request):
        split = urlsplit(request.full_url)
        path = split.path.removeprefix(urlsplit(TEST_BASE_URL).path)
        if split.query:
            path = f"{path}?{split.query}"
        self.requests.append(
            {
                "method": request.get_method(),
                "path": path,
                "headers": dict(request.header_items()),
                "data": request.data,
            }
        )

        queue = self.routes.get((request.get_method(), path))
        if not queue:
            raise AssertionError(f"unexpected request {request.get_method()} {path}")
        answer = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(answer, BaseException):
            raise answer
        response = FakeResponse(*answer)
        self.responses.append(response)
        return response


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def transport(executor):
    return Transport(executor=executor, base_url=TEST_BASE_URL)


@pytest.fixture
def client(transport):
    return ModelRunnerClient(transport=transport)


@pytest.fixture
def catalog():
    return [
        {
            "id": "sha256:abc123456789def0000000000000000000000000000000000000000000000000",
            "tags": ["ai/smollm2:latest"],
            "created": 1682179200,
            "config": {"format": "gguf", "quantization": "Q4_K_M", "parameters": "361.82 M"},
        },
        {
            "id": "sha256:fedcba987654321000000000000000000000000000000000000000000000000",
            "tags": ["ai/llama3.2:1B-Q8_0"],
            "created": 1700000000,
            "config": {},
        },
    ]
