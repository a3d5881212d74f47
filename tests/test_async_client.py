import asyncio
import threading

import pytest

from model_runner_sdk.errors import ModelNotFoundError, ServiceUnavailableError
from model_runner_sdk.main import AsyncModelRunnerClient


@pytest.fixture
def async_client(transport):
    return AsyncModelRunnerClient(transport=transport)


@pytest.mark.asyncio
async def test_async_pull_forwards_progress_from_worker_thread(async_client, executor):
    executor.add(
        "POST",
        "/models/create",
        body='{"type":"progress","message":"10%"}\n{"type":"success","message":"Model pulled successfully"}\n',
    )
    seen = []

    def _progress(message):
        seen.append((message, threading.current_thread() is threading.main_thread()))

    result = await async_client.pull("ai/smollm2", progress=_progress)
    assert result.message == "Model pulled successfully"
    assert seen == [("10%", False)]


@pytest.mark.asyncio
async def test_async_status_reports_unavailable(async_client, executor):
    executor.add("GET", "/models", status=503)
    status = await async_client.status()
    assert status.running is False
    assert status.error is None


@pytest.mark.asyncio
async def test_async_chat(async_client, executor):
    executor.add(
        "POST",
        "/engines/v1/chat/completions",
        body='data: {"choices":[{"delta":{"content":"Hi"}}]}\n\ndata: [DONE]\n\n',
    )
    reply = await async_client.chat("ai/smollm2", "Hello", on_delta=lambda _delta: None)
    assert reply == {"role": "assistant", "content": "Hi"}


@pytest.mark.asyncio
async def test_async_remove_keeps_partial_result(async_client, executor):
    executor.add("DELETE", "/models/ai/a?force=true")
    executor.add("DELETE", "/models/ai/b?force=true", status=404)
    with pytest.raises(ModelNotFoundError) as exc_info:
        await async_client.remove(iter(["ai/a", "ai/b"]), force=True)
    assert exc_info.value.partial_result == "Model ai/a removed successfully\n"


@pytest.mark.asyncio
async def test_async_operations_are_independent(async_client, executor, catalog):
    executor.add("GET", "/models", body=catalog)
    executor.add("GET", "/engines/v1/models", body={"object": "list", "data": []})
    models, openai_models = await asyncio.gather(async_client.list_models(), async_client.list_openai_models())
    assert len(models) == len(catalog)
    assert openai_models.data == []


@pytest.mark.asyncio
async def test_async_inspect_propagates_unavailability(async_client, executor):
    executor.add("GET", "/models/ai/smollm2", status=503)
    with pytest.raises(ServiceUnavailableError):
        await async_client.inspect("ai/smollm2")


@pytest.mark.asyncio
async def test_async_tag(async_client, executor):
    executor.add("POST", "/models/ai/smollm2/tag?repo=myorg%2Fsmollm2&tag=v1", status=201, body="tagged")
    assert await async_client.tag("ai/smollm2", "myorg/smollm2", "v1") == "tagged"
    assert executor.requests[0]["path"] == "/models/ai/smollm2/tag?repo=myorg%2Fsmollm2&tag=v1"
