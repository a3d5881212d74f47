"""Model Runner Python SDK public interface for managing and chatting with local models."""

import asyncio
from contextlib import closing
from functools import partial
from http import HTTPStatus
from http.client import HTTPException
from typing import Callable, Iterable
from urllib.parse import urlencode

from pydantic import TypeAdapter, ValidationError

from model_runner_sdk.config import SDKSettings
from model_runner_sdk.errors import (
    DecodeError,
    ModelNotFoundError,
    ModelRunnerError,
    ProgressError,
    ServiceUnavailableError,
    StatusError,
    StreamReadError,
    UnknownModelIdentifierError,
)
from model_runner_sdk.logger import logger
from model_runner_sdk.resolver import is_canonical_reference, resolve_model_id
from model_runner_sdk.schemas import (
    ChatMessage,
    Model,
    ModelCreateRequest,
    OpenAIModel,
    OpenAIModelList,
    ProgressResult,
    RunnerStatus,
)
from model_runner_sdk.streaming import EventKind, ProgressDecoder, iter_chat_deltas
from model_runner_sdk.transport import (
    INFERENCE_PREFIX,
    MODELS_PREFIX,
    RequestExecutor,
    Response,
    Transport,
    read_body,
    read_text,
)

ProgressSink = Callable[[str], None]

_model_list = TypeAdapter(list[Model])
_model = TypeAdapter(Model)
_openai_model_list = TypeAdapter(OpenAIModelList)
_openai_model = TypeAdapter(OpenAIModel)


def print_delta(delta: str) -> None:
    """Default chat sink: write assistant text as it arrives."""
    print(delta, end="", flush=True)


def status_line(response: Response) -> str:
    return f"{response.status} {response.reason}".strip()


def read_body_for_error(response: Response) -> str:
    try:
        return read_text(response)
    except StreamReadError as exc:
        return f"(failed to read response body: {exc.cause})"


def decode_body(adapter: TypeAdapter, raw: bytes):
    try:
        return adapter.validate_json(raw)
    except ValidationError as exc:
        raise DecodeError(f"failed to unmarshal response body: {exc}") from exc


class ModelRunnerClient:
    """Synchronous client for the model runner API.

    Every call issues its own requests and holds no state between calls apart
    from the transport configuration.
    """

    def __init__(
        self,
        executor: RequestExecutor | None = None,
        config: SDKSettings | None = None,
        transport: Transport | None = None,
    ):
        """Initialize a client.

        The runner address and timeout are sourced from global SDK config
        unless `config` is given.

        Args:
            executor: Callable performing a `urllib.request.Request`. Defaults to urllib.
            config: SDK settings to use instead of the global ones.
            transport: Fully built transport, overriding `executor` and `config`.
        """
        self.transport = transport or Transport.from_settings(config, executor)

    def status(self) -> RunnerStatus:
        """Report whether the runner is up.

        A runner that answers 503 is reported as not running without an error.

        Returns:
            Runner status with the engine status text when running.
        """
        try:
            response = self.transport.send("GET", MODELS_PREFIX)
        except ServiceUnavailableError:
            return RunnerStatus(running=False)
        except ModelRunnerError as exc:
            return RunnerStatus(running=False, error=exc)

        with closing(response):
            if response.status != HTTPStatus.OK:
                error = StatusError(f"unexpected status code: {response.status}", status=response.status)
                return RunnerStatus(running=False, error=error)

        return RunnerStatus(running=True, status=self._engine_status())

    def _engine_status(self) -> bytes:
        try:
            response = self.transport.send("GET", f"{INFERENCE_PREFIX}/status")
        except ModelRunnerError as exc:
            return f"error querying status: {exc}".encode()

        with closing(response):
            try:
                return response.read()
            except (OSError, HTTPException) as exc:
                return f"error reading status body: {exc}".encode()

    def pull(self, model: str, progress: ProgressSink | None = None) -> ProgressResult:
        """Pull a model into the runner's store.

        Args:
            model: Reference of the model to pull.
            progress: Called with each progress message, in order.

        Returns:
            The runner's success message.

        Raises:
            ProgressError: If the runner reports a failure in the stream.
            StreamTruncatedError: If the stream ends without a result.
        """
        response = self.transport.send("POST", f"{MODELS_PREFIX}/create", ModelCreateRequest(from_=model))
        with closing(response):
            if response.status != HTTPStatus.OK:
                body = read_body_for_error(response)
                raise StatusError(
                    f"pulling {model} failed with status {status_line(response)}: {body}",
                    status=response.status,
                    body=body,
                )
            return self._follow_progress(response, "pulling", model, progress)

    def push(self, model: str, progress: ProgressSink | None = None) -> ProgressResult:
        """Push a model from the runner's store to its registry.

        Args:
            model: Reference of the model to push.
            progress: Called with each progress message, in order.

        Returns:
            The runner's success message.
        """
        response = self.transport.send("POST", f"{MODELS_PREFIX}/{model}/push")
        with closing(response):
            if response.status != HTTPStatus.OK:
                body = read_body_for_error(response)
                raise StatusError(
                    f"pushing {model} failed with status {status_line(response)}: {body}",
                    status=response.status,
                    body=body,
                )
            return self._follow_progress(response, "pushing", model, progress)

    def _follow_progress(
        self, response: Response, operation: str, model: str, progress: ProgressSink | None
    ) -> ProgressResult:
        progress_shown = False
        result = None
        for event in ProgressDecoder(response, operation, model):
            if event.kind is EventKind.PROGRESS:
                if progress is not None:
                    progress(event.message)
                progress_shown = True
            elif event.kind is EventKind.SUCCESS:
                result = ProgressResult(message=event.message, progress_shown=progress_shown)
            else:
                raise ProgressError(f"error {operation} model: {event.message}", server_message=event.message)
        return result

    def list_models(self) -> list[Model]:
        """List the models in the runner's store."""
        return decode_body(_model_list, self._get(MODELS_PREFIX))

    def list_openai_models(self) -> OpenAIModelList:
        """List the models in the runner's store in OpenAI format."""
        return decode_body(_openai_model_list, self._get(f"{INFERENCE_PREFIX}/v1/models"))

    def inspect(self, model: str) -> Model:
        """Describe one model.

        Short IDs and digests are expanded against the catalog first; an
        identifier that matches nothing is an error.

        Raises:
            UnknownModelIdentifierError: If a short ID or digest matches no model.
            ModelNotFoundError: If the runner does not know the model.
        """
        if model and not is_canonical_reference(model):
            model = resolve_model_id(model, self.list_models)
        return decode_body(_model, self._get(f"{MODELS_PREFIX}/{model}", model))

    def inspect_openai(self, model: str) -> OpenAIModel:
        """Describe one model in OpenAI format."""
        if not model:
            raise UnknownModelIdentifierError(model)
        if not is_canonical_reference(model):
            model = resolve_model_id(model, self.list_models)
        return decode_body(_openai_model, self._get(f"{INFERENCE_PREFIX}/v1/models/{model}", model))

    def _get(self, route: str, model: str = "") -> bytes:
        with closing(self.transport.send("GET", route)) as response:
            if response.status != HTTPStatus.OK:
                body = read_body_for_error(response)
                if model and response.status == HTTPStatus.NOT_FOUND:
                    raise ModelNotFoundError(model)
                raise StatusError(
                    f"failed to list models: {status_line(response)}", status=response.status, body=body
                )
            return read_body(response)

    def _resolve_or_keep(self, model: str) -> str:
        if is_canonical_reference(model):
            return model
        try:
            return resolve_model_id(model, self.list_models)
        except ModelRunnerError as exc:
            logger.debug(f"Using {model} as given: {exc}")
            return model

    def chat(
        self,
        model: str,
        prompt: str,
        history: list[ChatMessage] | None = None,
        on_delta: ProgressSink | None = None,
    ) -> ChatMessage:
        """Stream a chat completion.

        Args:
            model: Model reference, short ID or digest.
            prompt: User prompt content.
            history: Optional prior conversation messages.
            on_delta: Called with each fragment of assistant text. Prints to
                stdout by default.

        Returns:
            The assembled assistant message.
        """
        model = self._resolve_or_keep(model)

        messages: list[ChatMessage] = list(history) if history else []
        messages.append({"role": "user", "content": prompt})
        data: dict = {
            "model": model,
            "messages": messages,
            "stream": True,
        }
        sink = on_delta or print_delta

        response = self.transport.send("POST", f"{INFERENCE_PREFIX}/v1/chat/completions", data)
        with closing(response):
            if response.status != HTTPStatus.OK:
                body = read_body_for_error(response)
                raise StatusError(
                    f"error response: status={response.status} body={body}", status=response.status, body=body
                )

            parts = []
            for delta in iter_chat_deltas(response):
                sink(delta)
                parts.append(delta)

        return ChatMessage(role="assistant", content="".join(parts))

    def remove(self, models: Iterable[str], force: bool = False) -> str:
        """Remove models, stopping at the first failure.

        Returns:
            One confirmation line per removed model.

        Raises:
            ModelNotFoundError: If a model does not exist. The confirmations
                gathered so far are attached as `partial_result`.
            StatusError: If the runner refuses a removal.
        """
        removed = ""
        for model in models:
            model = self._resolve_or_keep(model)
            try:
                self._remove_one(model, force)
            except ModelRunnerError as exc:
                exc.partial_result = removed
                raise
            removed += f"Model {model} removed successfully\n"
        return removed

    def _remove_one(self, model: str, force: bool) -> None:
        path = f"{MODELS_PREFIX}/{model}?force={str(force).lower()}"
        with closing(self.transport.send("DELETE", path)) as response:
            if response.status == HTTPStatus.OK:
                return
            if response.status == HTTPStatus.NOT_FOUND:
                raise ModelNotFoundError(model, message=f"no such model: {model}")
            body = read_body_for_error(response)
            raise StatusError(
                f"removing {model} failed with status {status_line(response)}: {body}",
                status=response.status,
                body=body,
            )

    def tag(self, source: str, target_repo: str, target_tag: str) -> str:
        """Add a tag to a model.

        Returns:
            The runner's confirmation text.
        """
        source = self._resolve_or_keep(source)
        query = urlencode({"repo": target_repo, "tag": target_tag})

        with closing(self.transport.send("POST", f"{MODELS_PREFIX}/{source}/tag?{query}")) as response:
            if response.status != HTTPStatus.CREATED:
                body = read_body_for_error(response)
                raise StatusError(
                    f"tagging failed with status {status_line(response)}: {body}", status=response.status, body=body
                )
            return read_text(response)


class AsyncModelRunnerClient:
    """Asyncio-friendly model runner interface.

    Each operation runs the synchronous client in the default executor, so a
    single operation still issues its requests one at a time.
    """

    def __init__(
        self,
        executor: RequestExecutor | None = None,
        config: SDKSettings | None = None,
        transport: Transport | None = None,
    ):
        self.client = ModelRunnerClient(executor=executor, config=config, transport=transport)

    async def _run(self, func, *args, **kwargs):
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    async def status(self) -> RunnerStatus:
        return await self._run(self.client.status)

    async def pull(self, model: str, progress: ProgressSink | None = None) -> ProgressResult:
        return await self._run(self.client.pull, model, progress)

    async def push(self, model: str, progress: ProgressSink | None = None) -> ProgressResult:
        return await self._run(self.client.push, model, progress)

    async def list_models(self) -> list[Model]:
        return await self._run(self.client.list_models)

    async def list_openai_models(self) -> OpenAIModelList:
        return await self._run(self.client.list_openai_models)

    async def inspect(self, model: str) -> Model:
        return await self._run(self.client.inspect, model)

    async def inspect_openai(self, model: str) -> OpenAIModel:
        return await self._run(self.client.inspect_openai, model)

    async def chat(
        self,
        model: str,
        prompt: str,
        history: list[ChatMessage] | None = None,
        on_delta: ProgressSink | None = None,
    ) -> ChatMessage:
        """Stream a chat completion.

        `on_delta` is called from the executor thread.
        """
        return await self._run(self.client.chat, model, prompt, history=history, on_delta=on_delta)

    async def remove(self, models: Iterable[str], force: bool = False) -> str:
        return await self._run(self.client.remove, list(models), force=force)

    async def tag(self, source: str, target_repo: str, target_tag: str) -> str:
        return await self._run(self.client.tag, source, target_repo, target_tag)
