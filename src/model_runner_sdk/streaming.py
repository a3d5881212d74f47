"""Decoders for the runner's streamed responses.

Pull and push report progress as newline-delimited JSON objects of the form
``{"type": "progress" | "success" | "error", "message": "..."}``. The runner
HTML-escapes those payloads, so each line is unescaped before it is parsed.

Chat completions stream as server-sent events: ``data: {...}`` lines carrying
OpenAI chunk objects, closed by ``data: [DONE]``.
"""

import html
from dataclasses import dataclass
from enum import Enum
from http.client import HTTPException
from typing import Iterable, Iterator

from pydantic import ValidationError

from model_runner_sdk.errors import DecodeError, StreamReadError, StreamTruncatedError
from model_runner_sdk.schemas import ChatCompletionChunk, ProgressMessage

SSE_DATA_PREFIX = "data: "
SSE_DONE_MARKER = "[DONE]"


class EventKind(str, Enum):
    PROGRESS = "progress"
    SUCCESS = "success"
    ERROR = "error"


TERMINAL_KINDS = frozenset({EventKind.SUCCESS, EventKind.ERROR})


@dataclass(frozen=True)
class ProgressEvent:
    kind: EventKind
    message: str

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS


class StreamState(str, Enum):
    AWAITING_TERMINAL = "awaiting-terminal"
    TERMINAL_REACHED = "terminal-reached"
    CLOSED = "closed"


def iter_lines(raw_lines: Iterable[bytes | str]) -> Iterator[str]:
    """Yield decoded lines with their line terminator removed.

    Raises:
        StreamReadError: If the connection fails mid-body.
        DecodeError: If a line is not valid UTF-8.
    """
    lines = iter(raw_lines)
    while True:
        try:
            raw = next(lines)
        except StopIteration:
            return
        except (OSError, HTTPException) as exc:
            raise StreamReadError(exc) from exc

        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise DecodeError(f"error decoding stream line: {exc}", raw=repr(raw)) from exc
        yield raw.rstrip("\r\n")



def decode_progress_line(line: str) -> ProgressEvent:
    """Unescape and parse a single progress line.

    Raises:
        DecodeError: If the line is not a progress message or its type is unknown.
    """
    try:
        message = ProgressMessage.model_validate_json(html.unescape(line))
    except ValidationError as exc:
        raise DecodeError(f"error parsing progress message: {exc}", raw=line) from exc

    try:
        kind = EventKind(message.type)
    except ValueError:
        raise DecodeError(f"unknown message type: {message.type}", raw=message.type) from None

    return ProgressEvent(kind=kind, message=message.message)


class ProgressDecoder:
    """Lazily decode a progress stream into events.

    The decoder stops reading as soon as a terminal event is produced. The
    last event is always either `success` or `error`; if the stream closes
    before one arrives, `StreamTruncatedError` is raised instead. A decoder
    can only be iterated once.

    Args:
        lines: Raw lines of the response body.
        operation: Verb used in truncation messages, e.g. ``"pulling"``.
        model: Model the stream belongs to.
    """

    def __init__(self, lines: Iterable[bytes | str], operation: str, model: str):
        self._lines = lines
        self.operation = operation
        self.model = model
        self.state = StreamState.AWAITING_TERMINAL
        self._started = False

    def __iter__(self) -> Iterator[ProgressEvent]:
        if self._started:
            raise RuntimeError("progress stream can only be consumed once")
        self._started = True
        return self._events()

    def _events(self) -> Iterator[ProgressEvent]:
        try:
            for line in iter_lines(self._lines):
                if not line.strip():
                    continue

                event = decode_progress_line(line)
                if event.is_terminal:
                    self.state = StreamState.TERMINAL_REACHED
                yield event
                if self.state is StreamState.TERMINAL_REACHED:
                    return

            raise StreamTruncatedError(self.operation, self.model)
        finally:
            self.state = StreamState.CLOSED


def iter_chat_deltas(raw_lines: Iterable[bytes | str]) -> Iterator[str]:
    """Yield the non-empty assistant text fragments of a chat stream.

    Raises:
        DecodeError: If any data line is not a valid chunk.
        StreamReadError: If the connection fails mid-stream.
    """
    for line in iter_lines(raw_lines):
        if not line.startswith(SSE_DATA_PREFIX):
            continue

        data = line[len(SSE_DATA_PREFIX) :]
        if data == SSE_DONE_MARKER:
            return

        try:
            chunk = ChatCompletionChunk.model_validate_json(data)
        except ValidationError as exc:
            raise DecodeError(f"error parsing stream response: {exc}", raw=data) from exc

        if content := chunk.content:
            yield content
