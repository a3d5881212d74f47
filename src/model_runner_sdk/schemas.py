from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal, TypedDict

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator


class ChatMessage(TypedDict):
    """Chat completion message payload.

    Attributes:
        role: Message author role.
        content: Message text content.
    """

    role: Literal["system", "user", "assistant", "developer"]
    content: str


EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


class WireModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ModelConfig(WireModel):
    """Descriptive metadata reported for a stored model."""

    format: str = ""
    quantization: str = ""
    parameters: str = ""
    architecture: str = ""
    size: str = ""


class Model(WireModel):
    """A model listed by the runner."""

    id: str
    tags: list[str] = Field(default_factory=list)
    created: datetime = EPOCH  # unix seconds on the wire
    config: ModelConfig = Field(default_factory=ModelConfig)

    @field_validator("tags", mode="before")
    @classmethod
    def null_tags(cls, tags):
        return [] if tags is None else tags

    @field_validator("config", mode="before")
    @classmethod
    def null_config(cls, config):
        return {} if config is None else config

    @field_validator("created", mode="before")
    @classmethod
    def null_created(cls, created):
        return 0 if created is None else created

    @field_serializer("created")
    def serialize_created(self, created: datetime) -> int:
        return int(created.timestamp())


class OpenAIModel(WireModel):
    """A locally stored model using OpenAI conventions."""

    id: str
    object: str = "model"
    created: datetime = EPOCH  # unix seconds on the wire
    owned_by: str = ""

    @field_validator("created", mode="before")
    @classmethod
    def null_created(cls, created):
        return 0 if created is None else created

    @field_serializer("created")
    def serialize_created(self, created: datetime) -> int:
        return int(created.timestamp())


class OpenAIModelList(WireModel):
    object: str = "list"
    data: list[OpenAIModel] = Field(default_factory=list)


class ModelCreateRequest(WireModel):
    """Body of a pull request; `from` names the model to pull."""

    from_: str = Field(alias="from")


class ProgressMessage(WireModel):
    """A single line of a pull or push progress stream."""

    type: str
    message: str = ""


class ChunkDelta(WireModel):
    content: str | None = None
    role: str | None = None


class ChunkChoice(WireModel):
    delta: ChunkDelta = Field(default_factory=ChunkDelta)
    index: int = 0
    finish_reason: str | None = None


class ChatCompletionChunk(WireModel):
    """One server-sent event of a streamed chat completion."""

    id: str = ""
    object: str = ""
    created: int = 0
    model: str = ""
    choices: list[ChunkChoice] = Field(default_factory=list)

    @property
    def content(self) -> str:
        if not self.choices:
            return ""
        return self.choices[0].delta.content or ""


@dataclass
class RunnerStatus:
    """Reachability of the model runner.

    `error` is only set when the runner could not be queried for a reason
    other than reporting itself unavailable.
    """

    running: bool
    status: bytes = b""
    error: Exception | None = None


@dataclass
class ProgressResult:
    """Terminal outcome of a pull or push."""

    message: str
    progress_shown: bool = False
