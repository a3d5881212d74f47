"""Public SDK exports for the Model Runner Python SDK."""

from . import main
from .config import FrozenSDKSettings, SDKSettings, get_base_url, get_sdk_config, settings
from .errors import (
    DecodeError,
    ModelNotFoundError,
    ModelRunnerError,
    ProgressError,
    ServiceUnavailableError,
    StatusError,
    StreamReadError,
    StreamTruncatedError,
    TransportError,
    UnknownModelIdentifierError,
)
from .main import AsyncModelRunnerClient, ModelRunnerClient
from .resolver import resolve_model_id
from .schemas import ChatMessage, Model, OpenAIModel, OpenAIModelList, ProgressResult, RunnerStatus
from .transport import Transport, UrllibExecutor

__version__ = "0.1.0"
