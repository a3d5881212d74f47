import pytest

from model_runner_sdk.config import ConnectionSettings, SDKSettings, get_sdk_config
from model_runner_sdk.main import ModelRunnerClient


@pytest.fixture
def runner_client():
    """A client for a live runner; skips when none answers."""
    connection = get_sdk_config().connection.model_dump()
    connection["timeout"] = connection["timeout"] or 2
    client = ModelRunnerClient(config=SDKSettings(connection=ConnectionSettings(**connection)))

    # E2E requires a runner that answers, not just a configured address.
    if not client.status().running:
        pytest.skip("No reachable Docker Model Runner")
    return client


@pytest.fixture
def small_model():
    """A small model suitable for integration testing."""
    return "ai/smollm2:360M-Q4_K_M"
