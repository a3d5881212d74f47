"""Package logger for the Model Runner SDK."""

import logging

logger = logging.getLogger("model_runner_sdk")
logger.addHandler(logging.NullHandler())
