"""Anthropic client factory and model configuration for keyword evaluation."""

from anthropic import Anthropic

# Haiku: batch classification is high-volume and latency-tolerant
EVALUATION_MODEL = "claude-haiku-4-5"

BATCH_SIZE = 50
MAX_BATCHES = 40
MAX_TOKENS = 4000

BID_THRESHOLD = 60
SKIP_THRESHOLD = 30

# A keyword is not re-evaluated within this window
EVAL_COOLDOWN_HOURS = 72


def get_anthropic_client(api_key: str | None = None) -> Anthropic:
    """Create an Anthropic client.

    Without *api_key* the constructor reads ANTHROPIC_API_KEY from the
    environment.

    Returns:
        Configured Anthropic client instance.
    """
    if api_key:
        return Anthropic(api_key=api_key)
    return Anthropic()
