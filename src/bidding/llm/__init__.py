"""Claude-backed keyword quality evaluation."""

from bidding.llm.client import EVALUATION_MODEL, get_anthropic_client
from bidding.llm.evaluator import AnthropicKeywordEvaluator, request_verdicts
from bidding.llm.models import KeywordSignals, KeywordVerdict, KeywordVerdictBatch, decide

__all__ = [
    "EVALUATION_MODEL",
    "AnthropicKeywordEvaluator",
    "KeywordSignals",
    "KeywordVerdict",
    "KeywordVerdictBatch",
    "decide",
    "get_anthropic_client",
    "request_verdicts",
]
