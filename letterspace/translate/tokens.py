"""
Token usage budget for AI calls.

The budget is a base allowance of one million tokens plus one million per
purchased top-up. Counters persist in the key-value settings store.
"""

from __future__ import annotations

from typing import Optional

from letterspace.config import DEFAULT_MAX_TOKENS
from letterspace.settings import KeyValueStore

USAGE_KEY = "com.letterspace.geminiTokenUsage"
ADDITIONAL_KEY = "com.letterspace.additionalTokens"

BASE_TOKEN_LIMIT = 1_000_000
ADDITIONAL_TOKENS_AMOUNT = 1_000_000
ADDITIONAL_TOKENS_PRICE = "$5"


def estimate_tokens(text: str, max_tokens: int = DEFAULT_MAX_TOKENS) -> int:
    """Rough cost estimate: one token per four characters plus the reply budget."""
    return len(text) // 4 + max_tokens


class TokenUsage:
    """Persistent token counter with a purchasable limit."""

    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store or KeyValueStore()

    @property
    def current_usage(self) -> int:
        return self.store.get_int(USAGE_KEY)

    @property
    def additional_tokens_purchased(self) -> int:
        return self.store.get_int(ADDITIONAL_KEY)

    @property
    def total_limit(self) -> int:
        return BASE_TOKEN_LIMIT + self.additional_tokens_purchased * ADDITIONAL_TOKENS_AMOUNT

    def can_use(self, token_count: int) -> bool:
        return self.current_usage + token_count <= self.total_limit

    def record(self, token_count: int) -> int:
        return self.store.increment(USAGE_KEY, token_count)

    def remaining(self) -> int:
        return max(0, self.total_limit - self.current_usage)

    def usage_fraction(self) -> float:
        return self.current_usage / self.total_limit

    def purchase_additional(self) -> int:
        return self.store.increment(ADDITIONAL_KEY)

    def reset(self) -> None:
        """Start a new billing period."""
        self.store.set(USAGE_KEY, 0)
