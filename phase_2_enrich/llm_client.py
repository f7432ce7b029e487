"""
Anthropic client wrapper for the enrichment passes.

One call = one event. Rate limits back off exponentially, other API errors
retry linearly; after MAX_RETRIES the last error is raised so the batch
runner can count it.
"""
import time
from functools import lru_cache
from typing import Dict, Optional, Tuple

import anthropic
import tiktoken

from config import require_api_key

MAX_RETRIES = 3
RETRY_DELAY_BASE = 5  # seconds

# Prices per million tokens
PRICING = {
    "claude-haiku-4-5-20251001": {"input": 0.80, "output": 4.00},
    "claude-sonnet-4-5-20250929": {"input": 3.00, "output": 15.00},
}


class LLMCallError(RuntimeError):
    """All retries for one enrichment call failed."""


def estimate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """Estimate API cost in dollars."""
    prices = PRICING.get(model, {"input": 15.0, "output": 75.0})
    return (input_tokens * prices["input"] + output_tokens * prices["output"]) / 1_000_000


@lru_cache(maxsize=1)
def _encoder():
    return tiktoken.get_encoding("cl100k_base")


def count_tokens(text: str) -> int:
    """Count tokens using tiktoken (cl100k_base is close enough for cost estimates)."""
    if not text:
        return 0
    return len(_encoder().encode(text, disallowed_special=()))


class LLMClient:
    """Retrying single-prompt completion."""

    def __init__(self, client=None, max_retries: int = MAX_RETRIES,
                 retry_delay_base: float = RETRY_DELAY_BASE, sleep=time.sleep):
        self._client = client
        self.max_retries = max_retries
        self.retry_delay_base = retry_delay_base
        self._sleep = sleep

    @property
    def client(self):
        if self._client is None:
            self._client = anthropic.Anthropic(api_key=require_api_key())
        return self._client

    def complete(self, model: str, system_prompt: str, user_prompt: str,
                 max_tokens: int) -> Tuple[str, Dict]:
        """Returns (response_text, usage). Raises LLMCallError when retries run out."""
        usage = {"input_tokens": 0, "output_tokens": 0, "cost": 0.0, "retries": 0}
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries):
            try:
                response = self.client.messages.create(
                    model=model,
                    max_tokens=max_tokens,
                    system=system_prompt,
                    messages=[{"role": "user", "content": user_prompt}],
                )
                usage["input_tokens"] = response.usage.input_tokens
                usage["output_tokens"] = response.usage.output_tokens
                usage["cost"] = estimate_cost(model, response.usage.input_tokens,
                                              response.usage.output_tokens)
                text = response.content[0].text if response.content else ""
                return text, usage

            except anthropic.RateLimitError as e:
                last_error = e
                usage["retries"] = attempt + 1
                self._sleep(self.retry_delay_base * (2 ** attempt))

            except anthropic.APIError as e:
                last_error = e
                usage["retries"] = attempt + 1
                if attempt < self.max_retries - 1:
                    self._sleep(self.retry_delay_base * (attempt + 1))

        raise LLMCallError(f"failed after {self.max_retries} attempts: {last_error}")
