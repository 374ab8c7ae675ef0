"""Resilient LLM calls for homework and daily-question generation.

resilient_llm_call() sends one prompt to OpenAI or Anthropic, retries
rate limits and network failures with tenacity, stops calling a provider
that keeps failing, and logs an estimate of the tokens and cost spent.
Responses are never cached: every generation request must produce fresh
questions.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from dataclasses import asdict, dataclass

import anthropic
import openai
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

# Seconds before a single provider request is abandoned
REQUEST_TIMEOUT = float(os.getenv("LLM_REQUEST_TIMEOUT", "60"))
MAX_OUTPUT_TOKENS = 4096


class CircuitOpenError(RuntimeError):
    """The provider failed too often recently and is not being called."""


class TransientLLMError(Exception):
    """A provider failure worth retrying."""


# ── Circuit Breaker ─────────────────────────────────────────

@dataclass
class _ProviderHealth:
    consecutive_failures: int = 0
    opened_at: float | None = None
    probing: bool = False


class CircuitBreaker:
    """Per-provider breaker.

    After FAILURE_THRESHOLD consecutive failures the provider is skipped
    for RECOVERY_TIMEOUT seconds. The first call after that window is a
    trial: success closes the breaker, failure opens it again.
    """

    FAILURE_THRESHOLD = 3
    RECOVERY_TIMEOUT = 60.0

    def __init__(self) -> None:
        self._health: dict[str, _ProviderHealth] = {}
        self._lock = threading.Lock()

    def _entry(self, provider: str) -> _ProviderHealth:
        return self._health.setdefault(provider, _ProviderHealth())

    def allow(self, provider: str) -> bool:
        with self._lock:
            health = self._entry(provider)
            if health.opened_at is None:
                return True
            if time.monotonic() - health.opened_at >= self.RECOVERY_TIMEOUT:
                health.opened_at = None
                health.probing = True
                return True
            return False

    def record_success(self, provider: str) -> None:
        with self._lock:
            self._health[provider] = _ProviderHealth()

    def record_failure(self, provider: str) -> None:
        with self._lock:
            health = self._entry(provider)
            health.consecutive_failures += 1
            if health.probing or health.consecutive_failures >= self.FAILURE_THRESHOLD:
                health.opened_at = time.monotonic()
                health.probing = False
                logger.warning("LLM provider %s disabled for %.0fs after %d failures",
                               provider, self.RECOVERY_TIMEOUT, health.consecutive_failures)

    def state(self, provider: str) -> str:
        with self._lock:
            health = self._entry(provider)
            if health.opened_at is not None:
                return "open"
            return "half_open" if health.probing else "closed"

    def failures(self, provider: str) -> int:
        with self._lock:
            return self._entry(provider).consecutive_failures


_circuit_breaker = CircuitBreaker()


def get_circuit_breaker() -> CircuitBreaker:
    return _circuit_breaker


# ── Usage estimate ──────────────────────────────────────────

# USD per 1M tokens, input and output averaged
MODEL_PRICING: dict[str, float] = {
    "gpt-4o": 2.5,
    "gpt-4o-mini": 0.15,
    "claude-sonnet-4-20250514": 3.0,
    "claude-3-5-haiku-latest": 0.8,
}
DEFAULT_PRICE = 1.0


def estimate_tokens(text: str) -> int:
    """Roughly four characters per token."""
    return max(1, len(text) // 4)


@dataclass
class LLMUsage:
    provider: str
    model: str
    prompt_tokens: int
    response_tokens: int
    latency_ms: int

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.response_tokens

    @property
    def cost_usd(self) -> float:
        price = MODEL_PRICING.get(self.model, DEFAULT_PRICE)
        return round(self.total_tokens / 1_000_000 * price, 6)

    def to_dict(self) -> dict:
        d = asdict(self)
        d["total_tokens"] = self.total_tokens
        d["cost_usd"] = self.cost_usd
        return d


# ── Provider calls ──────────────────────────────────────────

_TRANSIENT_SDK_ERRORS = (
    ConnectionError,
    TimeoutError,
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
    anthropic.APIConnectionError,
    anthropic.RateLimitError,
    anthropic.InternalServerError,
)

# Proxies and gateways sometimes surface these only in the message text
_TRANSIENT_MESSAGES = ("rate limit", "429", "502", "503", "overloaded", "timed out")


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, _TRANSIENT_SDK_ERRORS):
        return True
    msg = str(exc).lower()
    return any(m in msg for m in _TRANSIENT_MESSAGES)


def _ask_openai(model: str, prompt: str, system: str, json_mode: bool) -> str:
    client = openai.OpenAI(
        api_key=os.getenv("OPENAI_API_KEY", ""),
        base_url=os.getenv("OPENAI_BASE_URL") or None,
        timeout=REQUEST_TIMEOUT,
    )
    messages = [{"role": "user", "content": prompt}]
    if system:
        messages.insert(0, {"role": "system", "content": system})
    extra = {"response_format": {"type": "json_object"}} if json_mode else {}
    response = client.chat.completions.create(
        model=model, messages=messages, max_tokens=MAX_OUTPUT_TOKENS, **extra
    )
    return response.choices[0].message.content or ""


def _ask_claude(model: str, prompt: str, system: str) -> str:
    client = anthropic.Anthropic(
        api_key=os.getenv("ANTHROPIC_API_KEY", ""),
        timeout=REQUEST_TIMEOUT,
    )
    extra = {"system": system} if system else {}
    response = client.messages.create(
        model=model,
        max_tokens=MAX_OUTPUT_TOKENS,
        messages=[{"role": "user", "content": prompt}],
        **extra,
    )
    return "".join(block.text for block in response.content if block.type == "text")


def _do_call(provider: str, model: str, prompt: str, system: str, json_mode: bool) -> str:
    if provider == "openai":
        return _ask_openai(model, prompt, system, json_mode)
    if provider == "claude":
        # Anthropic has no JSON response mode; the prompt asks for JSON
        return _ask_claude(model, prompt, system)
    raise ValueError(f"Unknown provider: {provider}")


@retry(
    retry=retry_if_exception_type(TransientLLMError),
    wait=wait_exponential(multiplier=1, min=1, max=30),
    stop=stop_after_attempt(3),
    reraise=True,
)
def _call_with_retry(provider: str, model: str, prompt: str, system: str, json_mode: bool) -> str:
    try:
        return _do_call(provider, model, prompt, system, json_mode)
    except Exception as exc:
        if _is_transient(exc):
            logger.info("Transient %s error, retrying: %s", provider, exc)
            raise TransientLLMError(str(exc)) from exc
        raise


def resilient_llm_call(
    provider: str,
    model: str,
    prompt: str,
    system: str = "",
    json_mode: bool = False,
) -> tuple[str, LLMUsage]:
    """Send ``prompt`` to ``provider`` and return ``(text, usage)``.

    Raises CircuitOpenError without calling the provider while its breaker
    is open. Any other failure, after retries, is re-raised and counted
    against the breaker.
    """
    if not _circuit_breaker.allow(provider):
        raise CircuitOpenError(f"Circuit breaker open for provider: {provider}")

    start = time.monotonic()
    try:
        text = _call_with_retry(provider, model, prompt, system, json_mode)
    except Exception:
        _circuit_breaker.record_failure(provider)
        raise
    _circuit_breaker.record_success(provider)

    usage = LLMUsage(
        provider=provider,
        model=model,
        prompt_tokens=estimate_tokens(system + prompt),
        response_tokens=estimate_tokens(text),
        latency_ms=int((time.monotonic() - start) * 1000),
    )
    logger.info("LLM call %s/%s took %dms (~%d tokens, ~$%.4f)",
                provider, model, usage.latency_ms, usage.total_tokens, usage.cost_usd)
    return text, usage
