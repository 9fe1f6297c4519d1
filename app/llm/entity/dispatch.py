# app/llm/entity/dispatch.py
"""
Immutable provider configuration and the per-attempt / per-turn results
produced by the dispatch fallback chain.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, FrozenSet

TRANSIENT_STATUS_CODES: FrozenSet[int] = frozenset({429, 503})

SECONDARY_SYSTEM_PROMPT = "You are a helpful AI assistant. Provide clear and concise responses."


@dataclass(frozen=True)
class TokenPricing:
    """USD price per 1K tokens."""
    input_per_1k: float
    output_per_1k: float


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    endpoint: str
    api_key: str
    model: str
    timeout_seconds: float
    retryable_status_codes: FrozenSet[int] = TRANSIENT_STATUS_CODES
    max_retries: int = 0
    system_prompt: Optional[str] = None
    pricing: Optional[TokenPricing] = None
    temperature: float = 0.7
    max_tokens: int = 500


@dataclass(frozen=True)
class DispatchConfig:
    """Ordered providers plus the constant delay applied before a retry."""
    providers: Tuple[ProviderConfig, ...] = ()
    retry_delay_seconds: float = 3.0

    @classmethod
    def from_settings(cls, settings) -> "DispatchConfig":
        providers = []
        if settings.HF_TOKEN:
            providers.append(ProviderConfig(
                name="huggingface",
                endpoint=settings.HF_API_URL,
                api_key=settings.HF_TOKEN,
                model=settings.HF_MODEL,
                timeout_seconds=settings.HF_TIMEOUT_SECONDS,
                max_retries=1,
                temperature=settings.CHAT_TEMPERATURE,
                max_tokens=settings.CHAT_MAX_TOKENS,
            ))
        if settings.OPENAI_API_KEY:
            providers.append(ProviderConfig(
                name="openai",
                endpoint=settings.AI_API_URL,
                api_key=settings.OPENAI_API_KEY,
                model=settings.AI_MODEL,
                timeout_seconds=settings.AI_TIMEOUT_SECONDS,
                max_retries=0,
                system_prompt=SECONDARY_SYSTEM_PROMPT,
                pricing=TokenPricing(
                    input_per_1k=settings.AI_INPUT_COST_PER_1K,
                    output_per_1k=settings.AI_OUTPUT_COST_PER_1K,
                ),
                temperature=settings.CHAT_TEMPERATURE,
                max_tokens=settings.CHAT_MAX_TOKENS,
            ))
        return cls(providers=tuple(providers), retry_delay_seconds=settings.RETRY_BACKOFF_SECONDS)


@dataclass(frozen=True)
class TokenUsage:
    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class ProviderAttempt:
    """Outcome of one outbound call. Never raised, always recorded."""
    provider: str
    endpoint: str
    model: str
    attempt_number: int
    success: bool
    status_code: Optional[int] = None
    content: Optional[str] = None
    usage: TokenUsage = field(default_factory=TokenUsage)
    response_time_ms: Optional[int] = None
    error_message: Optional[str] = None
    cost: Optional[float] = None
    request_snapshot: Optional[str] = None
    response_snapshot: Optional[str] = None


@dataclass
class DispatchResult:
    text: str
    provider: Optional[str]
    api_used: bool
    attempts: List[ProviderAttempt] = field(default_factory=list)
    # The attempt whose content became the response; None on canned fallback
    final_attempt: Optional[ProviderAttempt] = None
