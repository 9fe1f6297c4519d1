from typing import Optional

from app.llm.entity.dispatch import TokenPricing, TokenUsage


def estimate_cost(usage: Optional[TokenUsage], pricing: Optional[TokenPricing]) -> Optional[float]:
    """Approximate USD cost from published per-1K-token prices.

    Returns None when the provider has no pricing or reported no usage.
    """
    if pricing is None or usage is None:
        return None
    input_cost = (usage.input_tokens / 1000) * pricing.input_per_1k
    output_cost = (usage.output_tokens / 1000) * pricing.output_per_1k
    return round(input_cost + output_cost, 6)
