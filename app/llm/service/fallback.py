import random

SHORT_MESSAGE_THRESHOLD = 50
PREFIX_LENGTH = 100

FALLBACK_TEMPLATES = (
    "I understand you said: \"{prefix}\". That's an interesting question! Unfortunately, the AI service is "
    "currently unavailable. Please try again in a few moments.",
    "Thank you for your message! Your message was received: \"{prefix}\". The AI service is temporarily "
    "unavailable. Please try again later.",
    "I received your message: \"{prefix}\". The AI service is experiencing issues right now. Please try "
    "again in a few moments.",
)

SHORT_MESSAGE_TEMPLATE = (
    "You said: \"{message}\". The AI service is temporarily unavailable. Please try again later."
)


def build_fallback_response(
    message: str,
    rng: random.Random,
    short_threshold: int = SHORT_MESSAGE_THRESHOLD,
    prefix_length: int = PREFIX_LENGTH,
) -> str:
    """Canned reply used when every provider failed.

    Short messages are echoed back whole; longer ones get a randomly chosen
    apology that quotes only the first ``prefix_length`` characters.
    """
    if len(message) < short_threshold:
        return SHORT_MESSAGE_TEMPLATE.format(message=message)
    template = rng.choice(FALLBACK_TEMPLATES)
    return template.format(prefix=message[:prefix_length])
