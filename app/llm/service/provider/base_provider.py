# app/llm/service/provider/base_provider.py
from abc import ABC, abstractmethod
from typing import Dict, List

from app.llm.entity.dispatch import ProviderAttempt, ProviderConfig


class BaseProvider(ABC):
    """Abstract base provider for all chat-completion integrations."""

    def __init__(self, config: ProviderConfig):
        self.config = config
        self.name = config.name

    def build_messages(self, message: str) -> List[Dict[str, str]]:
        messages = []
        if self.config.system_prompt:
            messages.append({"role": "system", "content": self.config.system_prompt})
        messages.append({"role": "user", "content": message})
        return messages

    @abstractmethod
    async def complete(self, message: str, attempt_number: int = 1) -> ProviderAttempt:
        """Issue one request and describe its outcome; transport errors become failed attempts."""
        pass

    def is_enabled(self) -> bool:
        """Whether this provider is usable (API key present)."""
        return bool(self.config.api_key)
