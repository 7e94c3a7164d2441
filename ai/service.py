from abc import ABC, abstractmethod


class AIService(ABC):
    """
    Base class for language-model services.

    Implementations make exactly one request per call and never retry;
    retry policy belongs to the caller.
    """

    @abstractmethod
    async def get_decision(self, prompt: str) -> str:
        """Send a text prompt to the LLM and return its raw response text."""
        ...

    @abstractmethod
    async def is_available(self) -> bool:
        """Return whether the model service is currently reachable."""
        ...
