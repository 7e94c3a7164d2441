from typing import Optional

from ai.service import AIService
from ai.ollama_service import OllamaService
from config import Settings, get_settings


def _make_service(provider: str, settings: Settings, model: Optional[str]) -> AIService:
    """Instantiate the appropriate AIService for a provider name."""
    provider = provider.lower().strip()
    if provider == "ollama":
        return OllamaService(
            model=model or settings.ollama_model,
            base_url=settings.ollama_base_url,
            timeout=settings.ollama_timeout,
        )
    raise ValueError(f"Unknown AI provider: {provider!r}")


def get_decision_service(
    model: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> AIService:
    """
    Return an AIService for text prompts.

    The provider is chosen via the AI_DECISION_PROVIDER env var; only
    "ollama" (the default) is supported.  *model* overrides OLLAMA_MODEL.
    """
    settings = settings or get_settings()
    return _make_service(settings.ai_decision_provider, settings, model)
