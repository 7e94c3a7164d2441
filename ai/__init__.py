from ai.service import AIService
from ai.ollama_service import OllamaService
from ai.factory import get_decision_service
from ai.response_parser import parse_llm_json_array

__all__ = [
    "AIService",
    "OllamaService",
    "get_decision_service",
    "parse_llm_json_array",
]
