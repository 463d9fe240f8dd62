"""Google Gemini AI 통합 클라이언트."""
from .client import GeminiClient

__all__ = ["GeminiClient"]
