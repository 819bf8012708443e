from savvy.router.cache import ResponseCache
from savvy.router.llm_router import LLMRouter

__all__ = ["LLMRouter", "ResponseCache"]
