from .client import CompletionClient
from .prompts import build_prompt

__all__ = ["CompletionClient", "build_prompt"]
