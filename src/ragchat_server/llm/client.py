from typing import Any, Dict, Optional
import logging
import httpx

from ..config import settings
from ..core.errors import CompletionError

logger = logging.getLogger("ragchat.llm")

OPENAI_BASE_URL = "https://api.openai.com/v1"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class CompletionClient:
    """
    Text-in/text-out completion service.

    Supports OpenAI-compatible chat completions and Gemini generateContent.
    """

    def __init__(
        self,
        provider: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.provider = provider or settings.completion_provider
        if api_key is None:
            secret = (
                settings.gemini_api_key
                if self.provider == "gemini"
                else settings.openai_api_key
            )
            api_key = secret.get_secret_value()
        self.api_key = api_key
        self.model = model or settings.completion_model
        self.base_url = (
            base_url
            or settings.completion_base_url
            or (GEMINI_BASE_URL if self.provider == "gemini" else OPENAI_BASE_URL)
        ).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.completion_timeout
        self._client = client

    async def complete(self, prompt: str, temperature: float = 0.2) -> str:
        """
        Returns the reply text for a single user prompt.
        """
        if self.provider == "gemini":
            url = f"{self.base_url}/models/{self.model}:generateContent"
            payload: Dict[str, Any] = {
                "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            }
            headers: Dict[str, str] = {}
            params = {"key": self.api_key}
        else:
            url = f"{self.base_url}/chat/completions"
            payload = {
                "model": self.model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": temperature,
            }
            headers = {"Authorization": f"Bearer {self.api_key}"}
            params = {}

        try:
            if self._client is not None:
                resp = await self._client.post(
                    url, json=payload, headers=headers, params=params, timeout=self.timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    resp = await client.post(url, json=payload, headers=headers, params=params)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Completion request failed (%s): %s", type(exc).__name__, exc)
            raise CompletionError(f"Completion failed: {type(exc).__name__}") from exc

        text = self._extract_text(data)
        if not text:
            raise CompletionError("Completion response contained no text.")
        return text

    def _extract_text(self, data: Any) -> Optional[str]:
        try:
            if self.provider == "gemini":
                return data["candidates"][0]["content"]["parts"][0]["text"]
            return data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return None
