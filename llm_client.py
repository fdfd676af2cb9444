import os
import logging
from typing import Optional

from dotenv import load_dotenv
from openai import OpenAI

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")


def llm_configured() -> bool:
    return bool(os.getenv("OPENAI_API_KEY"))


# ------------------------ LLM Client Wrapper ------------------------ #

class LLMClient:
    """Plain-text completions against the OpenAI chat API."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, temperature: float = 0.2, request_timeout: int = 60):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise RuntimeError("OPENAI_API_KEY is not set")
        self.model = model or DEFAULT_MODEL
        self.temperature = temperature
        self.request_timeout = request_timeout
        self._client = OpenAI(api_key=self.api_key, timeout=request_timeout)

    def generate_text(self, prompt: str) -> str:
        resp = self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.temperature,
        )
        usage = resp.usage
        logger.info(f"LLM completion on {self.model}: total_tokens={getattr(usage, 'total_tokens', None)}")
        return resp.choices[0].message.content or ""
