"""
Ollama REST API client, used for optional LLM schema summaries.
Wraps POST /api/generate with a short retry loop.
"""
import logging
import time
from typing import Optional
import httpx

from config import settings

logger = logging.getLogger(__name__)


class OllamaClient:
    """Thin client for the Ollama local LLM server."""

    def __init__(
        self,
        host: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        http: Optional[httpx.Client] = None,
    ):
        self.host = (host or settings.OLLAMA_HOST).rstrip("/")
        self.model = model or settings.OLLAMA_MODEL
        self.http = http or httpx.Client(timeout=timeout or settings.OLLAMA_TIMEOUT_SECONDS)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def close(self) -> None:
        self.http.close()

    def is_healthy(self) -> tuple[bool, Optional[str]]:
        """Returns (True, model_name) if Ollama is reachable, (False, error) otherwise."""
        try:
            resp = self.http.get(f"{self.host}/api/version", timeout=5)
            resp.raise_for_status()
            return True, self.model
        except httpx.HTTPError as e:
            return False, str(e)

    def generate(self, prompt: str, max_retries: int = 2, backoff_seconds: float = 1.0) -> str:
        """Return the completion text for `prompt`; raises RuntimeError once retries are spent."""
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {"num_ctx": 4096, "temperature": 0.2},
        }
        last_err: Optional[Exception] = None
        for attempt in range(1, max_retries + 1):
            try:
                resp = self.http.post(f"{self.host}/api/generate", json=payload)
                resp.raise_for_status()
                return resp.json().get("response", "").strip()
            except (httpx.HTTPError, ValueError) as e:
                last_err = e
                logger.warning("Ollama attempt %d/%d failed: %s", attempt, max_retries, e)
                if attempt < max_retries:
                    time.sleep(backoff_seconds * attempt)
        raise RuntimeError(f"Ollama failed after {max_retries} attempts: {last_err}")
