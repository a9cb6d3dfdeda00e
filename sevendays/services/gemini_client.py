import logging
from typing import Any, Optional

import requests
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from sevendays.core.settings import Settings, settings as default_settings
from sevendays.services.errors import ExtractionError, ServiceError

logger = logging.getLogger(__name__)


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, ServiceError) and exc.retryable


def extract_text(payload: Any) -> str:
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as e:
        raise ExtractionError(f"Unexpected response shape: {e!r}") from e
    if not isinstance(text, str):
        raise ExtractionError(f"Completion text is {type(text).__name__}, not str")
    return text


class GeminiClient:
    """
    Thin wrapper around the generateContent endpoint: one prompt in, the
    first candidate's text out.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
        wait=None,
    ):
        self.settings = settings or default_settings
        self.session = session or requests.Session()
        self._wait = wait if wait is not None else wait_exponential(min=1, max=5)

    @property
    def endpoint(self) -> str:
        base = str(self.settings.gemini_base_url).rstrip("/")
        return f"{base}/models/{self.settings.gemini_model}:generateContent"

    def generate(self, prompt: str) -> str:
        retrying = Retrying(
            retry=retry_if_exception(_is_retryable),
            wait=self._wait,
            stop=stop_after_attempt(self.settings.max_attempts),
            reraise=True,
        )
        return retrying(self._generate_once, prompt)

    def _generate_once(self, prompt: str) -> str:
        if not self.settings.gemini_api_key:
            raise ServiceError("Gemini API key is not configured", retryable=False)

        body = {"contents": [{"parts": [{"text": prompt}]}]}
        try:
            resp = self.session.post(
                self.endpoint,
                params={"key": self.settings.gemini_api_key},
                json=body,
                headers={"Content-Type": "application/json"},
                timeout=self.settings.request_timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            logger.warning("Transport error calling %s: %s", self.settings.gemini_model, e)
            raise ServiceError(f"Transport error: {e}", retryable=True) from e
        except requests.RequestException as e:
            logger.error("Request to %s failed: %s", self.settings.gemini_model, e)
            raise ServiceError(f"Request failed: {e}", retryable=False) from e

        if resp.status_code != 200:
            logger.warning("Gemini returned HTTP %s: %s", resp.status_code, resp.text[:500])
            raise ServiceError(f"HTTP {resp.status_code}", status_code=resp.status_code)

        try:
            payload = resp.json()
        except ValueError as e:
            raise ExtractionError(f"Response body is not JSON: {e}") from e

        text = extract_text(payload)
        logger.debug("Gemini raw response:\n%s", text)
        return text
