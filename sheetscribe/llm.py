"""
Chat-completion client used by the prompt tasks.

Sends one single-turn request per call and returns the first choice's message
content.  Errors are not handled here: a failed request raises and aborts the
batch that issued it.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests

from .config import DEFAULT_MODEL, DEFAULT_OPENAI_ENDPOINT, Settings
from .transport import send_json

logger = logging.getLogger(__name__)


class TextGenerationClient:
    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_MODEL,
        endpoint: str = DEFAULT_OPENAI_ENDPOINT,
        session: Optional[requests.Session] = None,
        max_attempts: int = 1,
        timeout: float = 60.0,
    ) -> None:
        self._api_key = api_key
        self.model = model
        self.endpoint = endpoint
        self._session = session or requests.Session()
        self._max_attempts = max_attempts
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings, session: Optional[requests.Session] = None) -> "TextGenerationClient":
        return cls(
            settings.openai_api_key,
            model=settings.openai_model,
            endpoint=settings.openai_endpoint,
            session=session,
            max_attempts=settings.max_attempts,
            timeout=settings.http_timeout,
        )

    def generate(self, prompt: str, temperature: float, max_tokens: int) -> str:
        """Return the model's reply to ``prompt``.

        Raises:
            requests.HTTPError: If the endpoint answers with a non-2xx status.
            KeyError: If the response has no ``choices[0].message.content``.
        """
        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        logger.info("Calling %s (temperature=%s, max_tokens=%s)", self.model, temperature, max_tokens)
        response = send_json(
            self._session,
            "POST",
            self.endpoint,
            json=body,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self._api_key}",
            },
            max_attempts=self._max_attempts,
            timeout=self._timeout,
        )
        try:
            return response["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise KeyError("Completion response has no choices[0].message.content") from exc
