from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from .config import Settings
from .errors import ConfigurationError, UpstreamError, UpstreamUnavailableError

logger = logging.getLogger("bconfig.completion")

DEFAULT_TEMPERATURE = 0.3
REQUEST_TIMEOUT_SEC = 120


class CompletionClient:
    """Thin wrapper around an OpenAI-compatible chat-completions endpoint."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None) -> None:
        """Purpose: Bind the client to the configured endpoint, model, and credential.
        Inputs/Outputs: Input is Settings and an optional requests.Session; no return value.
        Side Effects / State: Stores configuration; no network traffic at init.
        Dependencies: requests for HTTP, Settings from config.
        Failure Modes: None at init; a missing credential is reported by complete().
        If Removed: Questions cannot be forwarded to the model.
        Testing Notes: Pass a mocked session and assert on the posted payload.
        """
        # Keep settings and a reusable HTTP session.
        self._settings = settings
        self._session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self._settings.api_token)

    def complete(self, messages: List[Dict[str, str]]) -> str:
        """Purpose: Send one chat-completions request and return the assistant text.
        Inputs/Outputs: Input is the full message list; output is the reply content
            ("" when the response carries none).
        Side Effects / State: One HTTP POST; no retry, no streaming.
        Dependencies: requests.Session.post with a bearer token; the model name is sent
            exactly as configured.
        Failure Modes: ConfigurationError without a credential; UpstreamError on a
            non-2xx status (message includes status and body); UpstreamUnavailableError
            on network failures.
        If Removed: The answer service has no way to produce a reply.
        Testing Notes: A 429 response must raise UpstreamError with status 429.
        """
        # Build the payload exactly once and relay the first choice.
        if not self.configured:
            raise ConfigurationError("Missing LLM_API_TOKEN")
        model_name = self._settings.model
        payload = {
            "model": model_name,
            "temperature": DEFAULT_TEMPERATURE,
            "messages": messages,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._settings.api_token}",
        }
        logger.info("model=%s messages=%d", model_name, len(messages))
        try:
            response = self._session.post(
                self._settings.api_url,
                headers=headers,
                json=payload,
                timeout=REQUEST_TIMEOUT_SEC,
            )
        except requests.RequestException as exc:
            logger.error("model=%s request failed: %s", model_name, exc)
            raise UpstreamUnavailableError(str(exc)) from exc

        if not response.ok:
            logger.error("model=%s status=%s", model_name, response.status_code)
            raise UpstreamError(response.status_code, response.text)

        logger.info("model=%s status=%s", model_name, response.status_code)
        return _first_choice_text(response.json())


def _first_choice_text(data: Any) -> str:
    # Missing pieces of the response shape yield an empty reply.
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    return content if isinstance(content, str) else ""

