from __future__ import annotations

import json
import logging
import os
import random
import time
import urllib.error
import urllib.request
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, ClassVar

from avesta.config import DEFAULT_REVIEW_PROMPTS, DEFAULT_REVIEW_TIMEOUT, ReviewConfig
from avesta.review.prompts import SYSTEM_PROMPT, UnknownPromptError, prompt_for

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4-turbo-preview"
DEFAULT_CLAUDE_MODEL = "claude-3-5-sonnet-20241022"

OPENAI_KEY_ENV = "OPENAI_API_KEY"
PROVIDER_KEY_ENV = "AI_PROVIDER_API_KEY"
MODEL_ENV = "AI_REVIEW_MODEL"

_MAX_ATTEMPTS = 3
_RETRY_BACKOFF_BASE_SECONDS = 0.5
_RETRY_BACKOFF_CAP_SECONDS = 8.0


class ReviewError(RuntimeError):
    """Raised when an AI review cannot be produced."""


def _is_retryable_http_status(code: int) -> bool:
    return code == 429 or 500 <= code < 600


def _retry_sleep_seconds(attempt: int) -> float:
    """
    Compute an exponential backoff delay with jitter.

    attempt=0 is the first retry after the initial failure.
    """

    upper = min(_RETRY_BACKOFF_CAP_SECONDS, _RETRY_BACKOFF_BASE_SECONDS * (2**attempt))
    # "Equal jitter": sleep in [upper/2, upper]
    return float((upper / 2.0) + random.uniform(0.0, upper / 2.0))


def _sleep_before_retry(attempt: int) -> None:
    time.sleep(_retry_sleep_seconds(attempt))


def _error_message(exc: urllib.error.HTTPError) -> str:
    try:
        data = json.loads(exc.read().decode("utf-8"))
    except (OSError, ValueError):
        return f"HTTP {exc.code}"
    finally:
        try:
            exc.close()
        except OSError:
            pass
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return str(error["message"])
    return "Unknown error"


class BaseReviewProvider(ABC):
    api_url: ClassVar[str]
    default_model: ClassVar[str]

    def __init__(
        self,
        *,
        model: str | None = None,
        prompts: tuple[str, ...] = DEFAULT_REVIEW_PROMPTS,
        timeout: int = DEFAULT_REVIEW_TIMEOUT,
        environ: Mapping[str, str] | None = None,
        max_attempts: int = _MAX_ATTEMPTS,
    ) -> None:
        self.model = model or self.default_model
        self.prompts = prompts
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self._environ = os.environ if environ is None else environ

    @abstractmethod
    def _headers(self) -> dict[str, str]: ...

    @abstractmethod
    def _request_body(self, prompt: str) -> dict[str, Any]: ...

    @abstractmethod
    def _extract_text(self, data: Any) -> str: ...

    def _api_key(self, env_name: str) -> str:
        key = self._environ.get(env_name, "").strip()
        if not key:
            raise ReviewError(f"{env_name} environment variable is not set")
        return key

    def _user_content(self, prompt: str) -> str:
        try:
            rule_prompts = prompt_for(self.prompts)
        except UnknownPromptError as exc:
            raise ReviewError(str(exc.args[0])) from exc
        return f"{rule_prompts}\n\n{prompt}"

    def complete(self, prompt: str) -> str:
        """Send `prompt` to the provider and return the reviewer's text."""

        headers = {"Content-Type": "application/json", **self._headers()}
        payload = json.dumps(self._request_body(prompt)).encode("utf-8")
        logger.debug("review request: %s (%s, %d bytes)", self.api_url, self.model, len(payload))

        for attempt in range(self.max_attempts):
            req = urllib.request.Request(self.api_url, data=payload, headers=headers, method="POST")
            is_last_attempt = attempt >= self.max_attempts - 1
            try:
                with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                    raw = resp.read()
            except urllib.error.HTTPError as exc:
                if _is_retryable_http_status(int(exc.code)) and not is_last_attempt:
                    logger.debug("review request failed with HTTP %s, retrying", exc.code)
                    exc.close()
                    _sleep_before_retry(attempt)
                    continue
                raise ReviewError(f"AI API error: {_error_message(exc)}") from exc
            except (urllib.error.URLError, TimeoutError) as exc:
                if not is_last_attempt:
                    logger.debug("review request failed (%s), retrying", exc)
                    _sleep_before_retry(attempt)
                    continue
                raise ReviewError(f"AI API request failed: {exc}") from exc

            try:
                data = json.loads(raw.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError) as exc:
                raise ReviewError("AI API returned invalid JSON") from exc
            return self._extract_text(data)

        raise RuntimeError("unreachable")


class OpenAIReviewProvider(BaseReviewProvider):
    api_url = "https://api.openai.com/v1/chat/completions"
    default_model = DEFAULT_MODEL

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key(OPENAI_KEY_ENV)}"}

    def _request_body(self, prompt: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": self._user_content(prompt)},
            ],
            "temperature": 0.5,
        }

    def _extract_text(self, data: Any) -> str:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ReviewError("Unexpected response format from OpenAI API") from exc
        if not isinstance(content, str):
            raise ReviewError("Unexpected response format from OpenAI API")
        return content


class ClaudeReviewProvider(BaseReviewProvider):
    api_url = "https://api.anthropic.com/v1/messages"
    default_model = DEFAULT_CLAUDE_MODEL

    def _headers(self) -> dict[str, str]:
        return {
            "x-api-key": self._api_key(PROVIDER_KEY_ENV),
            "anthropic-version": "2023-06-01",
        }

    def _request_body(self, prompt: str) -> dict[str, Any]:
        return {
            "model": self.model,
            "system": SYSTEM_PROMPT,
            "messages": [{"role": "user", "content": self._user_content(prompt)}],
            "temperature": 0.1,
            "max_tokens": 4000,
        }

    def _extract_text(self, data: Any) -> str:
        blocks = data.get("content") if isinstance(data, dict) else None
        if not isinstance(blocks, list) or not blocks:
            raise ReviewError("Unexpected response format from Claude API")
        texts = [b["text"] for b in blocks if isinstance(b, dict) and b.get("type") == "text" and isinstance(b.get("text"), str)]
        return "\n".join(texts)


def resolve_model(config: ReviewConfig, *, model: str | None = None, environ: Mapping[str, str] | None = None) -> str:
    env = os.environ if environ is None else environ
    return model or config.model or env.get(MODEL_ENV, "").strip() or DEFAULT_MODEL


def create_provider(
    config: ReviewConfig,
    *,
    model: str | None = None,
    environ: Mapping[str, str] | None = None,
) -> BaseReviewProvider:
    """Pick a provider from the model name: `claude*` goes to Anthropic, anything else to OpenAI."""

    env = os.environ if environ is None else environ
    resolved = resolve_model(config, model=model, environ=env)
    if not env.get(PROVIDER_KEY_ENV):
        logger.warning("%s environment variable is not set", PROVIDER_KEY_ENV)

    provider_cls: type[BaseReviewProvider]
    if resolved.startswith("claude"):
        provider_cls = ClaudeReviewProvider
    else:
        provider_cls = OpenAIReviewProvider
    logger.debug("review provider: %s (model %s)", provider_cls.__name__, resolved)
    return provider_cls(model=resolved, prompts=config.prompts, timeout=config.timeout, environ=env)
