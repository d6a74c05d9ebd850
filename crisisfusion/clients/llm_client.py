"""LLM access for the text-analysis and image-verification resolvers.

``LLMClient`` talks to Anthropic or Ollama, chosen by
``ServiceConfig.llm_backend``. Each request gets one retry: an exception or a
blank answer triggers a second attempt, and a blank answer also doubles the
token allowance for that attempt. The SDKs are imported on first use only.
"""

from __future__ import annotations

import base64
import json
import logging
import re
from typing import Any, Callable, Optional

from config.defaults import (
    ANTHROPIC_MODEL,
    LLM_MIN_MAX_TOKENS,
    OLLAMA_HOST,
    OLLAMA_MODEL,
)

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```[a-zA-Z]*")
_MAX_ATTEMPTS = 2


def safe_parse_llm_json(text: str) -> Optional[Any]:
    """Parse JSON out of free-form LLM output.

    Code fences are removed, then the widest ``{...}`` span is tried, then
    the widest ``[...]`` span. Returns None when neither decodes.
    """
    if not text:
        return None

    cleaned = _FENCE_RE.sub("", text).strip()

    for opener, closer in (("{", "}"), ("[", "]")):
        first, last = cleaned.find(opener), cleaned.rfind(closer)
        if first < 0 or last <= first:
            continue
        try:
            return json.loads(cleaned[first : last + 1])
        except ValueError:
            continue

    return None


class LLMClient:
    """Text and vision prompts against a configurable LLM backend.

    ``backend`` is "anthropic" or "ollama" (case-insensitive). ``ollama_api_key``
    is only needed for hosted Ollama; local servers run without one.
    """

    def __init__(
        self,
        backend: str = "ollama",
        anthropic_model: str = ANTHROPIC_MODEL,
        ollama_model: str = OLLAMA_MODEL,
        ollama_host: str = OLLAMA_HOST,
        ollama_api_key: str = "",
        anthropic_api_key: Optional[str] = None,
    ) -> None:
        self.backend = backend.lower()
        self.anthropic_model = anthropic_model
        self.anthropic_api_key = anthropic_api_key
        self.ollama_model = ollama_model
        self.ollama_host = ollama_host
        self.ollama_api_key = ollama_api_key
        self._anthropic_client: Optional[Any] = None
        self._ollama_client: Optional[Any] = None

    @classmethod
    def from_config(cls, config: Any) -> "LLMClient":
        return cls(
            backend=config.llm_backend,
            anthropic_model=config.anthropic_model,
            ollama_model=config.ollama_model,
            ollama_host=config.ollama_host,
            ollama_api_key=config.ollama_api_key,
            anthropic_api_key=config.anthropic_api_key,
        )

    @property
    def uses_anthropic(self) -> bool:
        return self.backend == "anthropic"

    def _get_anthropic_client(self) -> Any:
        if self._anthropic_client is None:
            import anthropic

            self._anthropic_client = anthropic.Anthropic(api_key=self.anthropic_api_key)
        return self._anthropic_client

    def _get_ollama_client(self) -> Any:
        # Hosted Ollama authenticates with a bearer token.
        if self._ollama_client is None:
            import ollama

            options: dict = {}
            if self.ollama_api_key:
                options["headers"] = {"Authorization": f"Bearer {self.ollama_api_key}"}
            self._ollama_client = ollama.Client(host=self.ollama_host, **options)
        return self._ollama_client

    # ── Backend calls ──────────────────────────────────────────────────────────

    def _call_anthropic(
        self,
        system: str,
        content: Any,
        max_tokens: int,
        temperature: float,
    ) -> str:
        reply = self._get_anthropic_client().messages.create(
            model=self.anthropic_model,
            system=system,
            messages=[{"role": "user", "content": content}],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        blocks = reply.content or []
        return (blocks[0].text or "") if blocks else ""

    def _call_ollama(
        self,
        system: str,
        prompt: str,
        max_tokens: int,
        temperature: float,
        images: Optional[list] = None,
    ) -> str:
        user_turn: dict = {"role": "user", "content": prompt}
        if images:
            user_turn["images"] = images
        reply = self._get_ollama_client().chat(
            model=self.ollama_model,
            messages=[{"role": "system", "content": system}, user_turn],
            options={"num_predict": max_tokens, "temperature": temperature},
        )
        message = getattr(reply, "message", None)
        return (message.content or "") if message else ""

    # ── Retry wrapper ──────────────────────────────────────────────────────────

    def _with_retry(self, attempt_fn: Callable[[int], str], max_tokens: int) -> Optional[str]:
        """Call ``attempt_fn(token_budget)`` at most twice; None if both fail."""
        budget = max(max_tokens, LLM_MIN_MAX_TOKENS)
        for attempt in range(1, _MAX_ATTEMPTS + 1):
            try:
                answer = attempt_fn(budget)
            except Exception as exc:
                logger.warning(
                    "LLM %s request failed (attempt %d/%d): %s",
                    self.backend, attempt, _MAX_ATTEMPTS, exc,
                )
                continue
            if answer and answer.strip():
                return answer
            budget *= 2
            logger.warning(
                "LLM %s returned a blank answer (attempt %d/%d)", self.backend, attempt, _MAX_ATTEMPTS
            )

        logger.error("LLM %s gave no usable answer after %d attempts", self.backend, _MAX_ATTEMPTS)
        return None

    # ── Public API ─────────────────────────────────────────────────────────────

    def call(
        self,
        system: str,
        prompt: str,
        max_tokens: int = 1024,
        temperature: float = 0.1,
    ) -> Optional[str]:
        """Send a text prompt and return the answer, or None after two failed attempts.

        ``max_tokens`` is raised to LLM_MIN_MAX_TOKENS when smaller.
        """

        def attempt(tokens: int) -> str:
            if self.uses_anthropic:
                return self._call_anthropic(system, prompt, tokens, temperature)
            return self._call_ollama(system, prompt, tokens, temperature)

        return self._with_retry(attempt, max_tokens)

    def call_with_image(
        self,
        system: str,
        prompt: str,
        image_bytes: bytes,
        media_type: str = "image/jpeg",
        max_tokens: int = 1024,
        temperature: float = 0.1,
    ) -> Optional[str]:
        """Send a prompt together with one image.

        Anthropic gets a base64 image block ahead of the text block; Ollama
        gets the raw bytes in the message's ``images`` list. Retry rules match
        :meth:`call`.
        """
        image_block = {
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": media_type,
                "data": base64.b64encode(image_bytes).decode("ascii"),
            },
        }

        def attempt(tokens: int) -> str:
            if self.uses_anthropic:
                content = [image_block, {"type": "text", "text": prompt}]
                return self._call_anthropic(system, content, tokens, temperature)
            return self._call_ollama(system, prompt, tokens, temperature, images=[image_bytes])

        return self._with_retry(attempt, max_tokens)
