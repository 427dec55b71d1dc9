"""Async client for the judgment service (Claude)."""

import logging
from typing import Any

import anthropic

from ..errors import ConfigurationError, TransportError
from ..models import JudgmentReply

logger = logging.getLogger(__name__)


class JudgmentClient:
    """Stateless request/response wrapper around the Anthropic messages API."""

    def __init__(self, api_key: str | None, timeout: float = 30.0, client: Any = None):
        if client is None:
            if not api_key:
                raise ConfigurationError(
                    "Claude API key required. Set ANTHROPIC_API_KEY or claude_api_key in config."
                )
            client = anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self.client = client

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "JudgmentClient":
        return cls(
            config.get("claude_api_key"),
            timeout=config.get("judgment", {}).get("timeout", 30.0),
        )

    async def complete(
        self,
        system: str,
        user: str,
        *,
        model: str,
        temperature: float = 0.3,
        max_tokens: int = 1000,
    ) -> JudgmentReply:
        """Send one system+user exchange and return the reply text and token usage.

        Raises:
            TransportError: on timeout, connection failure, non-success status, or
                a reply with no text.
        """
        try:
            response = await self.client.messages.create(
                model=model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system,
                messages=[{"role": "user", "content": user}],
            )
        except anthropic.APITimeoutError as e:
            raise TransportError(f"Judgment service timed out: {e}") from e
        except anthropic.APIStatusError as e:
            raise TransportError(f"Judgment service returned {e.status_code}: {e.message}") from e
        except anthropic.APIConnectionError as e:
            raise TransportError(f"Judgment service unreachable: {e}") from e

        text = "".join(
            getattr(block, "text", "") for block in (response.content or []) if getattr(block, "type", "text") == "text"
        )
        if not text.strip():
            raise TransportError("Judgment service returned an empty response")

        usage = getattr(response, "usage", None)
        tokens = 0
        if usage is not None:
            tokens = (getattr(usage, "input_tokens", 0) or 0) + (getattr(usage, "output_tokens", 0) or 0)
        logger.debug(f"Judgment reply: {len(text)} chars, {tokens} tokens")
        return JudgmentReply(text=text, tokens_used=tokens)
