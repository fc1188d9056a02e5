"""
Async xAI (Grok) chat-completion client.

xAI exposes an OpenAI-compatible ``/chat/completions`` endpoint.  This
client posts one conversation per call with ``httpx`` and returns the
assistant content plus token usage.

Transport failures (connection drops, timeouts) are retried with
exponential backoff; HTTP status errors and malformed bodies fail fast
as ``ChatCompletionError``.  Prompts and completions are never logged,
only their sizes and token counts.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from threadforge.config import XaiConfig
from threadforge.exceptions import ChatCompletionError
from threadforge.logging import ComponentLogger, LogComponent
from threadforge.models import ChatCompletionResult, ChatMessage, ChatOptions, UsageStats
from threadforge.utils import with_retry

logger = logging.getLogger(__name__)


class XaiChatClient:
    """Async wrapper around the xAI chat-completions API.

    Args:
        config: Provider settings (base URL, key, timeout).
        transport: Optional ``httpx`` transport, used by tests to plug in
            ``httpx.MockTransport``.

    Usage::

        client = XaiChatClient(settings.xai)
        result = await client.create_chat_completion(
            "grok-2-latest",
            [ChatMessage("system", SYSTEM), ChatMessage("user", prompt)],
        )
    """

    def __init__(
        self,
        config: Optional[XaiConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or XaiConfig()
        self._transport = transport
        self.usage_stats = UsageStats()
        self.log = ComponentLogger(LogComponent.XAI_CLIENT)

    @property
    def endpoint(self) -> str:
        return self.config.base_url.rstrip("/") + "/chat/completions"

    @staticmethod
    def build_payload(
        model: str, messages: Sequence[ChatMessage], options: ChatOptions
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": model,
            "messages": [m.to_dict() for m in messages],
            "temperature": options.temperature,
        }
        if options.max_tokens is not None:
            payload["max_tokens"] = options.max_tokens
        if options.json_mode:
            payload["response_format"] = {"type": "json_object"}
        return payload

    async def create_chat_completion(
        self,
        model: str,
        messages: Sequence[ChatMessage],
        options: Optional[ChatOptions] = None,
    ) -> ChatCompletionResult:
        """Run one chat completion.

        Args:
            model: xAI model name.
            messages: Conversation, usually one system and one user message.
            options: Temperature, ``max_tokens`` and JSON mode.
                Defaults to ``ChatOptions()``.

        Returns:
            Assistant content and token usage (counts may be ``None``).

        Raises:
            ChatCompletionError: On a non-2xx status or a malformed body.
            RetryExhaustedError: When every transport attempt failed.
        """
        options = options or ChatOptions()
        payload = self.build_payload(model, messages, options)

        async with self.log.timed(
            "xAI chat completion",
            data={
                "model": model,
                "messages": len(messages),
                "prompt_chars": sum(len(m.content) for m in messages),
                "json_mode": options.json_mode,
            },
        ) as op:
            body = await self._post(payload)
            result = self._parse_body(body)
            op.data.update(
                {
                    "completion_chars": len(result.content),
                    "prompt_tokens": result.prompt_tokens,
                    "completion_tokens": result.completion_tokens,
                    "total_tokens": result.total_tokens,
                }
            )

        self.usage_stats.record(result)
        logger.debug(
            "xAI completion: model=%s, total_tokens=%s", model, result.total_tokens
        )
        return result

    @with_retry(
        max_attempts=3,
        retryable_exceptions=(httpx.TransportError,),
        operation_name="xai_chat_completion",
    )
    async def _post(self, payload: Dict[str, Any]) -> Any:
        async with httpx.AsyncClient(
            timeout=self.config.timeout_seconds, transport=self._transport
        ) as client:
            response = await client.post(
                self.endpoint,
                headers={
                    "Authorization": f"Bearer {self.config.api_key}",
                    "Content-Type": "application/json",
                },
                json=payload,
            )

        if response.is_error:
            raise ChatCompletionError(
                f"xAI request failed: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ChatCompletionError("xAI returned a non-JSON body") from exc

    @staticmethod
    def _parse_body(body: Any) -> ChatCompletionResult:
        try:
            content = body["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ChatCompletionError("xAI response is missing choices[0].message.content") from exc
        if content is not None and not isinstance(content, str):
            raise ChatCompletionError(
                f"xAI response content must be a string, got {type(content).__name__}"
            )

        usage = body.get("usage") or {}
        return ChatCompletionResult(
            content=content or "",
            prompt_tokens=_optional_int(usage.get("prompt_tokens")),
            completion_tokens=_optional_int(usage.get("completion_tokens")),
            total_tokens=_optional_int(usage.get("total_tokens")),
        )


def _optional_int(value: Any) -> Optional[int]:
    return int(value) if isinstance(value, (int, float)) else None


def system_and_user(system: str, user: str) -> List[ChatMessage]:
    """The two-message conversation every service sends."""
    return [ChatMessage("system", system), ChatMessage("user", user)]
