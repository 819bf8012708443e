import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from savvy.config.settings import Settings
from savvy.exceptions.model import ModelTimeoutError
from savvy.exceptions.provider import (
    ProviderConfigurationError,
    ProviderConnectionError,
    ProviderError,
)
from savvy.providers.base import BaseProvider
from savvy.structs import (
    ChatMessage,
    CompletionOptions,
    CompletionResponse,
    ConversationContext,
    ImagePart,
    TextPart,
    TokenUsage,
)

logger = logging.getLogger("OpenAIProvider")


class OpenAIProvider(BaseProvider):
    """
    Adapter for the OpenAI chat-completions API.

    The system prompt becomes the first message; images travel as
    ``image_url`` blocks, both data URLs and remote URLs.
    """

    name = "openai"
    default_model = "gpt-4o"
    fallback_model = "gpt-4o-mini"
    default_temperature = 0.3
    supports_remote_image_urls = True

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        self.timeout = settings.request_timeout
        if client is None:
            if not settings.openai_api_key:
                raise ProviderConfigurationError(
                    "OPENAI_API_KEY is required when using the openai provider.",
                    provider_name=self.name,
                )
            # Retries belong to the caller; the SDK must not retry silently.
            client = AsyncOpenAI(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
                timeout=settings.request_timeout,
                max_retries=0,
            )
        self.client = client

    async def close(self) -> None:
        await self.client.close()

    # --- Translation ---

    def build_request(
        self,
        context: ConversationContext,
        options: CompletionOptions,
        model: str,
        stream: bool = False,
    ) -> Dict[str, Any]:
        messages: List[Dict[str, Any]] = []
        if context.system_prompt:
            messages.append({"role": "system", "content": context.system_prompt})
        messages.extend(self._serialize_message(m) for m in context.messages)

        request: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": self.resolve_temperature(options),
        }
        if options.max_tokens is not None:
            request["max_tokens"] = options.max_tokens
        if options.stop_sequences:
            request["stop"] = list(options.stop_sequences)
        if stream:
            request["stream"] = True
            request["stream_options"] = {"include_usage": True}
        return request

    def _serialize_message(self, message: ChatMessage) -> Dict[str, Any]:
        if len(message.parts) == 1 and isinstance(message.parts[0], TextPart):
            return {"role": message.role, "content": message.parts[0].text}

        blocks: List[Dict[str, Any]] = []
        for part in message.parts:
            if isinstance(part, ImagePart):
                placeholder = self.image_placeholder(part)
                if placeholder is not None:
                    blocks.append({"type": "text", "text": placeholder})
                    continue
                image_url: Dict[str, Any] = {"url": part.as_data_url() or part.url}
                if part.detail:
                    image_url["detail"] = part.detail
                blocks.append({"type": "image_url", "image_url": image_url})
            else:
                blocks.append({"type": "text", "text": part.text})
        return {"role": message.role, "content": blocks}

    def parse_response(self, raw: Dict[str, Any], model: str) -> CompletionResponse:
        choices = raw.get("choices") or []
        first = choices[0] if choices else {}
        message = first.get("message") or {}
        usage = raw.get("usage") or {}

        return CompletionResponse(
            text=message.get("content") or "",
            model=raw.get("model") or model,
            usage=TokenUsage(
                prompt=usage.get("prompt_tokens") or 0,
                completion=usage.get("completion_tokens") or 0,
                total=usage.get("total_tokens") or 0,
            ),
            finish_reason=first.get("finish_reason"),
        )

    def parse_stream_event(self, event: Dict[str, Any]) -> Optional[str]:
        for choice in event.get("choices") or []:
            delta = choice.get("delta") or {}
            content = delta.get("content")
            if isinstance(content, str) and content:
                return content
        return None

    # --- Transport ---

    async def _send(self, request: Dict[str, Any]) -> Dict[str, Any]:
        self._log_request(request)
        try:
            response = await self.client.chat.completions.create(**request)
        except openai.OpenAIError as exc:
            raise self._map_error(exc, request.get("model")) from exc
        return self._to_dict(response)

    async def _send_stream(self, request: Dict[str, Any]) -> AsyncIterator[Dict[str, Any]]:
        self._log_request(request)
        try:
            stream = await self.client.chat.completions.create(**request)
        except openai.OpenAIError as exc:
            raise self._map_error(exc, request.get("model")) from exc

        try:
            async for chunk in stream:
                yield self._to_dict(chunk)
        except openai.OpenAIError as exc:
            raise self._map_error(exc, request.get("model")) from exc
        finally:
            await stream.close()

    def _map_error(self, exc: Exception, model: Optional[str]) -> Exception:
        if isinstance(exc, openai.APITimeoutError):
            return ModelTimeoutError(
                f"OpenAI request timed out after {self.timeout}s",
                timeout_seconds=self.timeout,
                original_error=exc,
                details={"provider": self.name, "model": model},
            )
        if isinstance(exc, openai.APIConnectionError):
            return ProviderConnectionError(
                f"OpenAI connection failed: {exc}",
                provider_name=self.name,
                model_name=model,
                original_error=exc,
            )
        if isinstance(exc, openai.APIStatusError):
            headers = getattr(exc.response, "headers", None) or {}
            return self._status_error(
                exc.status_code,
                exc.body if exc.body is not None else exc.message,
                model=model,
                retry_after=headers.get("retry-after"),
                original_error=exc,
            )
        return ProviderError(
            f"OpenAI request failed: {exc}",
            provider_name=self.name,
            model_name=model,
            original_error=exc,
        )

    @staticmethod
    def _to_dict(value: Any) -> Dict[str, Any]:
        if isinstance(value, dict):
            return value
        model_dump = getattr(value, "model_dump", None)
        if callable(model_dump):
            dumped = model_dump()
            if isinstance(dumped, dict):
                return dumped
        return {}

    @staticmethod
    def _log_request(request: Dict[str, Any]) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug(
                "OpenAI request headers: %s",
                {"Authorization": "Bearer ***REDACTED***"},
            )
            logger.debug(
                "OpenAI request payload: %s",
                json.dumps(request, ensure_ascii=False, default=str)[:2000],
            )
