import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
from ollama import AsyncClient, ResponseError

from savvy.config.settings import Settings
from savvy.exceptions.model import ModelTimeoutError
from savvy.exceptions.provider import ProviderConnectionError
from savvy.providers.base import BaseProvider
from savvy.structs import (
    ChatMessage,
    CompletionOptions,
    CompletionResponse,
    ConversationContext,
    ImagePart,
    TokenUsage,
)

logger = logging.getLogger("OllamaProvider")


class OllamaProvider(BaseProvider):
    """
    Adapter for Ollama (Local & Cloud).

    Messages are flat strings; inline images ride along in the message's
    ``images`` list as raw base64.
    """

    name = "ollama"
    default_model = "llama3.2-vision"
    fallback_model = "llama3.2"
    default_temperature = 0.3
    supports_remote_image_urls = False

    def __init__(self, settings: Settings, client: Optional[AsyncClient] = None):
        self.host = settings.ollama_host
        self.timeout = settings.request_timeout

        if client is None:
            headers = {}
            if settings.ollama_api_key:
                headers["Authorization"] = f"Bearer {settings.ollama_api_key}"
            # One client, reused for every request.
            client = AsyncClient(host=self.host, headers=headers, timeout=self.timeout)
        self.client = client

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

        sdk_options: Dict[str, Any] = {"temperature": self.resolve_temperature(options)}
        if options.max_tokens is not None:
            sdk_options["num_predict"] = options.max_tokens
        if options.stop_sequences:
            sdk_options["stop"] = list(options.stop_sequences)

        return {
            "model": model,
            "messages": messages,
            "options": sdk_options,
            "stream": stream,
        }

    def _serialize_message(self, message: ChatMessage) -> Dict[str, Any]:
        texts: List[str] = []
        images: List[str] = []
        for part in message.parts:
            if isinstance(part, ImagePart):
                placeholder = self.image_placeholder(part)
                if placeholder is not None:
                    texts.append(placeholder)
                else:
                    images.append(part.data if part.is_inline else part.url)
            else:
                texts.append(part.text)

        payload: Dict[str, Any] = {"role": message.role, "content": "\n".join(texts)}
        if images:
            payload["images"] = images
        return payload

    def parse_response(self, raw: Dict[str, Any], model: str) -> CompletionResponse:
        message = raw.get("message") or {}
        prompt_tokens = raw.get("prompt_eval_count") or 0
        completion_tokens = raw.get("eval_count") or 0

        return CompletionResponse(
            text=message.get("content") or "",
            model=raw.get("model") or model,
            usage=TokenUsage(
                prompt=prompt_tokens,
                completion=completion_tokens,
                total=prompt_tokens + completion_tokens,
            ),
            finish_reason=raw.get("done_reason"),
        )

    def parse_stream_event(self, event: Dict[str, Any]) -> Optional[str]:
        message = event.get("message") or {}
        return message.get("content") or None

    # --- Transport ---

    async def _send(self, request: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self.client.chat(**request)
        except (ResponseError, httpx.HTTPError) as exc:
            raise self._map_error(exc, request.get("model")) from exc
        return self._to_dict(response)

    async def _send_stream(self, request: Dict[str, Any]) -> AsyncIterator[Dict[str, Any]]:
        try:
            stream = await self.client.chat(**request)
        except (ResponseError, httpx.HTTPError) as exc:
            raise self._map_error(exc, request.get("model")) from exc

        try:
            async for chunk in stream:
                yield self._to_dict(chunk)
        except (ResponseError, httpx.HTTPError) as exc:
            raise self._map_error(exc, request.get("model")) from exc
        finally:
            await stream.aclose()

    def _map_error(self, exc: Exception, model: Optional[str]) -> Exception:
        if isinstance(exc, ResponseError):
            return self._status_error(
                exc.status_code, exc.error, model=model, original_error=exc
            )
        if isinstance(exc, httpx.TimeoutException):
            return ModelTimeoutError(
                f"Ollama request timed out after {self.timeout}s",
                timeout_seconds=self.timeout,
                original_error=exc,
                details={"provider": self.name, "model": model},
            )
        logger.error("Ollama request failed: %s", exc)
        return ProviderConnectionError(
            f"Ollama request failed: {exc}",
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
