import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

import aiohttp

from savvy.config.settings import Settings
from savvy.exceptions.model import ModelTimeoutError
from savvy.exceptions.provider import (
    ProviderConfigurationError,
    ProviderConnectionError,
    ProviderResponseError,
)
from savvy.providers.base import BaseProvider
from savvy.structs import (
    ChatMessage,
    CompletionOptions,
    CompletionResponse,
    ConversationContext,
    ImagePart,
    TokenUsage,
)
from savvy.utils.logger import redact_headers

logger = logging.getLogger("AnthropicProvider")

DEFAULT_MAX_TOKENS = 4096


class AnthropicProvider(BaseProvider):
    """
    Adapter for the Anthropic Messages API over aiohttp.

    The system prompt travels in the top-level ``system`` field. Only inline
    (base64) images are sent natively; remote URLs degrade to a text
    placeholder.
    """

    name = "anthropic"
    default_model = "claude-3-sonnet-20240229"
    fallback_model = "claude-3-haiku-20240307"
    default_temperature = 0.3
    supports_remote_image_urls = False

    def __init__(self, settings: Settings, session: Optional[aiohttp.ClientSession] = None):
        if not settings.anthropic_api_key and session is None:
            raise ProviderConfigurationError(
                "ANTHROPIC_API_KEY is required when using the anthropic provider.",
                provider_name=self.name,
            )
        self.api_key = settings.anthropic_api_key or ""
        self.base_url = settings.anthropic_base_url.rstrip("/")
        self.api_version = settings.anthropic_version
        self.timeout = settings.request_timeout
        self._session = session

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
            "content-type": "application/json",
        }

    async def _get_session(self) -> aiohttp.ClientSession:
        """Create the shared HTTP session on first use."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout, headers=self.headers)
        return self._session

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    # --- Translation ---

    def build_request(
        self,
        context: ConversationContext,
        options: CompletionOptions,
        model: str,
        stream: bool = False,
    ) -> Dict[str, Any]:
        request: Dict[str, Any] = {
            "model": model,
            "max_tokens": options.max_tokens or DEFAULT_MAX_TOKENS,
            "messages": [self._serialize_message(m) for m in context.messages],
            "temperature": self.resolve_temperature(options),
        }
        if context.system_prompt:
            request["system"] = context.system_prompt
        if options.stop_sequences:
            request["stop_sequences"] = list(options.stop_sequences)
        if stream:
            request["stream"] = True
        return request

    def _serialize_message(self, message: ChatMessage) -> Dict[str, Any]:
        blocks: List[Dict[str, Any]] = []
        for part in message.parts:
            if isinstance(part, ImagePart):
                placeholder = self.image_placeholder(part)
                if placeholder is not None:
                    blocks.append({"type": "text", "text": placeholder})
                elif part.is_inline:
                    blocks.append(
                        {
                            "type": "image",
                            "source": {
                                "type": "base64",
                                "media_type": part.media_type,
                                "data": part.data,
                            },
                        }
                    )
                else:
                    blocks.append({"type": "image", "source": {"type": "url", "url": part.url}})
            else:
                blocks.append({"type": "text", "text": part.text})
        return {"role": message.role, "content": blocks}

    def parse_response(self, raw: Dict[str, Any], model: str) -> CompletionResponse:
        text = "".join(
            block.get("text", "")
            for block in raw.get("content") or []
            if block.get("type") == "text"
        )
        usage = raw.get("usage") or {}
        input_tokens = usage.get("input_tokens") or 0
        output_tokens = usage.get("output_tokens") or 0

        return CompletionResponse(
            text=text,
            model=raw.get("model") or model,
            usage=TokenUsage(
                prompt=input_tokens,
                completion=output_tokens,
                total=input_tokens + output_tokens,
            ),
            finish_reason=raw.get("stop_reason"),
        )

    def parse_stream_event(self, event: Dict[str, Any]) -> Optional[str]:
        if event.get("type") != "content_block_delta":
            return None
        delta = event.get("delta") or {}
        if delta.get("type") == "text_delta":
            return delta.get("text") or None
        return None

    # --- Transport ---

    async def _send(self, request: Dict[str, Any]) -> Dict[str, Any]:
        session = await self._get_session()
        self._log_request(request)
        model = request.get("model")
        try:
            async with session.post(
                f"{self.base_url}/v1/messages", json=request, headers=self.headers
            ) as response:
                await self._check_error_status(response, model)
                return await response.json()
        except asyncio.TimeoutError as exc:
            raise self._timeout_error(model, exc) from exc
        except (aiohttp.ClientError, json.JSONDecodeError) as exc:
            raise ProviderConnectionError(
                f"Anthropic communication error: {exc}",
                provider_name=self.name,
                model_name=model,
                original_error=exc,
            ) from exc

    async def _send_stream(self, request: Dict[str, Any]) -> AsyncIterator[Dict[str, Any]]:
        session = await self._get_session()
        self._log_request(request)
        model = request.get("model")
        try:
            async with session.post(
                f"{self.base_url}/v1/messages", json=request, headers=self.headers
            ) as response:
                await self._check_error_status(response, model)

                async for raw_line in response.content:
                    line = raw_line.decode("utf-8").strip()
                    # Server-Sent Events: only "data: {json}" lines carry payloads.
                    if not line.startswith("data: "):
                        continue
                    try:
                        event = json.loads(line[6:])
                    except json.JSONDecodeError:
                        logger.warning("Skipping malformed stream line: %s", line[:200])
                        continue

                    if event.get("type") == "error":
                        raise ProviderResponseError(
                            f"Anthropic stream error: {event.get('error')}",
                            provider_name=self.name,
                            model_name=model,
                            response_data=event,
                        )
                    yield event
                    if event.get("type") == "message_stop":
                        return
        except asyncio.TimeoutError as exc:
            raise self._timeout_error(model, exc) from exc
        except aiohttp.ClientError as exc:
            raise ProviderConnectionError(
                f"Anthropic stream connection error: {exc}",
                provider_name=self.name,
                model_name=model,
                original_error=exc,
            ) from exc

    async def _check_error_status(self, response: aiohttp.ClientResponse, model: Optional[str]):
        """Raise the typed provider error for HTTP status >= 400."""
        if response.status >= 400:
            error_text = await response.text()
            raise self._status_error(
                response.status,
                error_text,
                model=model,
                retry_after=response.headers.get("retry-after"),
            )

    def _timeout_error(self, model: Optional[str], exc: Exception) -> ModelTimeoutError:
        return ModelTimeoutError(
            f"Anthropic request timed out after {self.timeout}s",
            timeout_seconds=self.timeout,
            original_error=exc,
            details={"provider": self.name, "model": model},
        )

    def _log_request(self, request: Dict[str, Any]) -> None:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("Anthropic request headers: %s", redact_headers(self.headers))
            logger.debug(
                "Anthropic request payload: %s",
                json.dumps(request, ensure_ascii=False, default=str)[:2000],
            )
