import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Dict, Optional

from savvy.exceptions.provider import (
    ProviderAuthenticationError,
    ProviderError,
    ProviderRateLimitError,
    ProviderResponseError,
)
from savvy.structs import CompletionOptions, CompletionResponse, ConversationContext, ImagePart

IMAGE_URL_PLACEHOLDER = "[Image URL not supported]"

logger = logging.getLogger("BaseProvider")


class BaseProvider(ABC):
    """
    The Abstract Base Class (Contract) for all LLM Providers.

    A provider translates the neutral ConversationContext into its wire
    request, sends it, and normalizes the reply. ``complete`` and ``stream``
    are shared; subclasses supply the translation and transport hooks.
    """

    name: str = ""
    default_model: str = ""
    fallback_model: str = ""
    default_temperature: float = 0.3
    supports_remote_image_urls: bool = False

    # --- Translation ---

    @abstractmethod
    def build_request(
        self,
        context: ConversationContext,
        options: CompletionOptions,
        model: str,
        stream: bool = False,
    ) -> Dict[str, Any]:
        """Neutral context -> provider request payload."""

    @abstractmethod
    def parse_response(self, raw: Dict[str, Any], model: str) -> CompletionResponse:
        """Provider reply -> CompletionResponse."""

    @abstractmethod
    def parse_stream_event(self, event: Dict[str, Any]) -> Optional[str]:
        """Provider stream event -> text fragment, or None for bookkeeping events."""

    # --- Transport ---

    @abstractmethod
    async def _send(self, request: Dict[str, Any]) -> Dict[str, Any]:
        """Send a non-streaming request; raise ProviderError subclasses on failure."""

    @abstractmethod
    def _send_stream(self, request: Dict[str, Any]) -> AsyncIterator[Dict[str, Any]]:
        """Async generator of decoded stream events."""

    async def close(self) -> None:
        """Release transport resources."""

    # --- Shared flow ---

    def image_placeholder(self, part: ImagePart) -> Optional[str]:
        """
        Text to send instead of ``part``, or None when it can go natively.

        Inline images always go natively; remote URLs only when the provider
        declares ``supports_remote_image_urls``.
        """
        if part.is_inline or self.supports_remote_image_urls:
            return None
        logger.warning("%s: remote image URL not supported, sending placeholder", self.name)
        return IMAGE_URL_PLACEHOLDER

    def resolve_model(self, options: CompletionOptions, active_model: Optional[str]) -> str:
        return options.model or active_model or self.default_model

    def resolve_temperature(self, options: CompletionOptions) -> float:
        if options.temperature is None:
            return self.default_temperature
        return options.temperature

    async def complete(
        self, context: ConversationContext, options: CompletionOptions, model: str
    ) -> CompletionResponse:
        request = self.build_request(context, options, model, stream=False)
        raw = await self._send(request)
        return self.parse_response(raw, model)

    async def stream(
        self, context: ConversationContext, options: CompletionOptions, model: str
    ) -> AsyncIterator[str]:
        request = self.build_request(context, options, model, stream=True)
        events = self._send_stream(request)
        try:
            async for event in events:
                fragment = self.parse_stream_event(event)
                if fragment:
                    yield fragment
        finally:
            # Closing the event generator releases the HTTP connection.
            await events.aclose()

    # --- Helpers ---

    def _status_error(
        self,
        status_code: int,
        body: Any,
        model: Optional[str] = None,
        retry_after: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> ProviderError:
        """Map an HTTP error status to the typed provider hierarchy."""
        snippet = str(body)[:600] if body is not None else ""
        reason = {
            400: "bad_request",
            401: "unauthorized",
            403: "forbidden",
            404: "not_found",
            429: "rate_limited",
        }.get(status_code, "api_error")
        message = f"{self.name} API error ({status_code} {reason})."
        if snippet:
            message = f"{message} Response snippet: {snippet}"

        common = {
            "provider_name": self.name,
            "model_name": model,
            "status_code": status_code,
            "original_error": original_error,
        }
        if status_code in (401, 403):
            return ProviderAuthenticationError(message, **common)
        if status_code == 429:
            return ProviderRateLimitError(
                message, retry_after=_parse_retry_after(retry_after), **common
            )
        return ProviderResponseError(message, **common)


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.debug("Unparseable Retry-After header: %r", value)
        return None
