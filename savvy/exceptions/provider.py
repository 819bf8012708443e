#!/usr/bin/env python3
"""
Provider Exception Classes
==========================

Provider-specific exception classes for the multi-provider router.
Adapters raise these at the transport boundary; the router lets them
propagate untouched.
"""

from typing import Optional

from savvy.exceptions.base import SavvyBaseError


class ProviderError(SavvyBaseError):
    """
    Base exception for all provider-related errors.

    Carries the provider and model names in ``details`` so callers can
    decide on retries or fallbacks without parsing messages.
    """

    def __init__(
        self,
        message: str,
        provider_name: Optional[str] = None,
        model_name: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.provider_name = provider_name
        self.status_code = status_code

        if "provider_name" not in self.details and provider_name:
            self.details["provider_name"] = provider_name
        if "model_name" not in self.details and model_name:
            self.details["model_name"] = model_name
        if status_code is not None:
            self.details["status_code"] = status_code


class ProviderNotAvailableError(ProviderError):
    """Raised when the requested provider is not registered."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.user_hint = (
            "The selected LLM provider is not available. "
            "Check LLM_PROVIDER or pick one of the registered providers."
        )


class ProviderConfigurationError(ProviderError):
    """Raised when provider configuration is invalid or missing."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.user_hint = (
            "The provider configuration is invalid. "
            "Please check your configuration files and environment variables."
        )


class ProviderAuthenticationError(ProviderError):
    """Raised when API keys are invalid, expired or missing permissions."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.user_hint = (
            "Authentication with the provider failed. "
            "Please check your API keys and authentication settings."
        )


class ProviderRateLimitError(ProviderError):
    """
    Raised when provider rate limits are exceeded.

    The router does not retry; ``retry_after`` is surfaced for the caller.
    """

    def __init__(self, message: str, retry_after: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after = retry_after

        if retry_after is not None:
            self.details["retry_after_seconds"] = retry_after
            self.user_hint = (
                f"Rate limit exceeded. Please wait {retry_after} seconds before trying again."
            )
        else:
            self.user_hint = (
                "Rate limit exceeded. Please wait before making additional requests."
            )


class ProviderConnectionError(ProviderError):
    """Raised for network failures and timeouts while talking to a provider."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.user_hint = (
            "Failed to connect to the provider. "
            "Please check your internet connection and provider status."
        )


class ProviderResponseError(ProviderError):
    """Raised when the provider rejects a request or returns malformed data."""

    def __init__(self, message: str, response_data: Optional[dict] = None, **kwargs):
        super().__init__(message, **kwargs)

        if response_data:
            self.details["response_data"] = response_data

        self.user_hint = (
            "The provider returned an invalid response. "
            "This may be a temporary issue or provider API change."
        )
