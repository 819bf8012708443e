#!/usr/bin/env python3
"""
Savvy Exceptions Package

Unified exception hierarchy for the meeting assistant core.
"""

# Base exceptions
from .base import SavvyBaseError

# Model exceptions
from .model import (
    EmptyResponseError,
    ModelError,
    ModelTimeoutError,
    NotesGenerationError,
)

# Provider exceptions
from .provider import (
    ProviderError,
    ProviderNotAvailableError,
    ProviderConfigurationError,
    ProviderAuthenticationError,
    ProviderRateLimitError,
    ProviderConnectionError,
    ProviderResponseError,
)

# Context exceptions
from .context import ContextError, ContextValidationError

# Config exceptions
from .config import ConfigurationError


__all__ = [
    # Base
    "SavvyBaseError",
    # Model
    "ModelError",
    "ModelTimeoutError",
    "EmptyResponseError",
    "NotesGenerationError",
    # Context
    "ContextError",
    "ContextValidationError",
    # Config
    "ConfigurationError",
    # Provider
    "ProviderError",
    "ProviderNotAvailableError",
    "ProviderConfigurationError",
    "ProviderAuthenticationError",
    "ProviderRateLimitError",
    "ProviderConnectionError",
    "ProviderResponseError",
]
