#!/usr/bin/env python3
"""
Model Exception Definitions for Savvy

All model-related exceptions inherit from SavvyBaseError.
"""

from savvy.exceptions.base import SavvyBaseError


class ModelError(SavvyBaseError):
    """Base exception for model-related errors."""

    pass


class ModelTimeoutError(ModelError):
    """Raised when a model API request times out."""

    def __init__(self, message, timeout_seconds=None, original_error=None, details=None):
        super().__init__(message, original_error=original_error, details=details)
        self.timeout_seconds = timeout_seconds
        self.user_hint = "The model took too long to answer. Try again or pick a faster model."


class EmptyResponseError(ModelError):
    """Raised when a model returns no usable content."""

    def __init__(self, message, original_error=None, details=None):
        super().__init__(message, original_error=original_error, details=details)
        self.user_hint = "The model sent back an empty answer. Try again or switch models."


class NotesGenerationError(ModelError):
    """Raised when meeting notes cannot be produced from the model output."""

    def __init__(self, message, raw_response=None, original_error=None, details=None):
        super().__init__(message, original_error=original_error, details=details)
        self.raw_response = raw_response
        self.user_hint = "Meeting notes could not be generated. Please try again."
