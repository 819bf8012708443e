#!/usr/bin/env python3
"""
Context Exception Definitions for Savvy

Raised when a conversation context handed to the router is malformed.
"""

from savvy.exceptions.base import SavvyBaseError


class ContextError(SavvyBaseError):
    """Base exception for conversation context errors."""

    pass


class ContextValidationError(ContextError):
    """Raised when a conversation context breaks its structural rules."""

    def __init__(self, message, details=None):
        super().__init__(message, details=details)
        self.user_hint = "The request could not be built from the current context."
