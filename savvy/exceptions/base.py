#!/usr/bin/env python3
"""
Error base for the Savvy meeting copilot.

Everything the classifier, router, providers and notes generator raise on
purpose derives from SavvyBaseError, so the CLI can catch one type and show
the user a short hint instead of a traceback.
"""

from typing import Optional


class SavvyBaseError(Exception):
    """
    Root of the Savvy error hierarchy.

    Attributes:
        message: What went wrong, for logs.
        original_error: The SDK or transport exception that caused this one.
        user_hint: One line the CLI prints next to the message.
        details: Structured context (provider, model, status code).
    """

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
        user_hint: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.user_hint = user_hint or "An internal error occurred."
        self.details = details or {}
