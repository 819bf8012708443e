#!/usr/bin/env python3
"""
Configuration Exception Definitions for Savvy
"""

from savvy.exceptions.base import SavvyBaseError


class ConfigurationError(SavvyBaseError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message, details=None):
        super().__init__(message, details=details)
        self.user_hint = (
            "The configuration is invalid. "
            "Please check your .env file and environment variables."
        )
