"""Savvy: meeting-assistant core (classification, playbooks, prompts, LLM routing)."""

__version__ = "0.1.0"
