from savvy.playbooks.defaults import DEFAULT_PLAYBOOKS
from savvy.playbooks.models import ContextPriority, Example, Playbook, ResponseFormat
from savvy.playbooks.registry import PlaybookRegistry

__all__ = [
    "DEFAULT_PLAYBOOKS",
    "ContextPriority",
    "Example",
    "Playbook",
    "PlaybookRegistry",
    "ResponseFormat",
]
