"""
External collaborators: CRM, LLM and chat.
"""

from .base import CRMClient, UrgencyScorer, EmailDrafter, ChatNotifier, CardOutcome
from .hubspot import HubSpotCRM
from .llm import OpenAIChatClient, LLMUrgencyScorer, LLMEmailDrafter
from .slack import SlackNotifier, build_card_blocks

__all__ = [
    "CRMClient",
    "UrgencyScorer",
    "EmailDrafter",
    "ChatNotifier",
    "CardOutcome",
    "HubSpotCRM",
    "OpenAIChatClient",
    "LLMUrgencyScorer",
    "LLMEmailDrafter",
    "SlackNotifier",
    "build_card_blocks",
]
