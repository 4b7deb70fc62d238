"""
Follow-Up Service

Detects stale CRM deals, scores their urgency, drafts follow-up emails and
routes each one through a human approval card before anything is sent.
"""

__version__ = "1.0.0"
