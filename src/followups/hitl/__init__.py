"""
Human-in-the-Loop (HITL) Module

Callback authentication and approve/dismiss execution for follow-ups.

Usage:
    from followups.hitl import SignatureVerifier, ApprovalExecutor, parse_approval_callback

    if not verifier.verify(raw_body, timestamp, signature):
        ...  # 401
    action, follow_up_id = parse_approval_callback(raw_body)
    record = await executor.decide(action, follow_up_id)
"""

from .verify import SignatureVerifier, MAX_CLOCK_SKEW_SECONDS
from .callbacks import parse_approval_callback, build_callback_body, sign_callback
from .approval import ApprovalExecutor

__all__ = [
    "SignatureVerifier",
    "MAX_CLOCK_SKEW_SECONDS",
    "parse_approval_callback",
    "build_callback_body",
    "sign_callback",
    "ApprovalExecutor",
]
