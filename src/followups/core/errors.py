"""
Domain Errors

Error taxonomy shared by the record store, the pipeline stages and the
approval executor. The API layer maps these onto HTTP responses.
"""

from typing import List, Optional


class FollowUpError(Exception):
    """Base class for all follow-up service errors."""

    def __init__(self, message: str = "An error occurred"):
        self.message = message
        super().__init__(message)


class ConfigurationError(FollowUpError):
    """Missing or invalid configuration. Fatal at startup."""

    def __init__(self, issues: List[str]):
        self.issues = list(issues)
        joined = "\n".join(f"  {issue}" for issue in self.issues)
        super().__init__(f"Missing or invalid environment variables:\n{joined}")


class EntityLookupError(FollowUpError, LookupError):
    """A collaborator could not resolve a referenced entity (owner, contact)."""

    def __init__(self, entity: str, entity_id: Optional[str] = None, message: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        msg = message or f"Could not resolve {entity}"
        if entity_id and not message:
            msg = f"Could not resolve {entity} '{entity_id}'"
        super().__init__(msg)


class ValidationError(FollowUpError):
    """Malformed external payload."""


class AuthenticationError(FollowUpError):
    """Signature or timestamp check failed."""

    def __init__(self, message: str = "Invalid signature"):
        super().__init__(message)


class NotFoundError(FollowUpError):
    """Follow-up record does not exist."""

    def __init__(self, follow_up_id: str):
        self.follow_up_id = follow_up_id
        super().__init__(f"Follow-up '{follow_up_id}' not found")


class AlreadyProcessedError(FollowUpError):
    """Follow-up record is already in a terminal state."""

    def __init__(self, follow_up_id: str, status: str):
        self.follow_up_id = follow_up_id
        self.status = status
        super().__init__(f"Follow-up '{follow_up_id}' already processed (status={status})")


class DuplicatePendingError(FollowUpError):
    """A pending follow-up already exists for the deal."""

    def __init__(self, deal_id: str, existing_id: Optional[str] = None):
        self.deal_id = deal_id
        self.existing_id = existing_id
        super().__init__(f"Deal '{deal_id}' already has a pending follow-up ({existing_id or 'unknown'})")


class InvalidTransitionError(FollowUpError):
    """Requested change would break the follow-up state machine."""

    def __init__(self, message: str, from_status: Optional[str] = None, to_status: Optional[str] = None):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(message)


class CollaboratorError(FollowUpError):
    """An external call (CRM, LLM, chat) failed."""

    service = "collaborator"

    def __init__(self, message: str, service: Optional[str] = None):
        if service:
            self.service = service
        super().__init__(f"{self.service}: {message}")


class CRMError(CollaboratorError):
    service = "hubspot"


class ScoringError(CollaboratorError):
    service = "scoring"


class DraftingError(CollaboratorError):
    service = "drafting"


class ChatError(CollaboratorError):
    service = "slack"
