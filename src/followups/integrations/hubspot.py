"""
HubSpot CRM Client

Async httpx client for the HubSpot CRM v3/v4 REST APIs.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..core.errors import CRMError, EntityLookupError
from ..core.models import Contact, Deal, EmailSummary, now_utc_iso, parse_timestamp
from .base import CRMClient

logger = logging.getLogger(__name__)

DEAL_PROPERTIES = [
    "dealname",
    "dealstage",
    "amount",
    "closedate",
    "hubspot_owner_id",
    "hs_lastmodifieddate",
    "notes_last_updated",
]
CONTACT_PROPERTIES = ["email", "firstname", "lastname", "company"]
EMAIL_PROPERTIES = ["hs_email_subject", "hs_email_from", "hs_email_to", "hs_email_text", "hs_timestamp"]

CLOSED_STAGES = frozenset(("closedwon", "closedlost"))

# HubSpot-defined association type: note -> deal
NOTE_TO_DEAL_ASSOCIATION_TYPE = 214

BODY_PREVIEW_CHARS = 500
PAGE_SIZE = 100


def _to_amount(raw: Any) -> Optional[float]:
    if raw in (None, ""):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None


class HubSpotCRM(CRMClient):
    """
    HubSpot-backed CRM collaborator.

    Usage:
        async with HubSpotCRM(token) as crm:
            deals = await crm.list_open_deals()
    """

    def __init__(
        self,
        access_token: str,
        *,
        base_url: str = "https://api.hubapi.com",
        timeout_ms: int = 30000,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_ms / 1000,
        )
        self._headers = {"Authorization": f"Bearer {access_token}"}

    async def __aenter__(self) -> "HubSpotCRM":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            response = await self._client.request(method, path, headers=self._headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise CRMError(f"{method} {path} returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise CRMError(f"{method} {path} failed: {type(e).__name__}") from e
        if not response.content:
            return {}
        return response.json()

    async def _associated_ids(self, from_type: str, object_id: str, to_type: str) -> List[str]:
        data = await self._request("GET", f"/crm/v4/objects/{from_type}/{object_id}/associations/{to_type}")
        return [str(r["toObjectId"]) for r in data.get("results", []) if r.get("toObjectId") is not None]

    async def list_open_deals(self) -> List[Deal]:
        deals: List[Deal] = []
        after: Optional[str] = None

        while True:
            params: Dict[str, Any] = {
                "limit": PAGE_SIZE,
                "properties": ",".join(DEAL_PROPERTIES),
                "archived": "false",
            }
            if after:
                params["after"] = after
            data = await self._request("GET", "/crm/v3/objects/deals", params=params)

            for item in data.get("results", []):
                props = item.get("properties") or {}
                stage = props.get("dealstage")
                if stage and stage.lower() in CLOSED_STAGES:
                    continue
                deals.append(Deal(
                    id=str(item["id"]),
                    name=props.get("dealname") or "Unnamed Deal",
                    stage=stage,
                    amount=_to_amount(props.get("amount")),
                    close_date=props.get("closedate"),
                    owner_id=props.get("hubspot_owner_id"),
                    last_modified=props.get("hs_lastmodifieddate"),
                ))

            after = ((data.get("paging") or {}).get("next") or {}).get("after")
            if not after:
                break

        logger.info("Fetched %d open deals from HubSpot", len(deals))
        return deals

    async def get_contact(self, deal_id: str) -> Optional[Contact]:
        contact_ids = await self._associated_ids("deals", deal_id, "contacts")
        if not contact_ids:
            return None

        data = await self._request(
            "GET",
            f"/crm/v3/objects/contacts/{contact_ids[0]}",
            params={"properties": ",".join(CONTACT_PROPERTIES)},
        )
        props = data.get("properties") or {}
        return Contact(
            id=str(data.get("id", contact_ids[0])),
            email=props.get("email") or "",
            first_name=props.get("firstname") or "",
            last_name=props.get("lastname") or "",
            company=props.get("company"),
        )

    async def get_recent_emails(self, deal_id: str, limit: int = 3) -> List[EmailSummary]:
        email_ids = await self._associated_ids("deals", deal_id, "emails")
        emails: List[EmailSummary] = []

        for email_id in email_ids[:limit]:
            try:
                data = await self._request(
                    "GET",
                    f"/crm/v3/objects/emails/{email_id}",
                    params={"properties": ",".join(EMAIL_PROPERTIES)},
                )
            except CRMError:
                logger.debug("Skipping inaccessible email %s on deal %s", email_id, deal_id)
                continue
            props = data.get("properties") or {}
            emails.append(EmailSummary(
                subject=props.get("hs_email_subject") or "(no subject)",
                sender=props.get("hs_email_from") or "",
                to=props.get("hs_email_to") or "",
                date=props.get("hs_timestamp") or "",
                body_preview=(props.get("hs_email_text") or "")[:BODY_PREVIEW_CHARS],
            ))

        return sort_newest_first(emails)

    async def get_last_email_date(self, deal_id: str, limit: int = 3) -> Optional[str]:
        """Date of the newest of the first ``limit`` associated emails, or None."""
        emails = await self.get_recent_emails(deal_id, limit=limit)
        return emails[0].date if emails and emails[0].date else None

    async def get_owner_email(self, owner_id: str) -> str:
        try:
            data = await self._request("GET", f"/crm/v3/owners/{owner_id}")
        except CRMError as e:
            raise EntityLookupError("owner", owner_id) from e
        email = data.get("email")
        if not email:
            raise EntityLookupError("owner", owner_id, message=f"Owner '{owner_id}' has no email")
        return email

    async def create_note(self, deal_id: str, text: str) -> None:
        note = await self._request(
            "POST",
            "/crm/v3/objects/notes",
            json={"properties": {"hs_note_body": text, "hs_timestamp": now_utc_iso()}},
        )
        note_id = note.get("id")
        if not note_id:
            raise CRMError("note creation returned no id")

        await self._request(
            "PUT",
            f"/crm/v4/objects/notes/{note_id}/associations/deals/{deal_id}",
            json=[{
                "associationCategory": "HUBSPOT_DEFINED",
                "associationTypeId": NOTE_TO_DEAL_ASSOCIATION_TYPE,
            }],
        )
        logger.info("Logged follow-up note %s on deal %s", note_id, deal_id)


def sort_newest_first(emails: List[EmailSummary]) -> List[EmailSummary]:
    """Sort by date descending; undated emails go last."""
    def key(e: EmailSummary) -> float:
        parsed = parse_timestamp(e.date)
        return parsed.timestamp() if parsed else float("-inf")

    return sorted(emails, key=key, reverse=True)
