"""Portfolio and contact-message operations on top of the store."""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from errors import DuplicateRecord, InvalidInput, NotFound
from schemas import ContactCreate, ContactMessageRecord, PortfolioData, PortfolioRecord, UserRecord, validate_payload
from storage import Storage

logger = logging.getLogger(__name__)


_PORTFOLIO_ID = re.compile(r"-?[0-9]+")


def parse_portfolio_id(raw_id: Any) -> int:
    if raw_id is None or not _PORTFOLIO_ID.fullmatch(str(raw_id)):
        raise InvalidInput("Invalid portfolio ID")
    return int(raw_id)


# ========================================================================
# Portfolio
# ========================================================================

def get_portfolio_record(store: Storage, raw_id: Any) -> PortfolioRecord:
    portfolio = store.get_portfolio(parse_portfolio_id(raw_id))
    if portfolio is None:
        raise NotFound("Portfolio not found")
    return portfolio


def get_portfolio_data(store: Storage, raw_id: Any) -> Dict[str, Any]:
    return get_portfolio_record(store, raw_id).data


def upsert_portfolio(store: Storage, user: UserRecord, raw: Any) -> Tuple[PortfolioRecord, bool]:
    """Create the user's portfolio or replace its data.

    Returns the stored record and whether it was newly created.  The whole
    ``data`` value is replaced on update; nothing is merged.
    """
    data = validate_payload(PortfolioData, raw).to_json()

    existing = store.get_portfolio_by_user_id(user.id)
    if existing is None:
        try:
            portfolio = store.create_portfolio({"user_id": user.id, "data": data})
            logger.info("Created portfolio %s for user %s", portfolio.id, user.username)
            return portfolio, True
        except DuplicateRecord:
            # a concurrent first submission won; fall through to update
            existing = store.get_portfolio_by_user_id(user.id)

    portfolio = store.update_portfolio(existing.id, data)
    if portfolio is None:
        raise NotFound("Portfolio not found")
    logger.info("Updated portfolio %s for user %s", portfolio.id, user.username)
    return portfolio, False


def ordered_projects(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Projects in display order: explicit ``order`` first, array index otherwise."""
    projects = data.get("projects") or []
    indexed = [
        (project.get("order") if project.get("order") is not None else index, index, project)
        for index, project in enumerate(projects)
    ]
    indexed.sort(key=lambda item: (item[0], item[1]))
    return [project for _, _, project in indexed]


def renumber_projects(projects: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Copies of *projects* with ``order`` set to their position."""
    return [{**project, "order": index} for index, project in enumerate(projects)]


# ========================================================================
# Contact messages
# ========================================================================

def submit_contact(store: Storage, raw: Any) -> ContactMessageRecord:
    """Stamp, validate and store a contact message."""
    payload = dict(raw) if isinstance(raw, dict) else raw
    if isinstance(payload, dict):
        # the server clock is authoritative
        payload.pop("created_at", None)
        payload["createdAt"] = datetime.now(timezone.utc).isoformat()

    contact = validate_payload(ContactCreate, payload)
    message = store.create_contact_message({
        "name": contact.name,
        "email": contact.email,
        "subject": contact.subject,
        "message": contact.message,
        "created_at": contact.created_at.isoformat(),
        "portfolio_id": contact.portfolio_id,
    })
    logger.info("Stored contact message %s for portfolio %s", message.id, message.portfolio_id)
    return message


def list_contact_messages(store: Storage, user: UserRecord, raw_id: Any) -> List[ContactMessageRecord]:
    portfolio = get_portfolio_record(store, raw_id)
    if portfolio.user_id != user.id:
        raise NotFound("Portfolio not found")
    return store.get_contact_messages(portfolio.id)
