from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..database import SessionLocal
from .contracts import expire_overdue_proposals
from .profiles import purge_deleted_profiles

logger = logging.getLogger(__name__)


def handle_contract_expiry(db: Session, now: Optional[datetime] = None) -> dict:
    expired = expire_overdue_proposals(db, now)
    if expired:
        logger.info("Expired %s contract proposal(s)", len(expired))
    return {"contracts_expired": len(expired)}


def handle_profile_purge(db: Session, now: Optional[datetime] = None) -> dict:
    return {"profiles_purged": purge_deleted_profiles(db, now)}


def run_maintenance() -> dict:
    """Run all maintenance tasks once and return a summary.

    Each task gets its own short-lived session.
    """
    with SessionLocal() as db:
        contracts = handle_contract_expiry(db)

    with SessionLocal() as db:
        profiles = handle_profile_purge(db)

    return {**contracts, **profiles}
