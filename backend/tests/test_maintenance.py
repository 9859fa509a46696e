from datetime import date, datetime, timedelta
from unittest.mock import patch

from sqlalchemy.orm import sessionmaker

from stagelink.models import ContractProposal, ContractStatus, Profile
from stagelink.schemas.contract import ContractProposalCreate
from stagelink.services import booking_requests as booking_service
from stagelink.services import contracts as contract_service
from stagelink.services import maintenance
from stagelink.services import profiles as profile_service


def _open_proposal(db, artist, venue, expires_at):
    _, a = artist
    _, v = venue
    br = booking_service.create_booking_request(db, a.id, v.id, event_date=date(2025, 7, 15))
    return contract_service.create_proposal(
        db,
        v.id,
        ContractProposalCreate(
            booking_request_id=br.id,
            title="Show",
            payment={"total_amount": "500"},
            expires_at=expires_at,
        ),
    )


@patch("stagelink.services.contracts.notify_contract_expired")
def test_handle_contract_expiry(mock_expired, db, artist, venue):
    soon = datetime.utcnow() + timedelta(minutes=30)
    proposal = _open_proposal(db, artist, venue, soon)

    assert maintenance.handle_contract_expiry(db, now=soon - timedelta(minutes=1)) == {"contracts_expired": 0}
    assert maintenance.handle_contract_expiry(db, now=soon + timedelta(minutes=1)) == {"contracts_expired": 1}
    db.refresh(proposal)
    assert proposal.status == ContractStatus.EXPIRED
    mock_expired.assert_called_once()

    # Already expired rows are not counted again
    assert maintenance.handle_contract_expiry(db, now=soon + timedelta(days=1)) == {"contracts_expired": 0}


def test_handle_profile_purge(db, artist):
    user, a = artist
    profile_service.soft_delete_profile(db, user, a.id)
    later = datetime.utcnow() + profile_service.grace_period() + timedelta(hours=1)
    assert maintenance.handle_profile_purge(db, now=later) == {"profiles_purged": 1}
    assert db.query(Profile).count() == 0


def test_run_maintenance_uses_fresh_sessions(engine, db, artist, venue, monkeypatch):
    proposal = _open_proposal(db, artist, venue, datetime.utcnow() + timedelta(minutes=5))
    proposal.expires_at = datetime.utcnow() - timedelta(minutes=5)
    db.commit()

    monkeypatch.setattr(maintenance, "SessionLocal", sessionmaker(bind=engine))
    summary = maintenance.run_maintenance()
    assert summary == {"contracts_expired": 1, "profiles_purged": 0}

    db.expire_all()
    assert db.get(ContractProposal, proposal.id).status == ContractStatus.EXPIRED
