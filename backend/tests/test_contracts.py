from datetime import date, datetime, timedelta

import pytest

from stagelink.models import (
    BookingRequest,
    BookingRequestStatus,
    ContractNegotiation,
    ContractProposal,
    ContractSignature,
    ContractStatus,
    Notification,
    NotificationType,
    ProfileType,
)
from stagelink.schemas.contract import ContractProposalCreate
from stagelink.services import booking_requests as booking_service
from stagelink.services import contracts as contract_service
from stagelink.utils.errors import (
    NotFoundError,
    PermissionDeniedError,
    StateError,
    ValidationError,
)


def _proposal_data(**overrides):
    data = {
        "title": "Summer Show",
        "description": "One 90 minute set",
        "terms": {
            "performance_duration": "90 minutes",
            "performers": [{"id": "h", "name": "Headliner", "performance_order": 1}],
        },
        "payment": {"total_amount": "500", "currency": "USD"},
        "requirements": "Backline provided",
    }
    data.update(overrides)
    return ContractProposalCreate(**data)


@pytest.fixture
def booking(db, artist, venue):
    _, a = artist
    _, v = venue
    return booking_service.create_booking_request(db, a.id, v.id, event_date=date(2025, 7, 15))


@pytest.fixture
def proposal(db, venue, booking):
    _, v = venue
    return contract_service.create_proposal(db, v.id, _proposal_data(booking_request_id=booking.id))


def _types(db, user_id):
    return [n.type for n in db.query(Notification).filter(Notification.user_id == user_id).all()]


def test_venue_proposes_on_booking(db, artist, venue, proposal):
    artist_user, a = artist
    _, v = venue
    assert proposal.status == ContractStatus.PENDING
    assert proposal.proposed_by == v.id
    assert proposal.proposed_to == a.id
    assert proposal.payment["total_amount"] == "500"
    assert proposal.terms["performers"][0]["performance_order"] == 1
    assert proposal.terms["performers"][0]["role"] == "Headliner"
    assert NotificationType.CONTRACT_PROPOSED in _types(db, artist_user.id)


def test_negotiate_moves_to_negotiating_once(db, artist, venue, proposal):
    _, a = artist
    venue_user, v = venue

    entry = contract_service.negotiate(db, proposal.id, a.id, "Can we do 600?")
    db.refresh(proposal)
    assert proposal.status == ContractStatus.NEGOTIATING
    assert entry.profile_id == a.id

    detail = contract_service.get_detail(db, proposal.id, v.id)
    assert [n.message for n in detail["negotiations"]] == ["Can we do 600?"]
    assert detail["negotiations"][-1].profile_id == a.id
    assert NotificationType.CONTRACT_NEGOTIATION in _types(db, venue_user.id)

    contract_service.negotiate(db, proposal.id, v.id, "550 and we cover travel", {"payment": {"total_amount": "550"}})
    contract_service.negotiate(db, proposal.id, a.id, "Deal")
    db.refresh(proposal)
    assert proposal.status == ContractStatus.NEGOTIATING

    log = contract_service.get_detail(db, proposal.id, a.id)["negotiations"]
    assert [n.message for n in log] == ["Can we do 600?", "550 and we cover travel", "Deal"]
    assert log[1].proposed_changes == {"payment": {"total_amount": "550"}}


def test_negotiate_requires_party_and_message(db, make_profile, proposal):
    _, stranger = make_profile(ProfileType.ARTIST, "Stranger")
    with pytest.raises(PermissionDeniedError):
        contract_service.negotiate(db, proposal.id, stranger.id, "hi")
    with pytest.raises(ValidationError):
        contract_service.negotiate(db, proposal.id, proposal.proposed_to, "   ")
    assert db.query(ContractNegotiation).count() == 0
    db.refresh(proposal)
    assert proposal.status == ContractStatus.PENDING


def test_accept_writes_signature_and_notifies(db, artist, venue, proposal):
    _, a = artist
    venue_user, _ = venue

    accepted = contract_service.accept(
        db, proposal.id, a.id, signature_data="sig", ip_address="127.0.0.1", user_agent="pytest"
    )
    assert accepted.status == ContractStatus.ACCEPTED
    assert accepted.accepted_at is not None
    sigs = db.query(ContractSignature).all()
    assert len(sigs) == 1
    assert (sigs[0].profile_id, sigs[0].signature_data, sigs[0].ip_address) == (a.id, "sig", "127.0.0.1")
    assert NotificationType.CONTRACT_ACCEPTED in _types(db, venue_user.id)

    with pytest.raises(StateError) as exc:
        contract_service.reject(db, proposal.id, a.id)
    assert exc.value.current_status == "accepted"
    with pytest.raises(StateError):
        contract_service.negotiate(db, proposal.id, a.id, "one more thing")


def test_accept_without_signature_uses_profile_name(db, artist, proposal):
    _, a = artist
    contract_service.accept(db, proposal.id, a.id)
    sig = db.query(ContractSignature).one()
    assert sig.signature_data == "Accepted by The Lanterns"


def test_accept_after_negotiation(db, artist, proposal):
    _, a = artist
    contract_service.negotiate(db, proposal.id, a.id, "Can we do 600?")
    assert contract_service.accept(db, proposal.id, a.id).status == ContractStatus.ACCEPTED


def test_only_recipient_can_respond(db, venue, make_profile, proposal):
    _, v = venue
    _, stranger = make_profile(ProfileType.VENUE, "Stranger Hall")
    for acting in (v.id, stranger.id):
        with pytest.raises(PermissionDeniedError):
            contract_service.accept(db, proposal.id, acting)
        with pytest.raises(PermissionDeniedError):
            contract_service.reject(db, proposal.id, acting)
    db.refresh(proposal)
    assert proposal.status == ContractStatus.PENDING


def test_reject_records_reason(db, artist, venue, proposal):
    _, a = artist
    venue_user, _ = venue
    rejected = contract_service.reject(db, proposal.id, a.id, reason="Fee too low")
    assert rejected.status == ContractStatus.REJECTED
    assert rejected.rejected_at is not None

    log = contract_service.get_detail(db, proposal.id, a.id)["negotiations"]
    assert [n.message for n in log] == ["Rejection note: Fee too low"]
    rejected_notes = (
        db.query(Notification)
        .filter(Notification.user_id == venue_user.id, Notification.type == NotificationType.CONTRACT_REJECTED)
        .all()
    )
    assert len(rejected_notes) == 1
    assert "Fee too low" in rejected_notes[0].message

    with pytest.raises(StateError):
        contract_service.accept(db, proposal.id, a.id)


def test_reject_without_reason_adds_no_entry(db, artist, proposal):
    _, a = artist
    contract_service.reject(db, proposal.id, a.id)
    assert db.query(ContractNegotiation).count() == 0


def test_only_venue_of_booking_can_propose(db, artist, make_profile, booking):
    _, a = artist
    _, other_venue = make_profile(ProfileType.VENUE, "Other Hall")
    for acting in (a.id, other_venue.id):
        with pytest.raises(PermissionDeniedError):
            contract_service.create_proposal(db, acting, _proposal_data(booking_request_id=booking.id))
    assert db.query(ContractProposal).count() == 0


def test_proposal_needs_a_counterpart(db, venue):
    _, v = venue
    with pytest.raises(ValidationError):
        contract_service.create_proposal(db, v.id, _proposal_data())
    with pytest.raises(NotFoundError):
        contract_service.create_proposal(db, v.id, _proposal_data(booking_request_id=321))


def test_proposal_validation(db, venue, booking):
    _, v = venue
    with pytest.raises(ValidationError):
        contract_service.create_proposal(db, v.id, _proposal_data(booking_request_id=booking.id, title="   "))
    past = datetime.utcnow() - timedelta(minutes=5)
    with pytest.raises(ValidationError):
        contract_service.create_proposal(db, v.id, _proposal_data(booking_request_id=booking.id, expires_at=past))
    assert db.query(ContractProposal).count() == 0


def test_direct_proposal_creates_parent_booking(db, artist, venue):
    _, a = artist
    venue_user, v = venue
    proposal = contract_service.create_proposal(db, a.id, _proposal_data(venue_id=v.id))
    assert proposal.proposed_by == a.id
    assert proposal.proposed_to == v.id

    parent = db.get(BookingRequest, proposal.booking_request_id)
    assert (parent.artist_profile_id, parent.venue_profile_id) == (a.id, v.id)
    assert parent.status == BookingRequestStatus.PENDING
    assert parent.message == contract_service.DIRECT_PROPOSAL_MESSAGE
    assert NotificationType.CONTRACT_PROPOSED in _types(db, venue_user.id)


def test_direct_proposal_requires_artist(db, venue, make_profile):
    _, v = venue
    _, other_venue = make_profile(ProfileType.VENUE, "Other Hall")
    with pytest.raises(PermissionDeniedError):
        contract_service.create_proposal(db, other_venue.id, _proposal_data(venue_id=v.id))
    assert db.query(BookingRequest).count() == 0


def test_reopened_booking_can_still_get_a_proposal(db, artist, venue, booking):
    _, a = artist
    _, v = venue
    booking_service.update_status(db, booking.id, "rejected", v.id, decline_message="fully booked")
    proposal = contract_service.create_proposal(db, v.id, _proposal_data(booking_request_id=booking.id))
    contract_service.negotiate(db, proposal.id, a.id, "Can we do 600?")
    detail = contract_service.get_detail(db, proposal.id, a.id)
    assert detail["proposal"].status == ContractStatus.NEGOTIATING
    assert len(detail["negotiations"]) == 1
    assert detail["negotiations"][-1].profile_id == a.id


def _expire(db, proposal):
    proposal.expires_at = datetime.utcnow() - timedelta(seconds=1)
    db.commit()


def test_expired_on_read(db, artist, venue, proposal):
    artist_user, a = artist
    venue_user, v = venue
    _expire(db, proposal)

    detail = contract_service.get_detail(db, proposal.id, v.id)
    assert detail["proposal"].status == ContractStatus.EXPIRED
    assert NotificationType.CONTRACT_EXPIRED in _types(db, artist_user.id)
    assert NotificationType.CONTRACT_EXPIRED in _types(db, venue_user.id)


@pytest.mark.parametrize("action", ["accept", "reject", "negotiate"])
def test_expired_blocks_actions(db, artist, proposal, action):
    _, a = artist
    _expire(db, proposal)
    call = {
        "accept": lambda: contract_service.accept(db, proposal.id, a.id),
        "reject": lambda: contract_service.reject(db, proposal.id, a.id),
        "negotiate": lambda: contract_service.negotiate(db, proposal.id, a.id, "still there?"),
    }[action]
    with pytest.raises(StateError) as exc:
        call()
    assert exc.value.current_status == "expired"
    db.refresh(proposal)
    assert proposal.status == ContractStatus.EXPIRED
    assert db.query(ContractSignature).count() == 0


def test_list_expires_and_returns_counterpart(db, artist, venue, proposal):
    _, a = artist
    _, v = venue
    _expire(db, proposal)
    items = contract_service.list_for_profile(db, a.id)
    assert len(items) == 1
    assert items[0]["proposal"].status == ContractStatus.EXPIRED
    assert items[0]["counterpart"].id == v.id


def test_sweeper_expires_only_overdue_open(db, artist, venue, booking):
    _, a = artist
    _, v = venue
    soon = datetime.utcnow() + timedelta(hours=1)
    overdue = contract_service.create_proposal(
        db, v.id, _proposal_data(booking_request_id=booking.id, expires_at=soon)
    )
    later = contract_service.create_proposal(
        db, v.id, _proposal_data(booking_request_id=booking.id, expires_at=soon + timedelta(days=2))
    )
    done = contract_service.create_proposal(
        db, v.id, _proposal_data(booking_request_id=booking.id, expires_at=soon)
    )
    contract_service.accept(db, done.id, a.id)

    expired = contract_service.expire_overdue_proposals(db, now=soon + timedelta(minutes=1))
    assert [p.id for p in expired] == [overdue.id]
    db.refresh(later)
    db.refresh(done)
    assert later.status == ContractStatus.PENDING
    assert done.status == ContractStatus.ACCEPTED


def test_offset_expiry_stored_as_naive_utc(db, venue, booking):
    _, v = venue
    created = contract_service.create_proposal(
        db,
        v.id,
        _proposal_data(booking_request_id=booking.id, expires_at="2099-01-01T02:00:00+02:00"),
    )
    assert created.expires_at == datetime(2099, 1, 1, 0, 0)
    assert created.status == ContractStatus.PENDING

    zulu = contract_service.create_proposal(
        db, v.id, _proposal_data(booking_request_id=booking.id, expires_at="2099-01-01T00:00:00Z")
    )
    assert zulu.expires_at.tzinfo is None
    assert contract_service.expire_overdue_proposals(db) == []


@pytest.mark.parametrize(
    "action",
    [
        lambda db, p: contract_service.accept(db, p.id, p.proposed_to, signature_data="sig"),
        lambda db, p: contract_service.reject(db, p.id, p.proposed_to, reason="too late"),
        lambda db, p: contract_service.negotiate(db, p.id, p.proposed_to, "Counter offer"),
    ],
    ids=["accept", "reject", "negotiate"],
)
def test_losing_concurrent_transition_raises_state_error(db, proposal, monkeypatch, action):
    from stagelink.crud import crud_contract

    real = crud_contract.transition_status

    def lose_race(session, proposal_id, expected, values):
        # Another request rejects the proposal first
        real(session, proposal_id, expected, {"status": ContractStatus.REJECTED})
        session.commit()
        return 0

    monkeypatch.setattr(crud_contract, "transition_status", lose_race)
    with pytest.raises(StateError) as exc:
        action(db, proposal)
    assert exc.value.current_status == "rejected"
    assert proposal.status == ContractStatus.REJECTED
    assert db.query(ContractSignature).count() == 0
    assert db.query(ContractNegotiation).count() == 0
