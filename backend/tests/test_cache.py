from datetime import date, datetime, timedelta

import fakeredis

from stagelink.crud import crud_booking_request
from stagelink.services import availability
from stagelink.services import booking_requests as booking_service
from stagelink.services import profiles as profile_service
from stagelink.utils import redis_cache


class FailingDB:
    def query(self, *models):
        raise AssertionError("db should not be accessed")


def test_cache_availability_round_trip(monkeypatch):
    fake = fakeredis.FakeStrictRedis()
    monkeypatch.setattr(redis_cache, "get_redis_client", lambda: fake)

    data = {"month": 7, "year": 2025, "days": {}}
    redis_cache.cache_availability(data, 1, 2, 2025, 7, expire=10)
    assert redis_cache.get_cached_availability(1, 2, 2025, 7) == data
    assert redis_cache.get_cached_availability(1, 2, 2025, 8) is None
    assert redis_cache.get_cached_availability(2, 1, 2025, 7) is None


def test_invalidate_matches_either_side(monkeypatch):
    fake = fakeredis.FakeStrictRedis()
    monkeypatch.setattr(redis_cache, "get_redis_client", lambda: fake)

    redis_cache.cache_availability({"a": 1}, 1, 2, 2025, 7)
    redis_cache.cache_availability({"a": 2}, 3, 2, 2025, 7)
    redis_cache.cache_availability({"a": 3}, 3, 4, 2025, 7)
    redis_cache.cache_availability({"a": 4}, None, 2, 2025, 7)

    assert redis_cache.invalidate_availability_cache([2]) == 3
    assert redis_cache.get_cached_availability(3, 4, 2025, 7) == {"a": 3}
    assert redis_cache.invalidate_availability_cache([None, 3]) == 1


def test_availability_served_from_cache(monkeypatch, db, artist, venue):
    fake = fakeredis.FakeStrictRedis()
    monkeypatch.setattr(redis_cache, "get_redis_client", lambda: fake)
    _, a = artist
    _, v = venue
    crud_booking_request.create_booking_request(db, a.id, v.id, event_date=date(2025, 7, 15))
    db.commit()

    first = availability.get_availability(db, a.id, v.id, 7, 2025)
    second = availability.get_availability(FailingDB(), a.id, v.id, 7, 2025)
    assert first == second


def test_booking_change_invalidates_cached_month(monkeypatch, db, artist, venue):
    fake = fakeredis.FakeStrictRedis()
    monkeypatch.setattr(redis_cache, "get_redis_client", lambda: fake)
    _, a = artist
    _, v = venue

    before = availability.get_availability(db, a.id, v.id, 7, 2025)
    assert before["days"]["2025-07-15"]["status"] == "available"

    br = booking_service.create_booking_request(db, a.id, v.id, event_date=date(2025, 7, 15))
    assert availability.get_availability(db, a.id, v.id, 7, 2025)["days"]["2025-07-15"]["status"] == "has-events"

    booking_service.update_status(db, br.id, "accepted", v.id)
    after = availability.get_availability(db, a.id, v.id, 7, 2025)
    assert after["days"]["2025-07-15"]["status"] == "both-unavailable"


def test_fallback_when_redis_unavailable(monkeypatch, db, artist):
    class DummyRedis:
        def get(self, key):
            raise redis_cache.redis.exceptions.ConnectionError()

        def setex(self, *args, **kwargs):
            raise redis_cache.redis.exceptions.ConnectionError()

        def scan_iter(self, pattern):
            raise redis_cache.redis.exceptions.ConnectionError()

    monkeypatch.setattr(redis_cache, "get_redis_client", lambda: DummyRedis())
    _, a = artist

    result = availability.get_availability(db, a.id, None, 7, 2025)
    assert len(result["days"]) == 31
    assert redis_cache.invalidate_availability_cache([a.id]) == 0


def test_corrupt_entry_is_a_miss(monkeypatch):
    fake = fakeredis.FakeStrictRedis()
    monkeypatch.setattr(redis_cache, "get_redis_client", lambda: fake)
    fake.set(redis_cache._availability_key(1, 2, 2025, 7), b"{not json")
    assert redis_cache.get_cached_availability(1, 2, 2025, 7) is None


def test_disabled_redis_uses_null_client(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "disabled")
    client = redis_cache.get_redis_client()
    assert isinstance(client, redis_cache._NullRedis)
    assert redis_cache.get_cached_availability(1, 2, 2025, 7) is None


def _event_ids(result, day="2025-07-15"):
    return [e["id"] for e in result["days"][day]["events"]]


def test_profile_lifecycle_invalidates_cached_month(monkeypatch, db, artist, venue):
    fake = fakeredis.FakeStrictRedis()
    monkeypatch.setattr(redis_cache, "get_redis_client", lambda: fake)
    _, a = artist
    venue_user, v = venue
    br = booking_service.create_booking_request(db, a.id, v.id, event_date=date(2025, 7, 15))

    cached = availability.get_availability(db, a.id, v.id, 7, 2025)
    assert _event_ids(cached) == [f"booking-artist-{br.id}", f"booking-venue-{br.id}"]

    profile_service.soft_delete_profile(db, venue_user, v.id)
    after_delete = availability.get_availability(db, a.id, v.id, 7, 2025)
    assert after_delete == availability.get_availability(db, a.id, v.id, 7, 2025, use_cache=False)
    assert _event_ids(after_delete) == [f"booking-artist-{br.id}"]

    profile_service.restore_profile(db, venue_user, v.id)
    after_restore = availability.get_availability(db, a.id, v.id, 7, 2025)
    assert _event_ids(after_restore) == [f"booking-artist-{br.id}", f"booking-venue-{br.id}"]


def test_purge_invalidates_counterpart_months(monkeypatch, db, artist, venue):
    fake = fakeredis.FakeStrictRedis()
    monkeypatch.setattr(redis_cache, "get_redis_client", lambda: fake)
    _, a = artist
    venue_user, v = venue
    booking_service.create_booking_request(db, a.id, v.id, event_date=date(2025, 7, 15))

    profile_service.soft_delete_profile(db, venue_user, v.id)
    artist_only = availability.get_availability(db, a.id, None, 7, 2025)
    assert len(_event_ids(artist_only)) == 1

    later = datetime.utcnow() + profile_service.grace_period() + timedelta(hours=1)
    assert profile_service.purge_deleted_profiles(db, now=later) == 1
    assert _event_ids(availability.get_availability(db, a.id, None, 7, 2025)) == []
