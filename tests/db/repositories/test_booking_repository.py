"""Tests for BookingRepository compare-and-set updates."""

from unittest.mock import MagicMock

from sqlalchemy.dialects import postgresql

from homster.db.repositories.booking import BookingRepository
from homster.models.booking import BookingStatus

BOOKING_ID = "0f8fad5b-d9cb-469f-a165-70867728950e"
VENDOR_ID = "4b1f0c3e-8d2a-4a57-9a55-54f0b2d7f0a1"


def _compiled(session):
    return session.execute.call_args[0][0].compile(dialect=postgresql.dialect())


def _repo_without_match():
    session = MagicMock()
    session.execute.return_value.fetchone.return_value = None
    return BookingRepository(session), session


class TestClaimForVendor:
    def test_only_matches_unclaimed_open_booking(self):
        repo, session = _repo_without_match()

        assert repo.claim_for_vendor(BOOKING_ID, VENDOR_ID) is None

        compiled = _compiled(session)
        sql = str(compiled)
        assert "bookings.vendor_id IS NULL" in sql
        assert "bookings.status IN" in sql
        assert compiled.params["status"] == "pending"
        assert compiled.params["accepted_at"] is not None


class TestClaimWave:
    def test_only_moves_expected_wave_of_open_booking(self):
        repo, session = _repo_without_match()

        assert repo.claim_wave(BOOKING_ID, 1) is None

        compiled = _compiled(session)
        sql = str(compiled)
        assert "bookings.current_wave =" in sql
        assert "bookings.vendor_id IS NULL" in sql
        assert "bookings.status IN" in sql
        assert compiled.params["current_wave"] == 2
        assert 1 in compiled.params.values()


class TestUpdateFields:
    def test_enums_are_unwrapped_and_timestamp_set(self):
        repo, session = _repo_without_match()

        repo.update_fields(BOOKING_ID, status=BookingStatus.CANCELLED, cancelled_by="user")

        params = _compiled(session).params
        assert params["status"] == "cancelled"
        assert params["cancelled_by"] == "user"
        assert params["updated_at"] is not None

    def test_transition_guards_current_status(self):
        repo, session = _repo_without_match()

        result = repo.transition(
            BOOKING_ID, [BookingStatus.CONFIRMED], BookingStatus.IN_PROGRESS
        )

        assert result is None
        assert "bookings.status IN" in str(_compiled(session))


class TestVisibility:
    def test_vendor_sees_own_and_unclaimed_open(self):
        repo, session = _repo_without_match()

        assert repo.get_by_id_for_vendor(BOOKING_ID, VENDOR_ID) is None

        sql = str(_compiled(session))
        assert "bookings.vendor_id = " in sql
        assert " OR " in sql

    def test_user_list_hides_searching_by_default(self):
        session = MagicMock()
        session.execute.return_value.fetchall.return_value = []
        repo = BookingRepository(session)

        assert repo.list_for_user("d5314b80-4aac-4bf2-940c-0a0ceda5bff4") == []

        compiled = _compiled(session)
        assert "bookings.status !=" in str(compiled)
        assert "searching" in compiled.params.values()
