"""Unit tests for room conflict detection and recurrence expansion."""

import threading
from datetime import date, datetime, timedelta

import pytest
from fastapi import HTTPException
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from database.base import Base
from modules.meeting import locks, models, schemas, services
from modules.meeting.booking import (
    assert_room_available,
    expand,
    is_booked,
    iter_occurrences,
    parse_pattern,
)
from modules.meeting.locks import keyed_lock
from modules.rooms.models import Room
from modules.security.deps import Principal
from modules.security.model import User

START = datetime(2030, 1, 7, 9, 0)
END = datetime(2030, 1, 7, 10, 0)


def _add_meeting(db, room_id, organizer_id, start, end, status=models.MeetingStatus.SCHEDULED.value):
    m = models.Meeting(
        title="Existing",
        room_id=room_id,
        organizer_id=organizer_id,
        start_time=start,
        end_time=end,
        status=status,
    )
    db.add(m)
    db.commit()
    return m


class TestIsBooked:
    """Tests for the overlap predicate."""

    def test_overlapping_window_is_booked(self, db, room, organizer):
        _add_meeting(db, room.id, organizer.id, START, END)
        assert is_booked(db, room.id, None, START + timedelta(minutes=30), END + timedelta(minutes=30))

    def test_window_inside_existing_is_booked(self, db, room, organizer):
        _add_meeting(db, room.id, organizer.id, START, END)
        assert is_booked(db, room.id, None, START + timedelta(minutes=10), END - timedelta(minutes=10))

    def test_back_to_back_is_not_booked(self, db, room, organizer):
        _add_meeting(db, room.id, organizer.id, START, END)
        assert not is_booked(db, room.id, None, END, END + timedelta(hours=1))
        assert not is_booked(db, room.id, None, START - timedelta(hours=1), START)

    def test_cancelled_meeting_does_not_block(self, db, room, organizer):
        _add_meeting(db, room.id, organizer.id, START, END, status=models.MeetingStatus.CANCELLED.value)
        assert not is_booked(db, room.id, None, START, END)

    def test_excluded_meeting_is_ignored(self, db, room, organizer):
        m = _add_meeting(db, room.id, organizer.id, START, END)
        assert not is_booked(db, room.id, m.id, START, END)

    def test_other_room_does_not_conflict(self, db, room, organizer):
        _add_meeting(db, room.id, organizer.id, START, END)
        assert not is_booked(db, room.id + 1000, None, START, END)

    def test_no_room_never_conflicts(self, db, room, organizer):
        _add_meeting(db, None, organizer.id, START, END)
        assert not is_booked(db, None, None, START, END)

    def test_assert_room_available_raises_conflict(self, db, room, organizer):
        _add_meeting(db, room.id, organizer.id, START, END)
        with pytest.raises(HTTPException) as exc:
            assert_room_available(db, room.id, START, END)
        assert exc.value.status_code == 409


class TestRecurrence:
    """Tests for pattern parsing and occurrence generation."""

    def test_daily_until_inclusive_end_date(self):
        occ = list(iter_occurrences(
            datetime(2024, 1, 1, 9), datetime(2024, 1, 1, 10), "Daily", date(2024, 1, 3)
        ))
        assert [s for s, _ in occ] == [
            datetime(2024, 1, 1, 9),
            datetime(2024, 1, 2, 9),
            datetime(2024, 1, 3, 9),
        ]
        assert all(e - s == timedelta(hours=1) for s, e in occ)

    def test_weekly_steps_seven_days(self):
        occ = list(iter_occurrences(
            datetime(2024, 1, 1, 9), datetime(2024, 1, 1, 10), "Weekly", date(2024, 1, 31)
        ))
        assert [s.day for s, _ in occ] == [1, 8, 15, 22, 29]

    def test_monthly_is_thirty_days_not_calendar_month(self):
        occ = list(iter_occurrences(
            datetime(2024, 1, 1, 9), datetime(2024, 1, 1, 10), "Monthly", date(2024, 3, 1)
        ))
        assert [s for s, _ in occ] == [
            datetime(2024, 1, 1, 9),
            datetime(2024, 1, 31, 9),
            datetime(2024, 3, 1, 9),
        ]

    def test_datetime_bound_compares_exactly(self):
        occ = list(iter_occurrences(
            datetime(2024, 1, 1, 9), datetime(2024, 1, 1, 10), "Daily", datetime(2024, 1, 3, 8)
        ))
        assert len(occ) == 2

    def test_pattern_is_case_insensitive(self):
        assert parse_pattern("weekly") == models.RecurrencePattern.WEEKLY

    def test_unknown_pattern_is_bad_input(self):
        with pytest.raises(HTTPException) as exc:
            parse_pattern("Yearly")
        assert exc.value.status_code == 400

    def test_expand_skips_conflicting_occurrence(self, db, room, organizer):
        _add_meeting(db, room.id, organizer.id, datetime(2024, 1, 2, 9, 30), datetime(2024, 1, 2, 11))
        occ = list(expand(
            db, room.id, datetime(2024, 1, 1, 9), datetime(2024, 1, 1, 10), "Daily", date(2024, 1, 3)
        ))
        assert [s.day for s, _ in occ] == [1, 3]


class TestConcurrentBooking:
    """Overlapping creates racing for one room commit exactly one meeting."""

    THREADS = 8

    def test_only_one_overlapping_create_wins(self, tmp_path):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'race.db'}",
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        Base.metadata.create_all(bind=engine)
        Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

        with Session() as setup:
            owner = User(first_name="Race", last_name="User", email="race@example.com", password_hash="x")
            race_room = Room(name="Arena", capacity=10)
            setup.add_all([owner, race_room])
            setup.commit()
            principal = Principal(owner.id, frozenset({"Employee"}))
            room_id = race_room.id

        payload = schemas.MeetingCreate(title="Contested", room_id=room_id, start_time=START, end_time=END)
        barrier = threading.Barrier(self.THREADS)
        outcomes = []

        def book():
            with Session() as session:
                barrier.wait()
                try:
                    services.create_meeting(session, principal, payload)
                    outcomes.append(201)
                except HTTPException as exc:
                    outcomes.append(exc.status_code)

        threads = [threading.Thread(target=book) for _ in range(self.THREADS)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        with Session() as check:
            assert check.query(models.Meeting).filter_by(room_id=room_id).count() == 1
        assert sorted(outcomes) == [201] + [409] * (self.THREADS - 1)
        engine.dispose()


class TestKeyedLock:
    def test_lock_is_dropped_once_released(self):
        key = ("room", "eviction-check")
        with keyed_lock(key):
            assert key in locks._locks
        assert key not in locks._locks

    def test_same_key_shares_one_lock_while_held(self):
        key = ("meeting", "shared-check")
        with keyed_lock(key):
            assert locks._lock_for(key).locked()
