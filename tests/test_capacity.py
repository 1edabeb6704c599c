"""
Tests for the capacity ledger: atomic seat reservation/release and the
reconciliation sweep.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy.orm import sessionmaker

from academy_api.database import build_engine, init_db
from academy_api.exceptions import ValidationError
from academy_api.models import Academy, AcademyClass, InscriptionStatus
from academy_api.services.capacity import (
    find_seat_discrepancies,
    reconcile_enrolled_counts,
    release_seat,
    try_reserve_seat,
)


class TestTryReserveSeat:
    def test_takes_a_free_seat(self, db, make_class):
        academy_class = make_class(capacity=2)

        assert try_reserve_seat(db, academy_class.id) is True

        db.refresh(academy_class)
        assert academy_class.enrolled_count == 1
        assert academy_class.available_seats == 1

    def test_full_class_is_refused(self, db, make_class):
        academy_class = make_class(capacity=1, enrolled_count=1)

        assert try_reserve_seat(db, academy_class.id) is False

        db.refresh(academy_class)
        assert academy_class.enrolled_count == 1

    def test_zero_capacity_class_is_always_full(self, db, make_class):
        academy_class = make_class(capacity=0)

        assert try_reserve_seat(db, academy_class.id) is False

    def test_inactive_class_is_refused(self, db, make_class):
        academy_class = make_class(capacity=5, is_active=False)

        assert try_reserve_seat(db, academy_class.id) is False

        db.refresh(academy_class)
        assert academy_class.enrolled_count == 0

    def test_unknown_class_is_refused(self, db):
        assert try_reserve_seat(db, 9999) is False

    @pytest.mark.parametrize("bad_id", ["abc", None, 0, -3])
    def test_malformed_id_raises(self, db, bad_id):
        with pytest.raises(ValidationError) as exc_info:
            try_reserve_seat(db, bad_id)
        assert exc_info.value.code == "invalid_id"


class TestReleaseSeat:
    def test_gives_a_seat_back(self, db, make_class):
        academy_class = make_class(capacity=3, enrolled_count=2)

        assert release_seat(db, academy_class.id) is True

        db.refresh(academy_class)
        assert academy_class.enrolled_count == 1

    def test_never_goes_below_zero(self, db, make_class):
        academy_class = make_class(capacity=3, enrolled_count=0)

        assert release_seat(db, academy_class.id) is False

        db.refresh(academy_class)
        assert academy_class.enrolled_count == 0

    def test_works_on_inactive_class(self, db, make_class):
        academy_class = make_class(capacity=3, enrolled_count=1, is_active=False)

        assert release_seat(db, academy_class.id) is True


class TestConcurrentReservations:
    """Many sessions racing for the last seats of one class."""

    def test_exactly_the_remaining_seats_are_granted(self, tmp_path):
        engine = build_engine(f"sqlite:///{tmp_path / 'seats.db'}")
        init_db(bind=engine)
        Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

        setup = Session()
        academy = Academy(name="Concurrency Dojo")
        setup.add(academy)
        setup.flush()
        academy_class = AcademyClass(
            academy_id=academy.id, name="Open Mat", capacity=10, enrolled_count=3, currency="USD"
        )
        setup.add(academy_class)
        setup.commit()
        class_id = academy_class.id
        setup.close()

        remaining = 7
        attempts = remaining + 5
        barrier = threading.Barrier(attempts)

        def attempt(_):
            session = Session()
            try:
                barrier.wait()
                return try_reserve_seat(session, class_id)
            finally:
                session.close()

        with ThreadPoolExecutor(max_workers=attempts) as pool:
            results = list(pool.map(attempt, range(attempts)))

        assert results.count(True) == remaining
        assert results.count(False) == 5

        check = Session()
        assert check.get(AcademyClass, class_id).enrolled_count == 10
        check.close()
        engine.dispose()


class TestReconciliation:
    def test_reports_orphaned_seats(self, db, make_class, student, make_inscription):
        academy_class = make_class(capacity=5, enrolled_count=3)
        make_inscription(student, academy_class)

        discrepancies = find_seat_discrepancies(db)

        assert len(discrepancies) == 1
        item = discrepancies[0]
        assert (item.class_id, item.recorded, item.actual, item.applied) == (academy_class.id, 3, 1, False)

    def test_cancelled_inscriptions_do_not_hold_seats(self, db, make_class, make_user, make_inscription):
        academy_class = make_class(capacity=5, enrolled_count=1)
        make_inscription(make_user(), academy_class, status=InscriptionStatus.NO_SHOW)
        make_inscription(make_user(), academy_class, status=InscriptionStatus.CANCELLED_BY_ADMIN)

        assert find_seat_discrepancies(db) == []

    def test_report_only_by_default(self, db, make_class):
        academy_class = make_class(capacity=5, enrolled_count=2)

        results = reconcile_enrolled_counts(db)

        assert [r.applied for r in results] == [False]
        db.refresh(academy_class)
        assert academy_class.enrolled_count == 2

    def test_apply_corrects_counter(self, db, make_class, student, make_inscription):
        academy_class = make_class(capacity=5, enrolled_count=4)
        make_inscription(student, academy_class)

        results = reconcile_enrolled_counts(db, apply=True)

        assert results[0].applied is True
        db.refresh(academy_class)
        assert academy_class.enrolled_count == 1

    def test_can_target_one_class(self, db, make_class):
        first = make_class(capacity=5, enrolled_count=2)
        second = make_class(capacity=5, enrolled_count=2)

        reconcile_enrolled_counts(db, class_id=second.id, apply=True)

        db.refresh(first)
        db.refresh(second)
        assert first.enrolled_count == 2
        assert second.enrolled_count == 0

    def test_overbooked_class_is_left_alone(self, db, make_class, make_user, make_inscription):
        academy_class = make_class(capacity=1, enrolled_count=1)
        make_inscription(make_user(), academy_class)
        make_inscription(make_user(), academy_class)

        results = reconcile_enrolled_counts(db, apply=True)

        assert results[0].actual == 2
        assert results[0].applied is False
        db.refresh(academy_class)
        assert academy_class.enrolled_count == 1
