# -*- coding: utf-8 -*-
"""
Capacity ledger for classes.

``AcademyClass.enrolled_count`` is moved only from here, always through a
single conditional UPDATE so that concurrent requests can never push it past
``capacity`` or below zero. Each call commits on its own; callers must not
have pending changes in the session when they call in.
"""

import logging
from collections import namedtuple

from sqlalchemy import func

from academy_api.exceptions import validate_id
from academy_api.models.academy_class import AcademyClass
from academy_api.models.inscription import Inscription, SEAT_HOLDING_STATUSES

logger = logging.getLogger(__name__)

SeatDiscrepancy = namedtuple(
    "SeatDiscrepancy", ["class_id", "recorded", "actual", "capacity", "applied"], defaults=[False]
)


def try_reserve_seat(db, class_id):
    """
    Atomically take one seat. Returns False when the class is full, inactive
    or does not exist; a full class is an expected outcome, not an error.
    """
    class_id = validate_id(class_id, "class id")

    updated = (
        db.query(AcademyClass)
        .filter(
            AcademyClass.id == class_id,
            AcademyClass.is_active == True,  # noqa: E712
            AcademyClass.enrolled_count < AcademyClass.capacity,
        )
        .update(
            {AcademyClass.enrolled_count: AcademyClass.enrolled_count + 1},
            synchronize_session=False,
        )
    )
    db.commit()

    if not updated:
        logger.info("Seat reservation refused for class %s: full, inactive or not found.", class_id)
        return False

    logger.info("Seat reserved in class %s.", class_id)
    return True


def release_seat(db, class_id):
    """
    Atomically give one seat back. A no-op returning False when the counter is
    already zero, so a double release can never go negative.
    """
    class_id = validate_id(class_id, "class id")

    updated = (
        db.query(AcademyClass)
        .filter(AcademyClass.id == class_id, AcademyClass.enrolled_count > 0)
        .update(
            {AcademyClass.enrolled_count: AcademyClass.enrolled_count - 1},
            synchronize_session=False,
        )
    )
    db.commit()

    if not updated:
        logger.warning("Seat release ignored for class %s: not found or enrolled_count already 0.", class_id)
        return False

    logger.info("Seat released in class %s.", class_id)
    return True


def count_held_seats(db, class_id=None):
    """Seats held per class according to the persisted inscriptions."""
    query = (
        db.query(Inscription.class_id, func.count(Inscription.id))
        .filter(Inscription.status.in_([s.value for s in SEAT_HOLDING_STATUSES]))
        .group_by(Inscription.class_id)
    )
    if class_id is not None:
        query = query.filter(Inscription.class_id == class_id)
    return dict(query.all())


def find_seat_discrepancies(db, class_id=None):
    if class_id is not None:
        class_id = validate_id(class_id, "class id")

    held = count_held_seats(db, class_id)

    query = db.query(AcademyClass)
    if class_id is not None:
        query = query.filter(AcademyClass.id == class_id)

    discrepancies = []
    for academy_class in query.order_by(AcademyClass.id).all():
        actual = held.get(academy_class.id, 0)
        if academy_class.enrolled_count != actual:
            discrepancies.append(
                SeatDiscrepancy(
                    class_id=academy_class.id,
                    recorded=academy_class.enrolled_count,
                    actual=actual,
                    capacity=academy_class.capacity,
                )
            )
    return discrepancies


def reconcile_enrolled_counts(db, class_id=None, apply=False):
    """
    Compare every class counter with its seat-holding inscriptions and, when
    ``apply`` is set, overwrite the counter. Seats orphaned by a crash between
    reservation and inscription persistence are recovered this way.

    The overwrite is a compare-and-set on the observed value: a class whose
    counter moved since it was read is skipped and reported unapplied. A
    creation still in flight (seat taken, inscription not yet committed) looks
    like an orphan, so run this when writes are quiet.
    """
    results = []
    for item in find_seat_discrepancies(db, class_id):
        if not apply:
            results.append(item)
            continue

        if item.actual > item.capacity:
            logger.error(
                "Class %s has %s seat-holding inscriptions for capacity %s; not touching it.",
                item.class_id, item.actual, item.capacity,
            )
            results.append(item)
            continue

        updated = (
            db.query(AcademyClass)
            .filter(AcademyClass.id == item.class_id, AcademyClass.enrolled_count == item.recorded)
            .update({AcademyClass.enrolled_count: item.actual}, synchronize_session=False)
        )
        db.commit()

        if updated:
            logger.warning(
                "Class %s enrolled_count corrected from %s to %s.", item.class_id, item.recorded, item.actual
            )
            results.append(item._replace(applied=True))
        else:
            logger.info("Class %s changed while reconciling; skipped.", item.class_id)
            results.append(item)

    return results
