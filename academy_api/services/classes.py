# -*- coding: utf-8 -*-
"""
CRUD for classes. The seat counter itself belongs to ``services.capacity``.
"""

import logging

from academy_api import config
from academy_api.exceptions import ConflictError, NotFoundError, ValidationError, validate_id
from academy_api.models.academy import Academy
from academy_api.models.academy_class import AcademyClass
from academy_api.services.users import get_user

logger = logging.getLogger(__name__)


def get_class(db, class_id):
    class_id = validate_id(class_id, "class id")
    academy_class = db.query(AcademyClass).filter(AcademyClass.id == class_id).first()
    if academy_class is None:
        raise NotFoundError(f"Class {class_id} not found.", code="class_not_found")
    return academy_class


def _check_schedule(start_time, end_time):
    if start_time and end_time and end_time <= start_time:
        raise ValidationError("End time must be after start time.", code="invalid_schedule")


def create_class(db, data):
    academy = db.query(Academy).filter(Academy.id == data.academy_id).first()
    if academy is None:
        raise NotFoundError(f"Academy {data.academy_id} not found.", code="academy_not_found")
    if data.teacher_id:
        get_user(db, data.teacher_id, "teacher")
    _check_schedule(data.start_time, data.end_time)

    academy_class = AcademyClass(
        academy_id=data.academy_id,
        name=data.name,
        description=data.description,
        teacher_id=data.teacher_id,
        start_time=data.start_time,
        end_time=data.end_time,
        price=data.price,
        currency=(data.currency or config.DEFAULT_CURRENCY).upper(),
        capacity=data.capacity,
        enrolled_count=0,
        is_active=True if data.is_active is None else data.is_active,
    )
    db.add(academy_class)
    db.commit()
    db.refresh(academy_class)
    logger.info("Class %s created in academy %s.", academy_class.id, academy_class.academy_id)
    return academy_class


def list_classes(db, academy_id=None, is_active=None, skip=0, limit=100):
    query = db.query(AcademyClass)
    if academy_id is not None:
        query = query.filter(AcademyClass.academy_id == academy_id)
    if is_active is not None:
        query = query.filter(AcademyClass.is_active == is_active)
    return query.order_by(AcademyClass.start_time, AcademyClass.id).offset(skip).limit(limit).all()


def update_class(db, class_id, data):
    academy_class = get_class(db, class_id)
    update_data = data.dict(exclude_unset=True)

    if update_data.get("teacher_id"):
        get_user(db, update_data["teacher_id"], "teacher")
    _check_schedule(
        update_data.get("start_time", academy_class.start_time),
        update_data.get("end_time", academy_class.end_time),
    )

    new_capacity = update_data.pop("capacity", None)
    if new_capacity is not None:
        # Conditional so a concurrent reservation cannot slip under the new limit
        updated = (
            db.query(AcademyClass)
            .filter(AcademyClass.id == academy_class.id, AcademyClass.enrolled_count <= new_capacity)
            .update({AcademyClass.capacity: new_capacity}, synchronize_session=False)
        )
        if not updated:
            db.rollback()
            raise ConflictError(
                f"Capacity cannot be lower than the {academy_class.enrolled_count} seats already taken.",
                code="capacity_below_enrolled",
            )

    if update_data.get("currency"):
        update_data["currency"] = update_data["currency"].upper()

    for key, value in update_data.items():
        setattr(academy_class, key, value)

    db.commit()
    db.refresh(academy_class)
    return academy_class


def deactivate_class(db, class_id):
    """Stops new reservations and inscriptions; existing inscriptions are kept."""
    academy_class = get_class(db, class_id)
    academy_class.is_active = False
    db.commit()
    db.refresh(academy_class)
    logger.info("Class %s deactivated.", academy_class.id)
    return academy_class
