# -*- coding: utf-8 -*-
"""
Membership credits: the capability MEMBERSHIP inscriptions consume.

Nothing here commits; the changes ride on the caller's transaction so that a
failed inscription also gives the credit back.
"""

import logging
from datetime import datetime

from academy_api.exceptions import NotFoundError, ValidationError, validate_id
from academy_api.models.membership import UserMembership

logger = logging.getLogger(__name__)


def get_membership(db, membership_id):
    membership_id = validate_id(membership_id, "membership id")
    membership = db.query(UserMembership).filter(UserMembership.id == membership_id).first()
    if membership is None:
        raise NotFoundError(f"Membership {membership_id} not found.", code="membership_not_found")
    return membership


def consume_class_credit(db, student_id, membership_id, academy_class):
    membership = get_membership(db, membership_id)

    if membership.user_id != student_id:
        raise ValidationError(
            f"Membership {membership.id} does not belong to student {student_id}.", code="invalid_membership"
        )
    if membership.academy_id != academy_class.academy_id:
        raise ValidationError(
            f"Membership {membership.id} is not valid for this academy.", code="invalid_membership"
        )
    if not membership.is_active:
        raise ValidationError(f"Membership {membership.id} is not active.", code="invalid_membership")
    if membership.valid_until and membership.valid_until < datetime.utcnow():
        raise ValidationError(f"Membership {membership.id} has expired.", code="membership_expired")

    if membership.credits_remaining is None:
        return membership

    updated = (
        db.query(UserMembership)
        .filter(UserMembership.id == membership.id, UserMembership.credits_remaining > 0)
        .update(
            {UserMembership.credits_remaining: UserMembership.credits_remaining - 1},
            synchronize_session=False,
        )
    )
    if not updated:
        raise ValidationError(
            f"Membership {membership.id} has no class credits left.", code="membership_exhausted"
        )
    logger.info("Class credit consumed from membership %s.", membership.id)
    return membership


def return_class_credit(db, membership_id):
    updated = (
        db.query(UserMembership)
        .filter(UserMembership.id == membership_id, UserMembership.credits_remaining.isnot(None))
        .update(
            {UserMembership.credits_remaining: UserMembership.credits_remaining + 1},
            synchronize_session=False,
        )
    )
    if updated:
        logger.info("Class credit returned to membership %s.", membership_id)
    return bool(updated)


def create_membership(db, data):
    membership = UserMembership(
        user_id=data.user_id,
        academy_id=data.academy_id,
        name=data.name,
        credits_remaining=data.credits_remaining,
        valid_until=data.valid_until,
        is_active=True,
    )
    db.add(membership)
    db.commit()
    db.refresh(membership)
    return membership


def list_memberships(db, user_id=None, academy_id=None):
    query = db.query(UserMembership)
    if user_id is not None:
        query = query.filter(UserMembership.user_id == user_id)
    if academy_id is not None:
        query = query.filter(UserMembership.academy_id == academy_id)
    return query.order_by(UserMembership.id).all()
