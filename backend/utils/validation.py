"""Validation utilities for users, group membership, access control, and expense participants."""

from sqlalchemy.orm import Session

import models
import schemas
from errors import NotAuthorized, NotFound, GroupNotFound, InvalidInput


def get_user_by_email(db: Session, email: str):
    """Get a user by their email address."""
    return db.query(models.User).filter(models.User.email == email).first()


def get_group_or_404(db: Session, group_id: int):
    """Get a group by ID or raise GroupNotFound."""
    group = db.query(models.Group).filter(models.Group.id == group_id).first()
    if not group:
        raise GroupNotFound()
    return group


def get_expense_or_404(db: Session, expense_id: int):
    expense = db.query(models.Expense).filter(models.Expense.id == expense_id).first()
    if not expense:
        raise NotFound("Expense not found")
    return expense


def is_group_member(db: Session, group_id: int, user_id: int) -> bool:
    return db.query(models.GroupMember).filter(
        models.GroupMember.group_id == group_id,
        models.GroupMember.user_id == user_id
    ).first() is not None


def verify_group_membership(db: Session, group_id: int, user_id: int):
    """Verify that a user is a member of a group, raise NotAuthorized if not."""
    member = db.query(models.GroupMember).filter(
        models.GroupMember.group_id == group_id,
        models.GroupMember.user_id == user_id
    ).first()
    if not member:
        raise NotAuthorized("You are not a member of this group")
    return member


def verify_group_ownership(db: Session, group_id: int, user_id: int):
    """Verify that a user created a group, raise NotAuthorized if not."""
    group = get_group_or_404(db, group_id)
    if group.created_by_id != user_id:
        raise NotAuthorized("Only the group creator can perform this action")
    return group


def verify_expense_payer(expense: models.Expense, user_id: int, action: str = "modify"):
    """Only the payer of an expense may change or delete it."""
    if expense.payer_id != user_id:
        raise NotAuthorized(f"Only the payer can {action} this expense")


def validate_expense_participants(db: Session, participants: list[schemas.ParticipantShare]) -> None:
    """Validate that every participant is a registered user with a non-negative share."""
    for participant in participants:
        if participant.share < 0:
            raise InvalidInput(f"Share for user {participant.user_id} must not be negative")

    user_ids = {p.user_id for p in participants}
    found = {
        row.id for row in db.query(models.User.id).filter(models.User.id.in_(user_ids)).all()
    }
    missing = sorted(user_ids - found)
    if missing:
        raise NotFound(f"User with ID {missing[0]} not found in participants")
