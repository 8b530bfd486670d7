"""Recording, updating and deleting expenses together with their participant shares."""

import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

import models
import schemas
from errors import (
    Internal, InvalidAmount, InvalidInput, InvalidScope, MissingGroup,
    MissingParticipants, NotAuthorized, ShareMismatch
)
from utils.balances import EXPENSE_TYPES, GROUP
from utils.currency import amounts_match, format_currency
from utils.validation import (
    get_group_or_404, is_group_member, validate_expense_participants,
    verify_expense_payer
)

logger = logging.getLogger(__name__)


def normalize_description(description: Optional[str]) -> Optional[str]:
    """Trim a description; blank descriptions are stored as NULL."""
    if description is None:
        return None
    description = description.strip()
    return description or None


def validate_amount(amount: Optional[float]) -> None:
    if amount is None or amount <= 0:
        raise InvalidAmount()


def validate_share_total(amount: float, participants: list[schemas.ParticipantShare]) -> None:
    """Participant shares must add up to the expense amount, within EPSILON."""
    total_shares = sum(p.share for p in participants)
    if not amounts_match(total_shares, amount):
        raise ShareMismatch(
            f"Total participant shares must equal the expense amount. "
            f"Amount: {format_currency(amount)}, Sum: {format_currency(total_shares)}"
        )


def _rollback(db: Session) -> None:
    # The first failure decides the response, a failed rollback is only logged
    try:
        db.rollback()
    except SQLAlchemyError:
        logger.exception("Rollback after failed expense write also failed")


def record_expense(
    db: Session,
    payer: models.User,
    expense_in: schemas.ExpenseCreate
) -> tuple[models.Expense, list[models.ExpenseParticipant]]:
    """
    Validate and store a new expense paid by `payer` with its participant shares.

    The expense row and the participant rows are written in one transaction:
    either all of them exist afterwards or none do.

    Raises:
        InvalidAmount, MissingParticipants, InvalidScope, MissingGroup,
        GroupNotFound, NotAuthorized, ShareMismatch, InvalidInput, NotFound,
        Internal
    """
    validate_amount(expense_in.amount)

    if not expense_in.participants:
        raise MissingParticipants()

    if expense_in.expense_type not in EXPENSE_TYPES:
        raise InvalidScope()

    group_id = None
    if expense_in.expense_type == GROUP:
        if expense_in.group_id is None:
            raise MissingGroup()
        get_group_or_404(db, expense_in.group_id)
        if not is_group_member(db, expense_in.group_id, payer.id):
            logger.warning(
                "User %s tried to add an expense to group %s without being a member",
                payer.id, expense_in.group_id
            )
            raise NotAuthorized("You must be a group member to add group expenses")
        group_id = expense_in.group_id

    validate_share_total(expense_in.amount, expense_in.participants)
    validate_expense_participants(db, expense_in.participants)

    db_expense = models.Expense(
        amount=expense_in.amount,
        description=normalize_description(expense_in.description),
        expense_type=expense_in.expense_type,
        payer_id=payer.id,
        group_id=group_id
    )

    try:
        db.add(db_expense)
        db.flush()  # assigns db_expense.id

        db_participants = [
            models.ExpenseParticipant(
                expense_id=db_expense.id,
                user_id=p.user_id,
                share=p.share
            )
            for p in expense_in.participants
        ]
        db.add_all(db_participants)
        db.commit()
    except SQLAlchemyError:
        logger.exception("Failed to record expense paid by user %s", payer.id)
        _rollback(db)
        raise Internal("Failed to record expense")

    db.refresh(db_expense)
    for p in db_participants:
        db.refresh(p)

    logger.info(
        "Recorded %s expense %s of %.2f paid by user %s with %d participants",
        db_expense.expense_type, db_expense.id, db_expense.amount, payer.id, len(db_participants)
    )
    return db_expense, db_participants


def update_expense(
    db: Session,
    expense: models.Expense,
    user: models.User,
    expense_update: schemas.ExpenseUpdate
) -> models.Expense:
    """
    Change the amount and/or description of an expense. Payer only.

    Shares are checked against the amount only when a new participant list is
    submitted with the update; a bare amount change keeps the old shares.
    """
    verify_expense_payer(expense, user.id, "update")

    fields = expense_update.model_dump(exclude_unset=True)
    if not fields:
        raise InvalidInput("No data provided for update")

    new_amount = expense.amount
    if "amount" in fields:
        validate_amount(expense_update.amount)
        new_amount = expense_update.amount

    participants = expense_update.participants
    if participants is not None:
        if not participants:
            raise MissingParticipants()
        validate_share_total(new_amount, participants)
        validate_expense_participants(db, participants)

    expense.amount = new_amount
    if "description" in fields:
        expense.description = normalize_description(expense_update.description)
    expense.updated_at = datetime.utcnow()

    try:
        if participants is not None:
            db.query(models.ExpenseParticipant).filter(
                models.ExpenseParticipant.expense_id == expense.id
            ).delete()
            db.add_all([
                models.ExpenseParticipant(expense_id=expense.id, user_id=p.user_id, share=p.share)
                for p in participants
            ])
        db.commit()
    except SQLAlchemyError:
        logger.exception("Failed to update expense %s", expense.id)
        _rollback(db)
        raise Internal("Failed to update expense")

    db.refresh(expense)
    return expense


def delete_expense(db: Session, expense: models.Expense, user: models.User) -> None:
    """Delete an expense and its participant rows. Payer only."""
    verify_expense_payer(expense, user.id, "delete")

    expense_id = expense.id
    db.query(models.ExpenseParticipant).filter(
        models.ExpenseParticipant.expense_id == expense_id
    ).delete()
    db.delete(expense)
    db.commit()
    logger.info("Deleted expense %s", expense_id)


def delete_group_expenses(db: Session, group_id: int) -> int:
    """
    Delete every expense of a group and its participant rows.

    Does not commit; the caller commits together with the rest of the group
    deletion. Returns the number of expenses removed.
    """
    expense_ids = [
        row.id for row in db.query(models.Expense.id).filter(models.Expense.group_id == group_id).all()
    ]
    if expense_ids:
        db.query(models.ExpenseParticipant).filter(
            models.ExpenseParticipant.expense_id.in_(expense_ids)
        ).delete(synchronize_session=False)
        db.query(models.Expense).filter(
            models.Expense.id.in_(expense_ids)
        ).delete(synchronize_session=False)
    return len(expense_ids)
