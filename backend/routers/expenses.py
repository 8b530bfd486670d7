"""Expenses router: create, read, update, delete expenses."""

from typing import Annotated, Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from errors import InvalidScope, NotAuthorized
from utils.balances import EXPENSE_TYPES, GROUP
from utils.display import get_user_names, get_group_names
from utils.expenses import record_expense, update_expense as apply_expense_update, delete_expense as remove_expense
from utils.validation import get_expense_or_404, get_group_or_404, is_group_member, verify_group_membership


router = APIRouter(tags=["expenses"])


def build_expense_details(db: Session, expenses: list[models.Expense]) -> list[schemas.ExpenseDetail]:
    """Attach participants, payer and group names to a list of expenses with batched lookups."""
    if not expenses:
        return []

    expense_ids = [e.id for e in expenses]

    # 1. Fetch all participant rows for these expenses
    all_participants = db.query(models.ExpenseParticipant).filter(
        models.ExpenseParticipant.expense_id.in_(expense_ids)
    ).order_by(models.ExpenseParticipant.id).all()

    participants_by_expense = {}
    user_ids = {e.payer_id for e in expenses}
    for p in all_participants:
        participants_by_expense.setdefault(p.expense_id, []).append(p)
        user_ids.add(p.user_id)

    # 2. Batch fetch names
    user_names = get_user_names(db, user_ids)
    group_names = get_group_names(db, {e.group_id for e in expenses if e.group_id})

    # 3. Assemble the result
    result = []
    for expense in expenses:
        participants = [
            schemas.ExpenseParticipantDetail(
                id=p.id,
                expense_id=p.expense_id,
                user_id=p.user_id,
                share=p.share,
                username=user_names.get(p.user_id, "Unknown User")
            )
            for p in participants_by_expense.get(expense.id, [])
        ]
        result.append(schemas.ExpenseDetail(
            id=expense.id,
            amount=expense.amount,
            description=expense.description,
            expense_type=expense.expense_type,
            payer_id=expense.payer_id,
            group_id=expense.group_id,
            created_at=expense.created_at,
            updated_at=expense.updated_at,
            payer_name=user_names.get(expense.payer_id, "Unknown User"),
            group_name=group_names.get(expense.group_id) if expense.group_id else None,
            participants=participants
        ))
    return result


@router.post("/expenses", response_model=schemas.ExpenseWithParticipants, status_code=status.HTTP_201_CREATED)
def create_expense(
    expense: schemas.ExpenseCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    # The payer is always the authenticated user
    db_expense, participants = record_expense(db, current_user, expense)
    return schemas.ExpenseWithParticipants(
        id=db_expense.id,
        amount=db_expense.amount,
        description=db_expense.description,
        expense_type=db_expense.expense_type,
        payer_id=db_expense.payer_id,
        group_id=db_expense.group_id,
        created_at=db_expense.created_at,
        updated_at=db_expense.updated_at,
        participants=[schemas.ExpenseParticipant.model_validate(p) for p in participants]
    )


@router.get("/expenses", response_model=list[schemas.ExpenseDetail])
def read_expenses(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db),
    expense_type: Optional[str] = None,
    group_id: Optional[int] = None
):
    if expense_type is not None and expense_type not in EXPENSE_TYPES:
        raise InvalidScope()

    # Return expenses where user is involved (payer or participant)
    subquery = db.query(models.ExpenseParticipant.expense_id).filter(
        models.ExpenseParticipant.user_id == current_user.id
    ).subquery()

    query = db.query(models.Expense).filter(
        (models.Expense.payer_id == current_user.id) |
        (models.Expense.id.in_(subquery))
    )
    if expense_type:
        query = query.filter(models.Expense.expense_type == expense_type)
    if group_id is not None:
        query = query.filter(models.Expense.group_id == group_id)

    expenses = query.order_by(models.Expense.created_at.desc(), models.Expense.id.desc()).all()
    return build_expense_details(db, expenses)


@router.get("/expenses/{expense_id}", response_model=schemas.ExpenseDetail)
def get_expense(
    expense_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    expense = get_expense_or_404(db, expense_id)

    # Visible to the payer, the participants, and members of the expense's group
    is_participant = db.query(models.ExpenseParticipant).filter(
        models.ExpenseParticipant.expense_id == expense_id,
        models.ExpenseParticipant.user_id == current_user.id
    ).first() is not None

    has_access = (
        expense.payer_id == current_user.id or
        is_participant or
        (expense.group_id is not None and is_group_member(db, expense.group_id, current_user.id))
    )
    if not has_access:
        raise NotAuthorized("You don't have access to this expense")

    return build_expense_details(db, [expense])[0]


@router.put("/expenses/{expense_id}", response_model=schemas.Expense)
def update_expense(
    expense_id: int,
    expense_update: schemas.ExpenseUpdate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    expense = get_expense_or_404(db, expense_id)
    return apply_expense_update(db, expense, current_user, expense_update)


@router.delete("/expenses/{expense_id}")
def delete_expense(
    expense_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    expense = get_expense_or_404(db, expense_id)
    remove_expense(db, expense, current_user)
    return {"message": "Expense deleted successfully"}


@router.get("/groups/{group_id}/expenses", response_model=list[schemas.ExpenseDetail])
def get_group_expenses(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)

    expenses = db.query(models.Expense).filter(
        models.Expense.group_id == group_id,
        models.Expense.expense_type == GROUP
    ).order_by(models.Expense.created_at.desc(), models.Expense.id.desc()).all()

    return build_expense_details(db, expenses)
