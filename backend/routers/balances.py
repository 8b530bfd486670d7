"""Balances router: net balances between the current user and everyone they share expenses with."""

from typing import Annotated, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from utils.balances import GROUP, get_user_balances
from utils.validation import get_group_or_404, verify_group_membership


router = APIRouter(tags=["balances"])


@router.get("/balances", response_model=schemas.BalanceResult)
def get_balances(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db),
    balance_type: Optional[str] = None,
    group_id: Optional[int] = None
):
    """
    Net balances of the current user, split into personal and per-group results.

    Positive amounts mean the other user owes you, negative amounts mean you owe them.
    Query params: balance_type=personal|group, group_id to narrow the group results.
    """
    return get_user_balances(db, current_user.id, balance_type=balance_type, group_id=group_id)


@router.get("/groups/{group_id}/balances", response_model=list[schemas.BalanceRow])
def get_group_balances(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)

    result = get_user_balances(db, current_user.id, balance_type=GROUP, group_id=group_id)
    return result.group[0].balances if result.group else []
