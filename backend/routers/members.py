"""Members router: add and remove group members."""

from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from errors import Conflict, InvalidInput, NotAuthorized, NotFound
from utils.display import get_user_display_name
from utils.validation import (
    get_group_or_404, get_user_by_email, verify_group_membership, verify_group_ownership
)


router = APIRouter(prefix="/groups/{group_id}", tags=["members"])


@router.post("/members", response_model=schemas.GroupMember, status_code=status.HTTP_201_CREATED)
def add_group_member(
    group_id: int,
    member_add: schemas.GroupMemberAdd,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    # Only the creator may add members, same as update and delete
    verify_group_ownership(db, group_id, current_user.id)

    # Find user by email
    user = get_user_by_email(db, member_add.email)
    if not user:
        raise NotFound("User not found")

    # Check if already a member
    existing = db.query(models.GroupMember).filter(
        models.GroupMember.group_id == group_id,
        models.GroupMember.user_id == user.id
    ).first()
    if existing:
        raise Conflict("User is already a member of this group")

    new_member = models.GroupMember(group_id=group_id, user_id=user.id)
    db.add(new_member)
    db.commit()
    db.refresh(new_member)

    return schemas.GroupMember(
        id=new_member.id,
        user_id=user.id,
        username=get_user_display_name(user),
        email=user.email,
        joined_at=new_member.joined_at
    )


@router.delete("/members/{user_id}")
def remove_group_member(
    group_id: int,
    user_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    group = get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)

    # Creator can remove anyone except themselves
    # Other members can only remove themselves
    if current_user.id != group.created_by_id and current_user.id != user_id:
        raise NotAuthorized("You can only remove yourself from the group")

    if user_id == group.created_by_id:
        raise InvalidInput("Cannot remove group creator. Delete the group instead.")

    member = db.query(models.GroupMember).filter(
        models.GroupMember.group_id == group_id,
        models.GroupMember.user_id == user_id
    ).first()

    if not member:
        raise NotFound("User is not a member of this group")

    db.delete(member)
    db.commit()

    return {"message": "Member removed successfully"}
