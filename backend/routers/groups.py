"""Groups router: create, read, update, delete groups."""

import logging
from datetime import datetime
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from utils.display import get_user_display_name
from utils.expenses import delete_group_expenses
from utils.validation import get_group_or_404, verify_group_membership, verify_group_ownership


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/groups", tags=["groups"])


@router.post("", response_model=schemas.Group, status_code=status.HTTP_201_CREATED)
def create_group(
    group: schemas.GroupCreate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    db_group = models.Group(
        name=group.name,
        description=group.description,
        created_by_id=current_user.id
    )
    db.add(db_group)
    db.flush()

    # Add creator as first member, in the same transaction as the group
    db_member = models.GroupMember(group_id=db_group.id, user_id=current_user.id)
    db.add(db_member)
    db.commit()
    db.refresh(db_group)

    return db_group


@router.get("", response_model=list[schemas.UserGroup])
def read_groups(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    # Get groups where user is a member, most recently joined first
    rows = db.query(models.Group, models.GroupMember).join(
        models.GroupMember,
        models.Group.id == models.GroupMember.group_id
    ).filter(
        models.GroupMember.user_id == current_user.id
    ).order_by(models.GroupMember.joined_at.desc(), models.Group.id.desc()).all()

    return [
        schemas.UserGroup(
            id=group.id,
            name=group.name,
            description=group.description,
            created_by_id=group.created_by_id,
            created_at=group.created_at,
            updated_at=group.updated_at,
            joined_at=membership.joined_at,
            is_creator=group.created_by_id == current_user.id
        )
        for group, membership in rows
    ]


@router.get("/{group_id}", response_model=schemas.GroupWithMembers)
def get_group(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    group = get_group_or_404(db, group_id)
    verify_group_membership(db, group_id, current_user.id)

    # Get members with user details
    members_query = db.query(models.GroupMember, models.User).join(
        models.User, models.GroupMember.user_id == models.User.id
    ).filter(
        models.GroupMember.group_id == group_id
    ).order_by(models.GroupMember.joined_at, models.GroupMember.id).all()

    members = [
        schemas.GroupMember(
            id=gm.id,
            user_id=user.id,
            username=get_user_display_name(user),
            email=user.email,
            joined_at=gm.joined_at
        )
        for gm, user in members_query
    ]

    creator = db.query(models.User).filter(models.User.id == group.created_by_id).first()

    return schemas.GroupWithMembers(
        id=group.id,
        name=group.name,
        description=group.description,
        created_by_id=group.created_by_id,
        created_at=group.created_at,
        updated_at=group.updated_at,
        creator=schemas.Contact(
            id=creator.id,
            username=get_user_display_name(creator),
            email=creator.email
        ) if creator else None,
        members=members
    )


@router.put("/{group_id}", response_model=schemas.Group)
def update_group(
    group_id: int,
    group_update: schemas.GroupUpdate,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    group = verify_group_ownership(db, group_id, current_user.id)
    group.name = group_update.name
    group.description = group_update.description
    group.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(group)
    return group


@router.delete("/{group_id}")
def delete_group(
    group_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    verify_group_ownership(db, group_id, current_user.id)

    # Participants and expenses first, then memberships, then the group itself
    expense_count = delete_group_expenses(db, group_id)
    db.query(models.GroupMember).filter(models.GroupMember.group_id == group_id).delete()
    db.query(models.Group).filter(models.Group.id == group_id).delete()
    db.commit()

    logger.info("Deleted group %s with %d expenses", group_id, expense_count)
    return {"message": "Group deleted successfully"}
