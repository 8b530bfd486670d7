"""Friends router: manage friend relationships and the unified contact list."""

from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import get_current_user
from errors import Conflict, InvalidInput, NotFound
from utils.contacts import load_contacts
from utils.display import get_user_display_name
from utils.validation import get_user_by_email


router = APIRouter(prefix="/friends", tags=["friends"])


@router.post("", response_model=schemas.Friend, status_code=status.HTTP_201_CREATED)
def add_friend(
    friend_request: schemas.FriendRequest,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    friend_user = get_user_by_email(db, friend_request.email)
    if not friend_user:
        raise NotFound("User not found with this email")

    if friend_user.id == current_user.id:
        raise InvalidInput("You cannot add yourself as a friend")

    # Check if already friends
    existing = db.query(models.Friendship).filter(
        models.Friendship.user_id == current_user.id,
        models.Friendship.friend_user_id == friend_user.id
    ).first()
    if existing:
        raise Conflict("You are already friends with this user")

    # Both directions, so "friends of X" is a single filter
    forward = models.Friendship(user_id=current_user.id, friend_user_id=friend_user.id)
    backward = models.Friendship(user_id=friend_user.id, friend_user_id=current_user.id)
    db.add_all([forward, backward])
    db.commit()
    db.refresh(forward)

    return schemas.Friend(
        id=friend_user.id,
        username=get_user_display_name(friend_user),
        email=friend_user.email,
        friends_since=forward.created_at
    )


@router.get("", response_model=list[schemas.Friend])
def read_friends(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    rows = db.query(models.Friendship, models.User).join(
        models.User, models.Friendship.friend_user_id == models.User.id
    ).filter(
        models.Friendship.user_id == current_user.id
    ).order_by(models.Friendship.created_at).all()

    return [
        schemas.Friend(
            id=user.id,
            username=get_user_display_name(user),
            email=user.email,
            friends_since=friendship.created_at
        )
        for friendship, user in rows
    ]


@router.get("/contacts", response_model=list[schemas.Contact])
def read_contacts(
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    """Friends plus everyone sharing a group with the current user, sorted by name."""
    return load_contacts(db, current_user.id)


@router.delete("/{friend_user_id}")
def remove_friend(
    friend_user_id: int,
    current_user: Annotated[models.User, Depends(get_current_user)],
    db: Session = Depends(get_db)
):
    # Delete both directions of the friendship
    deleted = db.query(models.Friendship).filter(
        ((models.Friendship.user_id == current_user.id) & (models.Friendship.friend_user_id == friend_user_id)) |
        ((models.Friendship.user_id == friend_user_id) & (models.Friendship.friend_user_id == current_user.id))
    ).delete(synchronize_session=False)

    if not deleted:
        raise NotFound("Friend not found")

    db.commit()
    return {"message": "Friend removed successfully"}
