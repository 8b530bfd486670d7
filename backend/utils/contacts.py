"""Unified contact list: a user's friends plus everyone they share a group with."""

from sqlalchemy.orm import Session

import models
import schemas
from utils.display import get_user_display_name


def merge_contacts(
    user_id: int,
    friends: list[schemas.Contact],
    group_members: list[schemas.Contact]
) -> list[schemas.Contact]:
    """
    Union of friends and group co-members, without the requesting user.

    The first occurrence of each user id wins. The result is sorted by
    username, ties broken by user id, so the order is always the same.
    """
    contacts = {}
    for contact in [*friends, *group_members]:
        if contact.id == user_id or contact.id in contacts:
            continue
        contacts[contact.id] = contact

    return sorted(contacts.values(), key=lambda c: (c.username, c.id))


def _to_contact(user: models.User) -> schemas.Contact:
    return schemas.Contact(id=user.id, username=get_user_display_name(user), email=user.email)


def load_contacts(db: Session, user_id: int) -> list[schemas.Contact]:
    # Friends (one directed row per friend, so a single filter is enough)
    friend_users = db.query(models.User).join(
        models.Friendship, models.Friendship.friend_user_id == models.User.id
    ).filter(models.Friendship.user_id == user_id).all()

    # Everyone in any group I belong to
    group_ids = [
        row.group_id for row in db.query(models.GroupMember.group_id).filter(
            models.GroupMember.user_id == user_id
        ).all()
    ]
    member_users = []
    if group_ids:
        member_users = db.query(models.User).join(
            models.GroupMember, models.GroupMember.user_id == models.User.id
        ).filter(
            models.GroupMember.group_id.in_(group_ids),
            models.GroupMember.user_id != user_id
        ).all()

    return merge_contacts(
        user_id,
        [_to_contact(u) for u in friend_users],
        [_to_contact(u) for u in member_users]
    )
