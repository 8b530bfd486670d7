"""
Display utilities for user and group names
"""
from sqlalchemy.orm import Session
import models


def get_user_display_name(user: models.User) -> str:
    """
    Get the display name for a user.
    Uses username if set, otherwise the email address.
    """
    if not user:
        return "Unknown User"
    return user.username or user.email


def get_user_names(db: Session, user_ids) -> dict[int, str]:
    """
    Batch fetch display names for a set of user IDs.

    Args:
        db: Database session
        user_ids: Iterable of user IDs

    Returns:
        Dictionary mapping user_id to display name. Unknown IDs are omitted.
    """
    user_ids = set(user_ids)
    if not user_ids:
        return {}
    users = db.query(models.User).filter(models.User.id.in_(user_ids)).all()
    return {u.id: get_user_display_name(u) for u in users}


def get_group_names(db: Session, group_ids) -> dict[int, str]:
    """Batch fetch group names for a set of group IDs."""
    group_ids = set(group_ids)
    if not group_ids:
        return {}
    groups = db.query(models.Group).filter(models.Group.id.in_(group_ids)).all()
    return {g.id: g.name for g in groups}
