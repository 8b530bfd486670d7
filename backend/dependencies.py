"""Shared dependencies for authentication and authorization."""

from typing import Annotated, Optional
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

import schemas
import auth
from database import get_db
from errors import NotAuthenticated
from utils.validation import get_user_by_email


# auto_error is off so a missing token surfaces as our NotAuthorized kind
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)


async def get_current_user(
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    db: Session = Depends(get_db)
):
    """Get the current authenticated user from the JWT token."""
    if not token:
        raise NotAuthenticated("Not authenticated")

    email = auth.decode_access_token(token)
    if email is None:
        raise NotAuthenticated()
    token_data = schemas.TokenData(email=email)

    user = get_user_by_email(db, email=token_data.email)
    if user is None or not user.is_active:
        raise NotAuthenticated()
    return user
