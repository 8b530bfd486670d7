"""Error taxonomy shared by the recorder, balance engine and routers.

Every error is an HTTPException so routers and helpers can raise them the same
way they raise plain HTTP errors; the handler in main.py adds the `kind` field
to the response body so clients can tell failures apart without parsing text.
"""

from fastapi import HTTPException, status


class LedgerError(HTTPException):
    kind = "Internal"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal server error"

    def __init__(self, message: str = None, headers: dict = None):
        super().__init__(
            status_code=self.status_code,
            detail=message or self.message,
            headers=headers
        )


class InvalidInput(LedgerError):
    kind = "InvalidInput"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid input"


class NotAuthorized(LedgerError):
    kind = "NotAuthorized"
    status_code = status.HTTP_403_FORBIDDEN
    message = "You are not allowed to perform this action"


class NotAuthenticated(NotAuthorized):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Could not validate credentials"

    def __init__(self, message: str = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class NotFound(LedgerError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class Conflict(LedgerError):
    kind = "Conflict"
    status_code = status.HTTP_409_CONFLICT
    message = "Conflict"


class Internal(LedgerError):
    pass


# Expense recorder failures

class InvalidAmount(InvalidInput):
    kind = "InvalidAmount"
    message = "Amount must be greater than 0"


class MissingParticipants(InvalidInput):
    kind = "MissingParticipants"
    message = "At least one participant is required"


class InvalidScope(InvalidInput):
    kind = "InvalidScope"
    message = "expense_type must be 'group' or 'personal'"


class MissingGroup(InvalidInput):
    kind = "MissingGroup"
    message = "group_id is required for group expenses"


class ShareMismatch(InvalidInput):
    kind = "ShareMismatch"
    message = "Total participant shares must equal the expense amount"


class GroupNotFound(NotFound):
    kind = "GroupNotFound"
    message = "Group not found"
