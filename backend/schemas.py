from datetime import datetime
from pydantic import BaseModel, EmailStr, field_validator
from typing import Optional

class UserBase(BaseModel):
    email: EmailStr
    username: str

class UserCreate(UserBase):
    password: str

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Username is required')
        return v

class User(UserBase):
    id: int
    is_active: bool

    class Config:
        from_attributes = True

class Token(BaseModel):
    access_token: str
    token_type: str

class TokenData(BaseModel):
    email: Optional[str] = None

# Friends and contacts
class FriendRequest(BaseModel):
    email: str

class Friend(BaseModel):
    id: int
    username: str
    email: str
    friends_since: Optional[datetime] = None

class Contact(BaseModel):
    id: int
    username: str
    email: str

# Groups
class GroupBase(BaseModel):
    name: str
    description: Optional[str] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Group name is required')
        return v

class GroupCreate(GroupBase):
    pass

class GroupUpdate(GroupBase):
    pass

class Group(GroupBase):
    id: int
    created_by_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class UserGroup(Group):
    joined_at: Optional[datetime] = None
    is_creator: bool = False

class GroupMemberAdd(BaseModel):
    email: str

class GroupMember(BaseModel):
    id: int
    user_id: int
    username: str
    email: str
    joined_at: Optional[datetime] = None

class GroupWithMembers(Group):
    creator: Optional[Contact] = None
    members: list[GroupMember]

# Expenses
class ParticipantShare(BaseModel):
    user_id: int
    share: float

class ExpenseCreate(BaseModel):
    amount: Optional[float] = None
    description: Optional[str] = None
    expense_type: Optional[str] = None  # 'personal' or 'group'
    group_id: Optional[int] = None
    participants: Optional[list[ParticipantShare]] = None

class ExpenseUpdate(BaseModel):
    amount: Optional[float] = None
    description: Optional[str] = None
    participants: Optional[list[ParticipantShare]] = None  # Re-validated against amount when given

class ExpenseParticipant(BaseModel):
    id: int
    expense_id: int
    user_id: int
    share: float

    class Config:
        from_attributes = True

class ExpenseParticipantDetail(ExpenseParticipant):
    username: str

class Expense(BaseModel):
    id: int
    amount: float
    description: Optional[str] = None
    expense_type: str
    payer_id: int
    group_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ExpenseWithParticipants(Expense):
    participants: list[ExpenseParticipant]

class ExpenseDetail(Expense):
    payer_name: str
    group_name: Optional[str] = None
    participants: list[ExpenseParticipantDetail]

# Balances
class BalanceRow(BaseModel):
    """Net balance against one counterparty. Positive means they owe you, negative means you owe them."""
    counterparty_id: int
    counterparty_name: str
    net_balance: float
    they_owe_me: float
    i_owe_them: float

class GroupBalances(BaseModel):
    group_id: int
    group_name: str
    balances: list[BalanceRow]

class BalanceResult(BaseModel):
    personal: list[BalanceRow] = []
    group: list[GroupBalances] = []
