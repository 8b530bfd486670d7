from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, Float, DateTime, UniqueConstraint
from database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True)
    username = Column(String)
    hashed_password = Column(String)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)

class Friendship(Base):
    """One directed row per direction: (A -> B) always has a matching (B -> A)."""
    __tablename__ = "friendships"
    __table_args__ = (UniqueConstraint("user_id", "friend_user_id"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, index=True)
    friend_user_id = Column(Integer, index=True)
    created_at = Column(DateTime, default=datetime.utcnow)

class Group(Base):
    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String)
    description = Column(String, nullable=True)
    created_by_id = Column(Integer)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)

class GroupMember(Base):
    __tablename__ = "group_members"
    __table_args__ = (UniqueConstraint("group_id", "user_id"),)

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, index=True)
    user_id = Column(Integer, index=True)
    joined_at = Column(DateTime, default=datetime.utcnow)

class Expense(Base):
    __tablename__ = "expenses"

    id = Column(Integer, primary_key=True, index=True)
    amount = Column(Float)
    description = Column(String, nullable=True)
    expense_type = Column(String)  # 'personal' or 'group'
    payer_id = Column(Integer, index=True)
    group_id = Column(Integer, nullable=True, index=True)  # NULL for personal expenses
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=True)

class ExpenseParticipant(Base):
    __tablename__ = "expense_participants"

    id = Column(Integer, primary_key=True, index=True)
    expense_id = Column(Integer, index=True)
    user_id = Column(Integer, index=True)
    share = Column(Float)  # Portion of the expense amount owed by this user
