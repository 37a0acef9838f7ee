from datetime import datetime, timezone
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship as orm_relationship

from ..config import Base
from ..constants import DuesStatus


def utcnow():
    return datetime.now(timezone.utc)


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    memberships = orm_relationship("Membership", back_populates="organization", cascade="all, delete-orphan")
    members = orm_relationship("Member", back_populates="organization", cascade="all, delete-orphan")
    dues = orm_relationship("Dues", back_populates="organization", cascade="all, delete-orphan")
    transactions = orm_relationship("Transaction", back_populates="organization", cascade="all, delete-orphan")
    dues_config = orm_relationship(
        "DuesConfig",
        back_populates="organization",
        uselist=False,
        cascade="all, delete-orphan",
    )


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    memberships = orm_relationship("Membership", back_populates="user", cascade="all, delete-orphan")


class Membership(Base):
    __tablename__ = "memberships"
    __table_args__ = (UniqueConstraint("user_id", "organization_id", name="uq_memberships_user_org"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String, default="VIEWER", nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    user = orm_relationship("User", back_populates="memberships")
    organization = orm_relationship("Organization", back_populates="memberships")


class Member(Base):
    __tablename__ = "members"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    full_name = Column(String, nullable=False, index=True)
    email = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    joined_at = Column(DateTime, default=utcnow, nullable=False)

    organization = orm_relationship("Organization", back_populates="members")
    dues = orm_relationship("Dues", back_populates="member", cascade="all, delete-orphan")
    payments = orm_relationship("Payment", back_populates="member", cascade="all, delete-orphan")


class Dues(Base):
    __tablename__ = "dues"
    __table_args__ = (
        UniqueConstraint("member_id", "month", "year", name="uq_dues_member_month_year"),
        CheckConstraint("month >= 1 AND month <= 12", name="ck_dues_month_range"),
        CheckConstraint("year >= 1970 AND year <= 9999", name="ck_dues_year_range"),
        CheckConstraint("amount > 0", name="ck_dues_amount_positive"),
        CheckConstraint("status IN ('PENDING', 'PARTIAL', 'PAID')", name="ck_dues_status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    month = Column(Integer, nullable=False)
    year = Column(Integer, nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    status = Column(String, default=DuesStatus.PENDING, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    organization = orm_relationship("Organization", back_populates="dues")
    member = orm_relationship("Member", back_populates="dues")
    payments = orm_relationship(
        "Payment",
        back_populates="dues",
        cascade="all, delete-orphan",
        order_by="Payment.id",
    )


class Payment(Base):
    __tablename__ = "payments"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_payments_amount_positive"),)

    id = Column(Integer, primary_key=True, index=True)
    dues_id = Column(Integer, ForeignKey("dues.id", ondelete="CASCADE"), nullable=False, index=True)
    member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Integer, nullable=False)
    method = Column(String, nullable=True)
    note = Column(Text, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    paid_at = Column(DateTime, default=utcnow, nullable=False, index=True)

    dues = orm_relationship("Dues", back_populates="payments")
    member = orm_relationship("Member", back_populates="payments")
    created_by = orm_relationship("User")


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (CheckConstraint("amount > 0", name="ck_transactions_amount_positive"),)

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String, nullable=False)
    amount = Column(Integer, nullable=False)
    category = Column(String, nullable=True)
    occurred_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    note = Column(Text, nullable=True)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    organization = orm_relationship("Organization", back_populates="transactions")
    created_by = orm_relationship("User")

    @property
    def created_by_name(self):
        return self.created_by.name if self.created_by else None


class DuesConfig(Base):
    __tablename__ = "dues_configs"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    amount = Column(Integer, nullable=False)
    currency = Column(String, default="IDR", nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    organization = orm_relationship("Organization", back_populates="dues_config")
