"""SQLAlchemy ORM models for recurring rules and the ledger rows they generate"""

import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Integer, Numeric, ForeignKey, Text
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """Application user (owned by the main app, read-only here)"""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(Text, nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    money_accounts = relationship("MoneyAccount", back_populates="user")
    recurring_rules = relationship("RecurringTransactionRule", back_populates="user")


class MoneyAccount(Base):
    """Account a rule books its transactions into"""

    __tablename__ = "money_accounts"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    user = relationship("User", back_populates="money_accounts")


class SubCategory(Base):
    """Income/expense classification"""

    __tablename__ = "sub_categories"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(Text, nullable=False)


class RecurringTransactionRule(Base):
    """Standing instruction to generate transactions on a schedule"""

    __tablename__ = "recurring_transaction_rules"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    money_account_id = Column(String(36), ForeignKey("money_accounts.id", ondelete="SET NULL"), nullable=True)
    sub_category_id = Column(String(36), ForeignKey("sub_categories.id", ondelete="SET NULL"), nullable=True)

    description = Column(Text, nullable=False, default="")
    notes = Column(Text, nullable=True)
    amount = Column(Numeric(14, 2), nullable=False)
    type = Column(String(16), nullable=False, default="EXPENSE")

    # Schedule
    frequency_type = Column(String(16), nullable=False)
    frequency_interval = Column(Integer, nullable=False, default=1)
    day_of_month = Column(Integer, nullable=True)
    day_of_week = Column(Integer, nullable=True)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)

    # Progress
    next_due_date = Column(DateTime, nullable=False, index=True)
    occurrences_generated = Column(Integer, nullable=False, default=0)
    is_first_occurrence_generated = Column(Boolean, nullable=False, default=False)
    last_processed_at = Column(DateTime, nullable=True)

    # Installments
    is_installment = Column(Boolean, nullable=False, default=False)
    total_occurrences = Column(Integer, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="recurring_rules")
    money_account = relationship("MoneyAccount")
    sub_category = relationship("SubCategory")
    generated_transactions = relationship("Transaction", back_populates="recurring_rule")


class Transaction(Base):
    """Ledger entry; scheduler-generated rows carry is_recurring_instance"""

    __tablename__ = "transactions"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    money_account_id = Column(String(36), ForeignKey("money_accounts.id", ondelete="SET NULL"), nullable=True)
    sub_category_id = Column(String(36), ForeignKey("sub_categories.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Numeric(14, 2), nullable=False)
    description = Column(Text, nullable=False)
    date = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)
    is_recurring_instance = Column(Boolean, nullable=False, default=False)
    recurring_rule_id = Column(
        String(36),
        ForeignKey("recurring_transaction_rules.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    recurring_rule = relationship("RecurringTransactionRule", back_populates="generated_transactions")
