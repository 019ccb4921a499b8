"""Data access layer for recurring rules"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from sqlalchemy import func, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from recurring_cron.infrastructure.database.models import (
    MoneyAccount,
    RecurringTransactionRule,
    Transaction,
    User,
)
from recurring_cron.domain.exceptions import RuleConflictError, StoreUnavailableError
from recurring_cron.domain.models import NewTransaction, RecurringRule, RuleUpdate


def to_domain(row: RecurringTransactionRule) -> RecurringRule:
    """Detach an ORM row into the processor's dataclass"""
    return RecurringRule(
        id=row.id,
        user_id=row.user_id,
        money_account_id=row.money_account_id,
        sub_category_id=row.sub_category_id,
        amount=Decimal(row.amount),
        type=row.type,
        description=row.description,
        notes=row.notes,
        frequency_type=row.frequency_type,
        frequency_interval=row.frequency_interval,
        day_of_month=row.day_of_month,
        day_of_week=row.day_of_week,
        start_date=row.start_date,
        end_date=row.end_date,
        next_due_date=row.next_due_date,
        occurrences_generated=row.occurrences_generated,
        is_first_occurrence_generated=row.is_first_occurrence_generated,
        last_processed_at=row.last_processed_at,
        is_installment=row.is_installment,
        total_occurrences=row.total_occurrences,
        is_active=row.is_active,
    )


class RecurringRuleRepository:
    """RuleStore backed by SQLAlchemy; every write runs in its own transaction"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def check_connection(self) -> None:
        """Run SELECT 1; raise StoreUnavailableError on failure"""
        try:
            with self.session_factory() as db:
                db.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Database connection failed: {e}") from e

    def find_due_rules(self, now: datetime) -> List[RecurringRule]:
        """Active rules of non-deleted users with next_due_date <= now"""
        try:
            with self.session_factory() as db:
                rows = (
                    db.query(RecurringTransactionRule)
                    .join(User, RecurringTransactionRule.user_id == User.id)
                    .filter(
                        RecurringTransactionRule.is_active.is_(True),
                        RecurringTransactionRule.next_due_date <= now,
                        User.is_deleted.is_(False),
                    )
                    .order_by(RecurringTransactionRule.next_due_date)
                    .all()
                )
                return [to_domain(row) for row in rows]
        except SQLAlchemyError as e:
            raise StoreUnavailableError(f"Due rules query failed: {e}") from e

    def apply_rule_processing(
        self,
        rule_id: str,
        transaction: Optional[NewTransaction],
        rule_update: RuleUpdate,
    ) -> Optional[str]:
        """
        Insert the generated transaction and update the rule in one commit.

        The rule update only matches while the rule is active and still has
        the due date the processor read, so a rule advanced by a concurrent
        sweep raises RuleConflictError and the inserted row is rolled back.
        """
        transaction_id = None
        with self.session_factory.begin() as db:
            if transaction is not None:
                transaction_id = self._insert_transaction(db, transaction)

            result = db.execute(
                update(RecurringTransactionRule)
                .where(
                    RecurringTransactionRule.id == rule_id,
                    RecurringTransactionRule.is_active.is_(True),
                    RecurringTransactionRule.next_due_date == rule_update.expected_next_due_date,
                )
                .values(**self._rule_values(rule_update))
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise RuleConflictError(
                    f"Rule {rule_id} was modified concurrently or is no longer active"
                )

        return transaction_id

    def count_summary(self) -> Dict[str, int]:
        """Row counts used by the detailed health check"""
        with self.session_factory() as db:
            return {
                "user_count": db.scalar(select(func.count()).select_from(User)),
                "account_count": db.scalar(select(func.count()).select_from(MoneyAccount)),
                "recurring_rules_count": db.scalar(select(func.count()).select_from(RecurringTransactionRule)),
                "active_rules_count": db.scalar(
                    select(func.count())
                    .select_from(RecurringTransactionRule)
                    .where(RecurringTransactionRule.is_active.is_(True))
                ),
            }

    @staticmethod
    def _insert_transaction(db: Session, transaction: NewTransaction) -> str:
        db_transaction = Transaction(
            user_id=transaction.user_id,
            amount=transaction.amount,
            description=transaction.description,
            date=transaction.date,
            money_account_id=transaction.money_account_id,
            sub_category_id=transaction.sub_category_id,
            notes=transaction.notes,
            is_recurring_instance=transaction.is_recurring_instance,
            recurring_rule_id=transaction.recurring_rule_id,
        )
        db.add(db_transaction)
        db.flush()  # Get ID without committing
        return db_transaction.id

    @staticmethod
    def _rule_values(rule_update: RuleUpdate) -> Dict[str, Any]:
        values: Dict[str, Any] = {"next_due_date": rule_update.next_due_date}
        if rule_update.occurrences_generated is not None:
            values["occurrences_generated"] = rule_update.occurrences_generated
        if rule_update.last_processed_at is not None:
            values["last_processed_at"] = rule_update.last_processed_at
        if rule_update.deactivate:
            values["is_active"] = False
        return values
