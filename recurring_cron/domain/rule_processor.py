"""Single-rule lifecycle step: generate, advance, retire"""

import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Optional

from recurring_cron.domain.due_dates import next_due_date_for
from recurring_cron.domain.models import (
    END_DATE_REACHED,
    INSTALLMENTS_COMPLETED,
    NewTransaction,
    RecurringRule,
    RuleOutcome,
    RuleType,
    RuleUpdate,
)
from recurring_cron.domain.store import RuleStore
from recurring_cron.utils.date_utils import start_of_day, utc_now

logger = logging.getLogger(__name__)


def is_seed_occurrence_pending(rule: RecurringRule) -> bool:
    """
    True on the sweep's first encounter with a rule whose first transaction
    was already written when the rule was created.
    """
    return (
        rule.occurrences_generated == 1
        and rule.is_first_occurrence_generated
        and start_of_day(rule.next_due_date) == start_of_day(rule.start_date)
    )


def get_deactivation_reason(rule: RecurringRule, now: datetime) -> Optional[str]:
    """Why the rule's lifetime is over, or None while it should keep running"""
    if rule.end_date is not None and now > rule.end_date:
        return END_DATE_REACHED

    if (
        rule.is_installment
        and rule.total_occurrences
        and rule.occurrences_generated >= rule.total_occurrences
    ):
        return INSTALLMENTS_COMPLETED

    return None


def should_deactivate(rule: RecurringRule, now: datetime) -> bool:
    return get_deactivation_reason(rule, now) is not None


def signed_amount(rule: RecurringRule) -> Decimal:
    """Ledger amount: the type flag decides the sign, the amount the magnitude"""
    magnitude = abs(Decimal(rule.amount))
    return -magnitude if rule.type == RuleType.EXPENSE.value else magnitude


def build_transaction(rule: RecurringRule, now: datetime) -> NewTransaction:
    description = (rule.description or "").strip() or f"Recurring: {rule.id}"
    return NewTransaction(
        user_id=rule.user_id,
        amount=signed_amount(rule),
        description=description,
        date=now,
        money_account_id=rule.money_account_id,
        sub_category_id=rule.sub_category_id,
        notes=f"Auto-generated from recurring rule {rule.id}",
        recurring_rule_id=rule.id,
    )


class RuleProcessor:
    """Advances one due rule by one occurrence through a RuleStore"""

    def __init__(self, store: RuleStore):
        self.store = store

    def process_rule(self, rule: RecurringRule, now: Optional[datetime] = None) -> RuleOutcome:
        """
        Process one due rule.

        Flow:
        1. Seed occurrence already materialized -> only advance next_due_date,
           retiring the rule if the seed was its last occurrence
        2. Build the ledger transaction
        3. Advance next_due_date from the scheduled date, not from ``now``
        4. Bump occurrences_generated, stamp last_processed_at
        5. Deactivate when the updated rule has reached its end
        6. Persist 2-5 as one atomic store write

        Errors propagate to the caller; nothing is persisted when one is raised.
        """
        now = now or utc_now()

        logger.debug(
            f"Processing rule {rule.id}",
            extra={"rule_id": rule.id, "next_due_date": rule.next_due_date.isoformat()},
        )

        if is_seed_occurrence_pending(rule):
            next_due_date = next_due_date_for(rule)
            # The seed counts as an occurrence, so a one-installment plan ends here
            reason = get_deactivation_reason(replace(rule, next_due_date=next_due_date), now)
            self.store.apply_rule_processing(
                rule.id,
                None,
                RuleUpdate(
                    expected_next_due_date=rule.next_due_date,
                    next_due_date=next_due_date,
                    deactivate=reason is not None,
                ),
            )
            logger.info(
                f"Skipped first occurrence for rule {rule.id} (already generated at creation)",
                extra={"rule_id": rule.id, "reason": reason},
            )
            return RuleOutcome(
                rule_id=rule.id,
                next_due_date=next_due_date,
                skipped=True,
                deactivation_reason=reason,
            )

        transaction = build_transaction(rule, now)
        next_due_date = next_due_date_for(rule)
        updated_rule = replace(
            rule,
            next_due_date=next_due_date,
            occurrences_generated=rule.occurrences_generated + 1,
            last_processed_at=now,
        )
        reason = get_deactivation_reason(updated_rule, now)

        transaction_id = self.store.apply_rule_processing(
            rule.id,
            transaction,
            RuleUpdate(
                expected_next_due_date=rule.next_due_date,
                next_due_date=next_due_date,
                occurrences_generated=updated_rule.occurrences_generated,
                last_processed_at=now,
                deactivate=reason is not None,
            ),
        )

        logger.debug(f"Created transaction {transaction_id} for rule {rule.id}", extra={"rule_id": rule.id})
        if reason:
            logger.info(
                f"Deactivated recurring rule {rule.id}",
                extra={"rule_id": rule.id, "reason": reason},
            )

        return RuleOutcome(
            rule_id=rule.id,
            next_due_date=next_due_date,
            transaction_id=transaction_id,
            deactivation_reason=reason,
        )
