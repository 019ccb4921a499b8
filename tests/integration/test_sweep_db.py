"""End-to-end sweeps against an in-memory SQLite database"""

import pytest
from datetime import datetime
from decimal import Decimal
from sqlalchemy.orm import Session
from recurring_cron.infrastructure.database.models import RecurringTransactionRule, Transaction
from recurring_cron.services.sweep import SweepRunner

pytestmark = pytest.mark.integration

NOW = datetime(2024, 3, 1, 9, 0)


@pytest.fixture
def runner(repository, tracker):
    return SweepRunner(repository, tracker, clock=lambda: NOW)


def test_sweep_generates_ledger_rows(runner, add_rule_row, db: Session):
    salary = add_rule_row(type="INCOME", amount=Decimal("2500.00"), description="Salary")
    rent = add_rule_row(description="", frequency_type="MONTHLY", day_of_month=31,
                        next_due_date=datetime(2024, 1, 31, 9, 0))

    result = runner.run_sweep()

    assert result.processed == 2
    assert result.created_transactions == 2
    assert result.errors == 0

    db.expire_all()
    rows = {row.recurring_rule_id: row for row in db.query(Transaction).all()}
    assert rows[salary.id].amount == Decimal("2500.00")
    assert rows[rent.id].amount == Decimal("-50.00")
    assert rows[rent.id].description == f"Recurring: {rent.id}"
    assert all(row.date == NOW for row in rows.values())

    assert db.get(RecurringTransactionRule, rent.id).next_due_date == datetime(2024, 2, 29, 9, 0)


def test_catch_up_takes_one_occurrence_per_sweep(runner, add_rule_row, db: Session):
    """A rule three weeks behind advances one week per sweep"""
    rule = add_rule_row(frequency_type="WEEKLY", next_due_date=datetime(2024, 2, 9, 9, 0))

    for _ in range(4):
        runner.run_sweep()

    db.expire_all()
    stored = db.get(RecurringTransactionRule, rule.id)
    assert stored.next_due_date == datetime(2024, 3, 8, 9, 0)
    assert stored.occurrences_generated == 2 + 4
    assert db.query(Transaction).count() == 4
    assert runner.run_sweep().processed == 0


def test_installment_plan_runs_to_completion(runner, add_rule_row, db: Session):
    rule = add_rule_row(
        frequency_type="DAILY",
        is_installment=True,
        total_occurrences=3,
        occurrences_generated=0,
        next_due_date=datetime(2024, 2, 20, 9, 0),
    )

    results = [runner.run_sweep() for _ in range(4)]

    assert [r.created_transactions for r in results] == [1, 1, 1, 0]
    assert results[2].deactivated_rules == 1

    db.expire_all()
    stored = db.get(RecurringTransactionRule, rule.id)
    assert stored.is_active is False
    assert stored.occurrences_generated == 3


def test_seed_occurrence_is_not_duplicated(runner, add_rule_row, db: Session):
    rule = add_rule_row(
        occurrences_generated=1,
        is_first_occurrence_generated=True,
        start_date=datetime(2024, 2, 1, 9, 0),
        next_due_date=datetime(2024, 2, 1, 9, 0),
    )

    first = runner.run_sweep()
    second = runner.run_sweep()

    assert first.skipped_first_occurrences == 1
    assert first.created_transactions == 0
    assert second.created_transactions == 1

    db.expire_all()
    assert db.query(Transaction).count() == 1
    assert db.get(RecurringTransactionRule, rule.id).next_due_date == datetime(2024, 4, 1, 9, 0)


def test_bad_rule_does_not_block_others(runner, add_rule_row, db: Session):
    broken = add_rule_row(frequency_type="HOURLY")
    healthy = add_rule_row()

    result = runner.run_sweep()

    assert result.processed == 1
    assert result.failed_rule_ids == (broken.id,)
    db.expire_all()
    assert [row.recurring_rule_id for row in db.query(Transaction).all()] == [healthy.id]
