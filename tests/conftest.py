"""Pytest fixtures for testing"""

import copy
import pytest
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, Generator, List, Optional
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from recurring_cron.api.main import create_app
from recurring_cron.domain.exceptions import RuleConflictError, StoreUnavailableError
from recurring_cron.domain.models import NewTransaction, RecurringRule, RuleUpdate
from recurring_cron.infrastructure.database.models import (
    Base,
    MoneyAccount,
    RecurringTransactionRule,
    SubCategory,
    User,
)
from recurring_cron.infrastructure.database.repositories import RecurringRuleRepository
from recurring_cron.services.job_tracker import JobTracker, job_tracker


NOW = datetime(2024, 3, 1, 9, 0, 0)


class FakeRuleStore:
    """In-memory RuleStore with failure knobs"""

    def __init__(self):
        self.rules: Dict[str, RecurringRule] = {}
        self.transactions: List[NewTransaction] = []
        self.fail_rule_ids: set = set()
        self.due_result_override = None
        self.unavailable = False

    def add(self, rule: RecurringRule) -> RecurringRule:
        self.rules[rule.id] = copy.deepcopy(rule)
        return rule

    def check_connection(self) -> None:
        if self.unavailable:
            raise StoreUnavailableError("Database connection failed: connection refused")

    def find_due_rules(self, now: datetime):
        if self.due_result_override is not None:
            return self.due_result_override() if callable(self.due_result_override) else self.due_result_override
        due = [r for r in self.rules.values() if r.is_active and r.next_due_date <= now]
        return [copy.deepcopy(r) for r in sorted(due, key=lambda r: r.next_due_date)]

    def apply_rule_processing(self, rule_id: str, transaction: Optional[NewTransaction], update: RuleUpdate):
        if rule_id in self.fail_rule_ids:
            raise RuntimeError(f"write failed for {rule_id}")

        stored = self.rules[rule_id]
        if not stored.is_active or stored.next_due_date != update.expected_next_due_date:
            raise RuleConflictError(f"Rule {rule_id} was modified concurrently or is no longer active")

        transaction_id = None
        if transaction is not None:
            self.transactions.append(transaction)
            transaction_id = f"txn_{len(self.transactions)}"

        stored.next_due_date = update.next_due_date
        if update.occurrences_generated is not None:
            stored.occurrences_generated = update.occurrences_generated
        if update.last_processed_at is not None:
            stored.last_processed_at = update.last_processed_at
        if update.deactivate:
            stored.is_active = False
        return transaction_id

    def count_summary(self) -> Dict[str, int]:
        return {
            "user_count": len({r.user_id for r in self.rules.values()}),
            "account_count": len({r.money_account_id for r in self.rules.values()}),
            "recurring_rules_count": len(self.rules),
            "active_rules_count": sum(1 for r in self.rules.values() if r.is_active),
        }


@pytest.fixture
def make_rule() -> Callable[..., RecurringRule]:
    """Factory for domain rules due at NOW"""
    counter = {"n": 0}

    def _make(**overrides) -> RecurringRule:
        counter["n"] += 1
        fields = dict(
            id=f"rule_{counter['n']}",
            user_id="user_1",
            money_account_id="account_1",
            sub_category_id="category_1",
            amount=Decimal("50.00"),
            type="EXPENSE",
            description="Gym membership",
            frequency_type="MONTHLY",
            frequency_interval=1,
            start_date=datetime(2024, 1, 1, 9, 0),
            next_due_date=datetime(2024, 3, 1, 9, 0),
            occurrences_generated=2,
        )
        fields.update(overrides)
        return RecurringRule(**fields)

    return _make


@pytest.fixture
def fake_store() -> FakeRuleStore:
    return FakeRuleStore()


@pytest.fixture
def tracker() -> JobTracker:
    return JobTracker(max_history_per_job=5)


@pytest.fixture
def session_factory() -> Generator[sessionmaker, None, None]:
    """Fresh in-memory SQLite database per test"""
    # StaticPool: every session sees the same in-memory database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autoflush=False, bind=engine)
    try:
        yield factory
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Session for arranging and inspecting rows"""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def repository(session_factory: sessionmaker) -> RecurringRuleRepository:
    return RecurringRuleRepository(session_factory)


@pytest.fixture
def owner(db: Session) -> Dict[str, str]:
    """User with one account and one category"""
    user = User(id="user_1", name="Alice")
    account = MoneyAccount(id="account_1", user_id="user_1", name="Checking")
    category = SubCategory(id="category_1", name="Subscriptions")
    db.add_all([user, account, category])
    db.commit()
    return {"user_id": user.id, "money_account_id": account.id, "sub_category_id": category.id}


@pytest.fixture
def add_rule_row(db: Session, owner: Dict[str, str]) -> Callable[..., RecurringTransactionRule]:
    """Insert a rule row owned by ``owner``, due at NOW unless overridden"""

    def _add(**overrides) -> RecurringTransactionRule:
        fields = dict(
            description="Gym membership",
            amount=Decimal("50.00"),
            type="EXPENSE",
            frequency_type="MONTHLY",
            frequency_interval=1,
            start_date=datetime(2024, 1, 1, 9, 0),
            next_due_date=datetime(2024, 3, 1, 9, 0),
            occurrences_generated=2,
            is_active=True,
            **owner,
        )
        fields.update(overrides)
        row = RecurringTransactionRule(**fields)
        db.add(row)
        db.commit()
        db.refresh(row)
        return row

    return _add


@pytest.fixture
def client(repository: RecurringRuleRepository) -> Generator[TestClient, None, None]:
    """Create FastAPI test client backed by the in-memory database"""
    job_tracker.clear()
    app = create_app(rule_store=repository, enable_scheduler=False)
    yield TestClient(app)
    job_tracker.clear()
