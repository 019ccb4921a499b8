"""Domain models - pure Python dataclasses representing business entities"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple


class FrequencyType(str, enum.Enum):
    """How often a recurring rule repeats"""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class RuleType(str, enum.Enum):
    """Direction of money movement; decides the sign of generated amounts"""

    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


END_DATE_REACHED = "End date reached"
INSTALLMENTS_COMPLETED = "All installments completed"


@dataclass
class RecurringRule:
    """Standing instruction to produce ledger transactions on a schedule"""

    id: str
    user_id: str
    money_account_id: Optional[str]
    amount: Decimal
    type: str  # "INCOME" or "EXPENSE"
    frequency_type: str  # kept as text so unknown values fail per rule
    frequency_interval: int
    start_date: datetime
    next_due_date: datetime
    sub_category_id: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None
    day_of_month: Optional[int] = None
    day_of_week: Optional[int] = None  # 0 = Sunday; stored, not used for advancing
    end_date: Optional[datetime] = None
    occurrences_generated: int = 0
    is_first_occurrence_generated: bool = False
    last_processed_at: Optional[datetime] = None
    is_installment: bool = False
    total_occurrences: Optional[int] = None
    is_active: bool = True


@dataclass
class NewTransaction:
    """Ledger entry produced by one processing step"""

    user_id: str
    amount: Decimal
    description: str
    date: datetime
    money_account_id: Optional[str]
    sub_category_id: Optional[str]
    notes: str
    recurring_rule_id: str
    is_recurring_instance: bool = True


@dataclass
class RuleUpdate:
    """Rule columns written alongside (or instead of) a new transaction.

    ``expected_next_due_date`` is the due date the processor read; the store
    only applies the update while the rule still has that value.
    """

    expected_next_due_date: datetime
    next_due_date: datetime
    occurrences_generated: Optional[int] = None
    last_processed_at: Optional[datetime] = None
    deactivate: bool = False


@dataclass
class RuleOutcome:
    """What one processing step did to one rule"""

    rule_id: str
    next_due_date: datetime
    transaction_id: Optional[str] = None
    skipped: bool = False
    deactivation_reason: Optional[str] = None

    @property
    def deactivated(self) -> bool:
        return self.deactivation_reason is not None


@dataclass(frozen=True)
class ProcessingResult:
    """Aggregate counts of a sweep, built as a fold over per-rule results"""

    processed: int = 0
    errors: int = 0
    created_transactions: int = 0
    deactivated_rules: int = 0
    skipped_first_occurrences: int = 0
    failed_rule_ids: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_outcome(cls, outcome: RuleOutcome) -> "ProcessingResult":
        return cls(
            processed=1,
            created_transactions=0 if outcome.skipped else 1,
            deactivated_rules=1 if outcome.deactivated else 0,
            skipped_first_occurrences=1 if outcome.skipped else 0,
        )

    @classmethod
    def from_error(cls, rule_id: str) -> "ProcessingResult":
        return cls(errors=1, failed_rule_ids=(rule_id,))

    def __add__(self, other: "ProcessingResult") -> "ProcessingResult":
        if not isinstance(other, ProcessingResult):
            return NotImplemented
        return ProcessingResult(
            processed=self.processed + other.processed,
            errors=self.errors + other.errors,
            created_transactions=self.created_transactions + other.created_transactions,
            deactivated_rules=self.deactivated_rules + other.deactivated_rules,
            skipped_first_occurrences=self.skipped_first_occurrences + other.skipped_first_occurrences,
            failed_rule_ids=self.failed_rule_ids + other.failed_rule_ids,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "errors": self.errors,
            "created_transactions": self.created_transactions,
            "deactivated_rules": self.deactivated_rules,
            "skipped_first_occurrences": self.skipped_first_occurrences,
            "failed_rule_ids": list(self.failed_rule_ids),
        }
