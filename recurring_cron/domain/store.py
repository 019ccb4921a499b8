"""Rule store port used by the sweep and the rule processor"""

from datetime import datetime
from typing import Dict, List, Optional, Protocol

from recurring_cron.domain.models import NewTransaction, RecurringRule, RuleUpdate


class RuleStore(Protocol):
    """Persistence operations the scheduler needs from a storage engine"""

    def check_connection(self) -> None:
        """Raise StoreUnavailableError when the store cannot be reached"""
        ...

    def find_due_rules(self, now: datetime) -> List[RecurringRule]:
        """Active rules with next_due_date <= now"""
        ...

    def apply_rule_processing(
        self,
        rule_id: str,
        transaction: Optional[NewTransaction],
        update: RuleUpdate,
    ) -> Optional[str]:
        """
        Atomically insert the transaction (if any) and update the rule.

        Returns the new transaction id, or None when no transaction was given.
        Raises RuleConflictError if the rule no longer matches
        ``update.expected_next_due_date`` or is inactive.
        """
        ...

    def count_summary(self) -> Dict[str, int]:
        """Row counts for health reporting"""
        ...
