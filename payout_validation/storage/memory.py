"""In-memory payee directory.

The validation engine only checks payee id format. Whether a payee really
exists is the caller's question: it asks a PayeeDirectory after the core
validation and merges the findings. This module defines that contract and
an in-memory implementation used by the HTTP service and the tests. All
data lives in memory and is lost on restart.
"""

import threading
from typing import List, Protocol

from payout_validation.models import PayoutBatch, RuleResult
from payout_validation.validation.fields import line_items


def _normalize_key(payee_id: str) -> str:
    """Normalize a payee id to a consistent set key (stripped)."""
    return payee_id.strip()


class PayeeDirectory(Protocol):
    """Lookup capability for registered payees."""

    def exists(self, payee_id: str) -> bool:
        ...


class MemoryPayeeDirectory:
    """Thread-safe in-memory set of registered payee ids."""

    def __init__(self, payee_ids: List[str] | None = None) -> None:
        self._lock = threading.Lock()
        self._payees: set[str] = set()
        for payee_id in payee_ids or []:
            self.add(payee_id)

    def add(self, payee_id: str) -> None:
        """Register a payee id."""
        with self._lock:
            self._payees.add(_normalize_key(payee_id))

    def exists(self, payee_id: str) -> bool:
        with self._lock:
            return _normalize_key(payee_id) in self._payees

    def get_all(self) -> List[str]:
        """Return all registered payee ids, sorted."""
        with self._lock:
            return sorted(self._payees)


def check_payee_existence(batch: PayoutBatch, directory: PayeeDirectory) -> RuleResult:
    """Report each line item whose payee is not in the directory.

    Ids that fail the format check are skipped; the engine reports those.
    """
    result = RuleResult()
    for index, payout in line_items(batch):
        payee_id = payout.get("payee_id")
        if not isinstance(payee_id, str) or not payee_id.strip():
            continue
        if not directory.exists(payee_id):
            result.error(
                "unknown_payee",
                f"Payee {payee_id} is not registered (payout {index})",
                f"payouts[{index}].payee_id",
            )
    return result
