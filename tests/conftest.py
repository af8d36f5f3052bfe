"""Shared fixtures for the test suite."""

import copy
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from payout_validation.main import app
from payout_validation.models import ValidationPolicy
from payout_validation.storage.memory import MemoryPayeeDirectory
from payout_validation.validation.engine import PayoutValidator

# Monday
NOW = datetime(2026, 2, 23, 10, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture
def policy():
    return ValidationPolicy()


@pytest.fixture
def validator(policy):
    return PayoutValidator(policy=policy, clock=fixed_clock)


@pytest.fixture
def directory():
    return MemoryPayeeDirectory(["p1", "p2"])


@pytest.fixture
def client():
    with TestClient(app) as c:
        app.state.validator = PayoutValidator(clock=fixed_clock)
        yield c


def make_payout(
    payee_id="p1",
    gross_amount=100,
    net_amount=90,
    deductions=10,
    payment_method="bank_transfer",
    **extra,
) -> dict:
    payout = {
        "payee_id": payee_id,
        "gross_amount": gross_amount,
        "net_amount": net_amount,
        "deductions": deductions,
        "payment_method": payment_method,
        "bank_account_info": {"iban": "DE89370400440532013000"},
    }
    payout.update(extra)
    return payout


def _total(payouts, field):
    values = [p.get(field) for p in payouts if isinstance(p, dict)]
    return sum(v for v in values if isinstance(v, (int, float)) and not isinstance(v, bool))


def make_batch(payouts=None, **overrides) -> dict:
    """A structurally clean batch whose declared totals match its line items."""
    if payouts is None:
        payouts = [make_payout()]
    batch = {
        "period_start": "2024-01-01",
        "period_end": "2024-01-31",
        "currency": "USD",
        "status": "calculated",
        "payouts": payouts,
        "total_gross_amount": _total(payouts, "gross_amount"),
        "total_net_amount": _total(payouts, "net_amount"),
        "total_deductions": _total(payouts, "deductions"),
        "created_by": "royalties-ops",
        "approved_by": "finance-lead",
        "calculation_method": "pro_rata_streams",
        "calculation_notes": "Q1 streaming royalties",
    }
    batch.update(overrides)
    return batch


def codes(issues) -> list[str]:
    return [i.code for i in issues]


def snapshot(batch: dict) -> dict:
    return copy.deepcopy(batch)
