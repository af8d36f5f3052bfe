"""Tests for the global, per-payee and per-method threshold rules."""

from decimal import Decimal

import pytest

from payout_validation.models import MethodBand, ValidationPolicy
from payout_validation.validation.rules.payees import aggregate_payees
from payout_validation.validation.rules.thresholds import (
    check_global_thresholds,
    check_method_thresholds,
    check_payee_thresholds,
)
from tests.conftest import codes, make_batch, make_payout


class TestGlobalThresholds:
    def test_within_bounds(self, policy):
        assert check_global_thresholds(make_batch(), policy).codes == []

    def test_below_global_minimum_blocks(self, policy):
        batch = make_batch(payouts=[make_payout(gross_amount=5, net_amount=5, deductions=0)])
        result = check_global_thresholds(batch, policy)
        assert codes(result.errors) == ["below_global_minimum"]

    def test_above_global_maximum_warns(self, policy):
        batch = make_batch(total_net_amount=60000)
        result = check_global_thresholds(batch, policy)
        assert result.errors == []
        assert codes(result.warnings) == ["above_global_maximum"]

    def test_batch_can_override_bounds(self, policy):
        batch = make_batch(
            total_net_amount=60000,
            minimum_payout_amount=100000,
            maximum_payout_amount=200000,
        )
        result = check_global_thresholds(batch, policy)
        assert codes(result.errors) == ["below_global_minimum"]
        assert result.warnings == []

    def test_zero_minimum_override_disables_the_minimum(self, policy):
        batch = make_batch(
            payouts=[make_payout(gross_amount=5, net_amount=5, deductions=0)],
            minimum_payout_amount=0,
        )
        assert check_global_thresholds(batch, policy).codes == []

    def test_zero_maximum_override_is_honoured(self, policy):
        result = check_global_thresholds(make_batch(maximum_payout_amount=0), policy)
        assert codes(result.warnings) == ["above_global_maximum"]

    def test_missing_total_is_skipped(self, policy):
        batch = make_batch()
        del batch["total_net_amount"]
        assert check_global_thresholds(batch, policy).codes == []


class TestPayeeThresholds:
    def test_small_aggregate_across_two_items(self, policy):
        batch = make_batch(payouts=[
            make_payout("p1", 1.5, 1.5, 0, currency="USD"),
            make_payout("p1", 1.5, 1.5, 0, currency="USD"),
        ])
        result = check_payee_thresholds(aggregate_payees(batch), policy)
        assert result.errors == []
        assert codes(result.warnings) == ["below_payee_minimum"]

    def test_aggregate_at_minimum_passes(self, policy):
        batch = make_batch(payouts=[make_payout("p1", 5, 5, 0)])
        assert check_payee_thresholds(aggregate_payees(batch), policy).codes == []


class TestMethodThresholds:
    def test_inside_band(self, policy):
        assert check_method_thresholds(make_batch(), policy).codes == []

    def test_band_edges_are_inclusive(self, policy):
        batch = make_batch(payouts=[
            make_payout(gross_amount=25, net_amount=25, deductions=0, payment_method="check"),
            make_payout(gross_amount=10000, net_amount=10000, deductions=0, payment_method="paypal"),
        ])
        assert check_method_thresholds(batch, policy).codes == []

    def test_below_and_above_band(self, policy):
        batch = make_batch(payouts=[
            make_payout(gross_amount=20, net_amount=20, deductions=0, payment_method="check"),
            make_payout(gross_amount=12000, net_amount=12000, deductions=0, payment_method="paypal"),
        ])
        result = check_method_thresholds(batch, policy)
        assert result.errors == []
        assert codes(result.warnings) == ["below_method_minimum", "above_method_maximum"]
        assert result.warnings[1].field == "payouts[1].net_amount"

    def test_methods_without_a_band_are_skipped(self, policy):
        batch = make_batch(payouts=[make_payout(net_amount=10**7, payment_method="ach")])
        assert check_method_thresholds(batch, policy).codes == []

    def test_custom_bands(self):
        policy = ValidationPolicy(method_bands={"ach": MethodBand(min=50, max=100)})
        batch = make_batch(payouts=[make_payout(payment_method="ach", net_amount=40, deductions=60)])
        assert codes(check_method_thresholds(batch, policy).warnings) == ["below_method_minimum"]

    def test_band_minimum_above_maximum_is_rejected(self):
        with pytest.raises(ValueError):
            MethodBand(min=Decimal("100"), max=Decimal("10"))
