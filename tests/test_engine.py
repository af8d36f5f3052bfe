"""Tests for the payout validator orchestrator."""

from concurrent.futures import ThreadPoolExecutor

from payout_validation.models import (
    ComplianceOptions,
    CreationOptions,
    ProcessingOptions,
    ValidationPolicy,
)
from payout_validation.validation import engine as engine_module
from payout_validation.validation.engine import PayoutValidator
from tests.conftest import NOW, codes, make_batch, make_payout, snapshot


class TestCreation:
    def test_clean_batch_is_valid(self, validator):
        result = validator.validate_for_creation(make_batch())
        assert result.mode == "creation"
        assert result.is_valid
        assert result.errors == []
        assert result.warnings == []
        assert result.validated_at == NOW
        assert result.summary.total_payouts == 1

    def test_net_total_mismatch(self, validator):
        result = validator.validate_for_creation(make_batch(total_net_amount=95))
        assert not result.is_valid
        assert codes(result.errors) == ["net_total_mismatch"]

    def test_findings_from_every_rule_are_collected(self, validator):
        batch = make_batch(
            currency="USDD",
            total_net_amount=95,
            status="approved",
        )
        del batch["approved_by"]
        result = validator.validate_for_creation(batch)
        assert codes(result.errors) == ["net_total_mismatch", "missing_approval_info"]
        assert "unrecognized_currency" in codes(result.warnings)
        assert "missing_approval_date" in codes(result.warnings)

    def test_structure_errors_do_not_stop_later_rules(self, validator):
        batch = make_batch(period_start="2024-02-01", total_gross_amount=500)
        result = validator.validate_for_creation(batch)
        assert codes(result.errors) == ["invalid_period_range", "gross_total_mismatch"]

    def test_calculations_can_be_skipped(self, validator):
        options = CreationOptions(validate_calculations=False)
        result = validator.validate_for_creation(make_batch(total_net_amount=95), options)
        assert result.is_valid

    def test_payee_checks_can_be_skipped(self, validator):
        batch = make_batch(payouts=[make_payout(currency="USD"), make_payout(currency="EUR")])
        with_payees = validator.validate_for_creation(batch)
        without = validator.validate_for_creation(batch, CreationOptions(validate_payees=False))
        assert "multiple_currencies_per_payee" in codes(with_payees.warnings)
        assert "multiple_currencies_per_payee" not in codes(without.warnings)

    def test_strict_mode_checks_payee_id_format(self, validator):
        batch = make_batch(payouts=[make_payout(payee_id=" ")])
        lenient = validator.validate_for_creation(batch)
        strict = validator.validate_for_creation(batch, CreationOptions(strict=True))
        assert "invalid_payee_id_format" not in codes(lenient.errors)
        assert "invalid_payee_id_format" in codes(strict.errors)

    def test_approved_batch_without_approver(self, validator):
        batch = make_batch(status="approved", approval_date="2026-02-20")
        del batch["approved_by"]
        result = validator.validate_for_creation(batch)
        assert not result.is_valid
        assert "missing_approval_info" in codes(result.errors)


class TestProcessing:
    def test_clean_batch_is_ready(self, validator):
        result = validator.validate_for_processing(make_batch())
        assert result.mode == "processing"
        assert result.is_valid
        assert codes(result.warnings) == ["dominant_payment_method"]
        assert result.warning_count == 0
        assert result.info_count == 1
        assert result.summary.processing_readiness.ready

    def test_crypto_without_wallet(self, validator):
        payout = make_payout(payment_method="crypto", crypto_network="ethereum")
        result = validator.validate_for_processing(make_batch(payouts=[payout]))
        assert "missing_wallet_address" in codes(result.errors)

    def test_small_payee_total_is_a_warning_only(self, validator):
        payouts = [
            make_payout("p1", 1.5, 1.5, 0, currency="USD"),
            make_payout("p1", 1.5, 1.5, 0, currency="USD"),
            make_payout("p2", 50, 50, 0, currency="USD"),
        ]
        result = validator.validate_for_processing(make_batch(payouts=payouts))
        assert result.is_valid
        assert "below_payee_minimum" in codes(result.warnings)

    def test_options_skip_method_and_threshold_checks(self, validator):
        payout = make_payout(payment_method="crypto", gross_amount=3, net_amount=3, deductions=0)
        batch = make_batch(payouts=[payout])
        options = ProcessingOptions(validate_payment_methods=False, validate_thresholds=False)
        result = validator.validate_for_processing(batch, options)
        assert result.is_valid

    def test_draft_batch_is_not_ready(self, validator):
        result = validator.validate_for_processing(make_batch(status="draft"))
        assert codes(result.errors) == ["invalid_status_for_processing"]
        assert result.summary.processing_readiness.issues == ["invalid_status"]

    def test_past_date_uses_injected_clock(self):
        batch = make_batch(scheduled_processing_date="2026-03-02")
        before = PayoutValidator(clock=lambda: NOW)
        after = PayoutValidator(clock=lambda: NOW.replace(month=3, day=10))
        assert "past_processing_date" not in codes(before.validate_for_processing(batch).warnings)
        assert "past_processing_date" in codes(after.validate_for_processing(batch).warnings)


class TestCompliance:
    def test_defaults(self, validator):
        result = validator.validate_for_compliance(make_batch())
        assert result.mode == "compliance"
        assert result.is_valid
        assert codes(result.warnings) == [
            "missing_required_document",
            "missing_required_document",
            "document_retention_notice",
        ]
        assert result.summary.compliance_score == 80

    def test_jurisdictions_drive_tax_checks(self, validator):
        batch = make_batch(payouts=[make_payout("p1", 700, 700, 0)])
        result = validator.validate_for_compliance(batch, ["US", "FR"])
        assert "1099_reporting_required" in codes(result.warnings)
        assert "dac_reporting_notice" in codes(result.warnings)

    def test_tax_and_regulatory_can_be_skipped(self, validator):
        batch = make_batch(
            payouts=[make_payout("p1", 12000, 12000, 0, currency="EUR")],
            tax_documents_required=True,
        )
        options = ComplianceOptions(
            validate_tax_compliance=False,
            validate_regulatory_compliance=False,
        )
        result = validator.validate_for_compliance(batch, ["US"], options)
        assert "missing_tax_documents" not in codes(result.warnings)
        assert "cross_border_compliance" not in codes(result.warnings)
        assert "document_retention_notice" in codes(result.warnings)


class TestFailureHandling:
    def test_non_object_batch(self, validator):
        result = validator.validate_for_creation(["not", "a", "batch"])
        assert not result.is_valid
        assert codes(result.errors) == ["invalid_batch_format"]
        assert result.errors[0].field == "general"

    def test_unexpected_rule_failure_becomes_a_finding(self, validator, monkeypatch):
        def explode(batch, policy):
            raise RuntimeError("boom")

        monkeypatch.setattr(engine_module, "check_audit_trail", explode)
        result = validator.validate_for_creation(make_batch(total_net_amount=95))

        assert not result.is_valid
        # Findings gathered before the failure are kept.
        assert codes(result.errors) == ["net_total_mismatch", "validation_error"]
        assert result.errors[-1].message == "Payout creation validation failed"
        assert result.errors[-1].field == "general"

    def test_rule_failure_still_scores_the_batch(self, validator, monkeypatch):
        def explode(batch, policy):
            raise RuntimeError("boom")

        monkeypatch.setattr(engine_module, "check_payout_patterns", explode)
        result = validator.validate_for_processing(make_batch(urgent=True))

        assert codes(result.errors) == ["validation_error"]
        assert result.summary.risk_score == 15
        assert result.summary.compliance_score == 80
        assert result.summary.total_payouts == 1

    def test_analysis_failure_keeps_rule_findings(self, validator, monkeypatch):
        def explode(batch, policy):
            raise RuntimeError("boom")

        monkeypatch.setattr(engine_module, "analyze_batch", explode)
        result = validator.validate_for_creation(make_batch(total_net_amount=95))

        assert codes(result.errors) == ["net_total_mismatch", "validation_error"]

    def test_amounts_beyond_decimal_precision(self, validator):
        processing = validator.validate_for_processing(
            make_batch(payouts=[make_payout(gross_amount=1e30, net_amount=1e30, deductions=0)])
        )
        assert processing.errors == []
        assert "round_amount_pattern" in codes(processing.warnings)
        assert processing.summary.risk_score == 20

        creation = validator.validate_for_creation(
            make_batch(payouts=[make_payout(gross_amount=1e31, net_amount=1e31, deductions=0)])
        )
        assert creation.errors == []
        assert "round_amount_notice" in codes(creation.warnings)

    def test_blank_payee_ids_block_default_creation(self, validator):
        batch = make_batch(payouts=[make_payout(payee_id=""), make_payout(payee_id="   ")])
        result = validator.validate_for_creation(batch)
        assert not result.is_valid
        assert codes(result.errors) == ["missing_payout_field", "missing_payout_field"]

    def test_garbage_values_do_not_raise(self, validator):
        batch = {
            "period_start": 12,
            "period_end": None,
            "currency": ["USD"],
            "payouts": [None, {"payee_id": {}, "gross_amount": "x", "net_amount": True}],
            "total_net_amount": "many",
            "exchange_rates": {"EUR": None},
        }
        for result in (
            validator.validate_for_creation(batch),
            validator.validate_for_processing(batch),
            validator.validate_for_compliance(batch, ["US", 7]),
        ):
            assert "validation_error" not in codes(result.errors)


class TestIsolation:
    def test_batch_is_not_mutated(self, validator):
        batch = make_batch(total_net_amount=95)
        before = snapshot(batch)
        validator.validate_for_creation(batch)
        validator.validate_for_processing(batch)
        validator.validate_for_compliance(batch, ["US"])
        assert batch == before

    def test_repeat_validation_gives_identical_results(self, validator):
        batch = make_batch(total_net_amount=95, urgent=True)
        assert validator.validate_for_processing(batch) == validator.validate_for_processing(batch)

    def test_findings_do_not_leak_between_calls(self, validator):
        bad = make_batch(total_net_amount=95)
        good = make_batch()
        assert not validator.validate_for_creation(bad).is_valid
        assert validator.validate_for_creation(good).is_valid

    def test_concurrent_validations_are_independent(self, validator):
        bad = make_batch(total_net_amount=95)
        good = make_batch()
        batches = [bad if i % 2 else good for i in range(40)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(validator.validate_for_creation, batches))

        for i, result in enumerate(results):
            if i % 2:
                assert codes(result.errors) == ["net_total_mismatch"]
            else:
                assert result.is_valid

    def test_policy_is_injectable(self):
        strict_policy = ValidationPolicy(global_minimum=1000)
        validator = PayoutValidator(policy=strict_policy, clock=lambda: NOW)
        result = validator.validate_for_processing(make_batch())
        assert "below_global_minimum" in codes(result.errors)
