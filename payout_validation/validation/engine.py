"""Core payout validation orchestrator.

Three entry points, one per lifecycle stage of a payout batch:
  1. Creation   -- structure, payees, calculations, basic compliance,
                   business rules
  2. Processing -- payment methods, thresholds, readiness, risk
  3. Compliance -- tax, regulatory, AML, documentation

Each call collects the RuleResult of every rule it runs into a list that
belongs to that call alone, then aggregates them into a ValidationResult.
The validator itself only holds its policy and clock, so one instance can
validate many batches concurrently.
"""

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from datetime import datetime, timezone

from payout_validation.models import (
    BatchAnalysis,
    ComplianceOptions,
    CreationOptions,
    PayoutBatch,
    ProcessingOptions,
    RuleResult,
    ValidationMode,
    ValidationPolicy,
    ValidationResult,
)
from payout_validation.validation.fields import payout_count
from payout_validation.validation.rules.business import (
    check_audit_trail,
    check_maximum_limits,
    check_minimum_thresholds,
)
from payout_validation.validation.rules.compliance import (
    check_aml,
    check_documentation,
    check_financial_regulations,
    check_regulatory_compliance,
    check_tax_compliance,
)
from payout_validation.validation.rules.payees import (
    aggregate_payees,
    check_payee_id_format,
    check_payees,
)
from payout_validation.validation.rules.payment_methods import check_payment_methods
from payout_validation.validation.rules.processing import check_processing_readiness
from payout_validation.validation.rules.reconciliation import reconcile
from payout_validation.validation.rules.risk import (
    check_payout_patterns,
    check_risk_assessment,
)
from payout_validation.validation.rules.structure import check_structure
from payout_validation.validation.rules.thresholds import (
    check_global_thresholds,
    check_method_thresholds,
    check_payee_thresholds,
)
from payout_validation.validation.scorer import aggregate_results, analyze_batch

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PayoutValidator:
    """Validates payout batches against a ValidationPolicy."""

    def __init__(
        self,
        policy: ValidationPolicy | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.policy = policy or ValidationPolicy()
        self.clock = clock

    def validate_for_creation(
        self,
        batch: PayoutBatch,
        options: CreationOptions | None = None,
    ) -> ValidationResult:
        """Validate a batch before it is created."""
        options = options or CreationOptions()
        return self._run("creation", batch, lambda now: self._creation_rules(batch, options))

    def validate_for_processing(
        self,
        batch: PayoutBatch,
        options: ProcessingOptions | None = None,
    ) -> ValidationResult:
        """Validate that a batch can be handed over for disbursement."""
        options = options or ProcessingOptions()
        return self._run(
            "processing", batch, lambda now: self._processing_rules(batch, options, now)
        )

    def validate_for_compliance(
        self,
        batch: PayoutBatch,
        jurisdictions: Iterable[str] | None = None,
        options: ComplianceOptions | None = None,
    ) -> ValidationResult:
        """Validate tax, regulatory, AML and documentation requirements.

        Jurisdictions are ISO 3166-1 alpha-2 codes of the places the batch
        is reported in, e.g. ``["US", "DE"]``.
        """
        options = options or ComplianceOptions()
        jurisdictions = list(jurisdictions or [])
        return self._run(
            "compliance",
            batch,
            lambda now: self._compliance_rules(batch, jurisdictions, options),
        )

    def _creation_rules(
        self, batch: PayoutBatch, options: CreationOptions
    ) -> Iterator[RuleResult]:
        policy = self.policy

        yield check_structure(batch, policy)

        if options.validate_payees:
            if options.strict:
                yield check_payee_id_format(batch)
            yield check_payees(aggregate_payees(batch), policy)

        if options.validate_calculations:
            yield from reconcile(batch, policy)

        yield check_minimum_thresholds(batch, policy)
        yield check_maximum_limits(batch, policy)
        yield check_financial_regulations(batch, policy)
        yield check_audit_trail(batch, policy)

    def _processing_rules(
        self, batch: PayoutBatch, options: ProcessingOptions, now: datetime
    ) -> Iterator[RuleResult]:
        policy = self.policy

        if options.validate_payment_methods:
            yield check_payment_methods(batch, policy)

        if options.validate_thresholds:
            yield check_global_thresholds(batch, policy)
            yield check_payee_thresholds(aggregate_payees(batch), policy)
            yield check_method_thresholds(batch, policy)

        yield check_processing_readiness(batch, policy, now)
        yield check_risk_assessment(batch, policy)
        yield check_payout_patterns(batch, policy)

    def _compliance_rules(
        self, batch: PayoutBatch, jurisdictions: list[str], options: ComplianceOptions
    ) -> Iterator[RuleResult]:
        policy = self.policy

        if options.validate_tax_compliance:
            yield check_tax_compliance(batch, jurisdictions, aggregate_payees(batch), policy)

        if options.validate_regulatory_compliance:
            yield check_regulatory_compliance(batch, policy)

        yield check_aml(batch, policy)
        yield check_documentation(batch, policy)

    def _run(
        self,
        mode: ValidationMode,
        batch: PayoutBatch,
        rules: Callable[[datetime], Iterator[RuleResult]],
    ) -> ValidationResult:
        """Run one mode's rules and aggregate their findings.

        Any unexpected failure becomes a single ``validation_error`` on the
        findings gathered so far; nothing is raised to the caller.
        """
        validated_at = self.clock()
        rule_results: list[RuleResult] = []
        summary = BatchAnalysis()

        if not isinstance(batch, Mapping):
            failure = RuleResult()
            failure.error(
                "invalid_batch_format",
                f"Payout batch must be an object, got {type(batch).__name__}",
                "general",
            )
            return aggregate_results(mode, [failure], summary, validated_at)

        logger.debug("Validating payout batch for %s (%d payouts)", mode, payout_count(batch))

        failed = False
        try:
            for result in rules(_naive_utc(validated_at)):
                rule_results.append(result)
        except Exception:
            logger.exception("Payout %s validation error", mode)
            failed = True

        # Scored separately so a failing rule cannot leave default scores behind.
        try:
            summary = analyze_batch(batch, self.policy)
        except Exception:
            logger.exception("Payout %s batch analysis error", mode)
            failed = True

        if failed:
            failure = RuleResult()
            failure.error("validation_error", f"Payout {mode} validation failed", "general")
            rule_results.append(failure)

        result = aggregate_results(mode, rule_results, summary, validated_at)
        logger.info(
            "Payout %s validation finished: %d errors, %d warnings, %d notices",
            mode,
            result.error_count,
            result.warning_count,
            result.info_count,
        )
        return result


def _naive_utc(moment: datetime) -> datetime:
    """Drop tzinfo after converting to UTC; naive values are taken as UTC."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)
