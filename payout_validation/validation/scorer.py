"""Score calculation and result aggregation.

Scores are DETERMINISTIC: they depend only on the batch content and the
policy, so the same batch always yields the same risk and compliance
scores.

Risk score (additive, capped at 100):
  - large net total            +20
  - more than 100 line items   +15
  - international transfer     +10
  - rush processing            +15
  - crypto payment             +25

Compliance score starts at 100 and loses points for missing
documentation, uncollected tax documents, high risk and audit gaps.
"""

from datetime import datetime

from payout_validation.models import (
    BatchAnalysis,
    PayoutBatch,
    ProcessingReadiness,
    RuleResult,
    ValidationIssue,
    ValidationMode,
    ValidationPolicy,
    ValidationResult,
)
from payout_validation.validation.fields import (
    ZERO,
    amount,
    item_currency,
    line_items,
    payout_count,
    text,
)


def has_international_transfer(batch: PayoutBatch) -> bool:
    """Any wire transfer, or any line item paid in a non-batch currency."""
    base_currency = text(batch, "currency")
    return any(
        payout.get("payment_method") == "wire_transfer"
        or item_currency(payout, base_currency) != base_currency
        for _, payout in line_items(batch)
    )


def has_crypto_payment(batch: PayoutBatch) -> bool:
    return any(p.get("payment_method") == "crypto" for _, p in line_items(batch))


def calculate_risk_score(batch: PayoutBatch, policy: ValidationPolicy) -> int:
    """Composite 0-100 transaction risk score for the batch."""
    score = 0

    total_net = amount(batch, "total_net_amount")
    if total_net is not None and total_net > policy.risk_large_amount:
        score += policy.risk_large_amount_weight

    if payout_count(batch) > policy.risk_high_volume:
        score += policy.risk_high_volume_weight

    if has_international_transfer(batch):
        score += policy.risk_international_weight

    if batch.get("urgent") or batch.get("rush_processing"):
        score += policy.risk_rush_weight

    if has_crypto_payment(batch):
        score += policy.risk_crypto_weight

    return min(score, 100)


def calculate_compliance_score(batch: PayoutBatch, policy: ValidationPolicy) -> int:
    """Composite 0-100 documentation and regulatory completeness score."""
    score = 100

    if not batch.get("calculation_report"):
        score -= 10
    if not batch.get("approval_record"):
        score -= 10

    if batch.get("tax_documents_required") and not batch.get("tax_documents_collected"):
        score -= 20

    if calculate_risk_score(batch, policy) > policy.compliance_risk_threshold:
        score -= 15

    if not batch.get("created_by"):
        score -= 5
    if batch.get("status") == "approved" and not batch.get("approved_by"):
        score -= 10

    return max(0, score)


def assess_processing_readiness(
    batch: PayoutBatch,
    policy: ValidationPolicy,
) -> ProcessingReadiness:
    """Which of the disbursement gates (if any) the batch fails."""
    issues: list[str] = []

    if batch.get("status") not in policy.processable_statuses:
        issues.append("invalid_status")

    if batch.get("requires_approval") and not batch.get("approved_by"):
        issues.append("missing_approval")

    if payout_count(batch) == 0:
        issues.append("no_payouts")

    return ProcessingReadiness(ready=not issues, issues=issues)


def analyze_batch(batch: PayoutBatch, policy: ValidationPolicy) -> BatchAnalysis:
    """Derived metrics reported alongside every validation result."""
    total_amount = amount(batch, "total_net_amount")
    return BatchAnalysis(
        total_payouts=payout_count(batch),
        total_amount=ZERO if total_amount is None else total_amount,
        currency=text(batch, "currency"),
        risk_score=calculate_risk_score(batch, policy),
        processing_readiness=assess_processing_readiness(batch, policy),
        compliance_score=calculate_compliance_score(batch, policy),
    )


def aggregate_results(
    mode: ValidationMode,
    rule_results: list[RuleResult],
    summary: BatchAnalysis,
    validated_at: datetime,
) -> ValidationResult:
    """Combine the findings of every rule into one validation result.

    Args:
        mode: Which validation entry point produced the findings.
        rule_results: RuleResult from each rule, in execution order.
        summary: Batch analysis computed for the same batch.
        validated_at: Timestamp of the validation run.

    Returns:
        ValidationResult with findings in rule order.
    """
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []

    for result in rule_results:
        errors.extend(result.errors)
        warnings.extend(result.warnings)

    info_count = sum(1 for w in warnings if w.severity == "info")

    return ValidationResult(
        mode=mode,
        is_valid=not errors,
        has_warnings=bool(warnings),
        errors=errors,
        warnings=warnings,
        error_count=len(errors),
        warning_count=len(warnings) - info_count,
        info_count=info_count,
        summary=summary,
        validated_at=validated_at,
    )


def merge_findings(result: ValidationResult, extra: RuleResult) -> ValidationResult:
    """Append findings produced outside the engine (e.g. by a caller's lookups)."""
    return aggregate_results(
        result.mode,
        [RuleResult(errors=result.errors, warnings=result.warnings), extra],
        result.summary,
        result.validated_at,
    )
