"""Compliance rules.

Tax reporting, regulatory reporting, anti-money-laundering indicators and
documentation checks. Almost everything here is advisory: regulators want
an audit trail of what was noticed, not a blocked batch.

Jurisdictions are ISO 3166-1 alpha-2 codes compared in uppercase.
"""

from collections.abc import Iterable
from decimal import Decimal

from payout_validation.models import (
    PayeeAggregate,
    PayoutBatch,
    RuleResult,
    ValidationPolicy,
)
from payout_validation.validation.fields import (
    amount,
    is_multiple_of,
    line_items,
    money,
    parse_datetime,
    payout_count,
    text,
)
from payout_validation.validation.scorer import has_international_transfer

SECONDS_PER_HOUR = 3600


def normalize_jurisdictions(jurisdictions: Iterable[str] | None) -> set[str]:
    return {
        j.strip().upper()
        for j in (jurisdictions or [])
        if isinstance(j, str) and j.strip()
    }


def check_financial_regulations(batch: PayoutBatch, policy: ValidationPolicy) -> RuleResult:
    """Basic regulatory notices raised when a batch is created."""
    result = RuleResult()

    total_net = amount(batch, "total_net_amount")
    if total_net is not None and total_net >= policy.ctr_threshold:
        result.info(
            "ctr_reporting_required",
            "Large transaction may require CTR reporting",
            "regulatory_reporting",
        )

    round_amounts = [
        net
        for net in (amount(p, "net_amount") for _, p in line_items(batch))
        if net
        and is_multiple_of(net, policy.round_notice_multiple)
        and net >= policy.round_notice_minimum
    ]
    if round_amounts:
        result.info(
            "round_amount_notice",
            "Large round amounts detected, may require additional scrutiny",
            "suspicious_activity",
        )

    # Needs the caller to supply when the payee set was last paid.
    processing_date = parse_datetime(batch.get("processing_date"))
    last_payout_at = parse_datetime(batch.get("last_payout_at"))
    if processing_date is not None and last_payout_at is not None:
        hours = Decimal(
            str(abs((processing_date - last_payout_at).total_seconds()) / SECONDS_PER_HOUR)
        )
        if hours < policy.rapid_succession_hours:
            result.warning(
                "rapid_succession_payouts",
                "Payouts in rapid succession may require additional verification",
                "timing",
            )

    return result


def check_tax_compliance(
    batch: PayoutBatch,
    jurisdictions: Iterable[str],
    aggregates: dict[str, PayeeAggregate],
    policy: ValidationPolicy,
) -> RuleResult:
    """Jurisdiction-specific tax checks followed by the general ones."""
    result = RuleResult()
    codes = normalize_jurisdictions(jurisdictions)

    if "US" in codes:
        _check_us_tax(batch, aggregates, policy, result)

    if codes & set(policy.eu_jurisdictions):
        result.info(
            "dac_reporting_notice",
            "EU payments may require DAC reporting",
            "eu_tax_compliance",
        )
        if batch.get("includes_vat"):
            result.info(
                "vat_compliance_notice",
                "VAT compliance requirements may apply",
                "vat_compliance",
            )

    _check_general_tax(batch, policy, result)
    return result


def _check_us_tax(
    batch: PayoutBatch,
    aggregates: dict[str, PayeeAggregate],
    policy: ValidationPolicy,
    result: RuleResult,
) -> None:
    for payee_id, aggregate in aggregates.items():
        if aggregate.total_net >= policy.form_1099_threshold:
            result.info(
                "1099_reporting_required",
                f"Payee {payee_id} exceeds 1099 reporting threshold "
                f"({money(aggregate.total_net)})",
                "tax_reporting",
            )

    if not batch.get("backup_withholding_required"):
        return

    for index, payout in line_items(batch):
        withheld = amount(payout, "backup_withholding")
        gross = amount(payout, "gross_amount")
        if not withheld or not gross:
            continue
        expected = gross * policy.backup_withholding_rate
        if abs(withheld - expected) > policy.tolerance:
            result.warning(
                "incorrect_backup_withholding",
                f"Backup withholding calculation may be incorrect for payout "
                f"{index} (expected {money(expected)}, got {money(withheld)})",
                f"payouts[{index}].backup_withholding",
            )


def _check_general_tax(batch: PayoutBatch, policy: ValidationPolicy, result: RuleResult) -> None:
    if batch.get("tax_documents_required") and not batch.get("tax_documents_collected"):
        result.warning(
            "missing_tax_documents",
            "Required tax documents not collected",
            "tax_documents",
        )

    rate = amount(batch, "withholding_tax_rate")
    if not rate:
        return

    for index, payout in line_items(batch):
        withheld = amount(payout, "withholding_tax")
        gross = amount(payout, "gross_amount")
        if not withheld or not gross:
            continue
        expected = gross * rate
        if abs(withheld - expected) > policy.tolerance:
            result.warning(
                "withholding_tax_mismatch",
                f"Withholding tax calculation may be incorrect for payout {index}",
                f"payouts[{index}].withholding_tax",
            )


def check_regulatory_compliance(batch: PayoutBatch, policy: ValidationPolicy) -> RuleResult:
    result = RuleResult()

    total_net = amount(batch, "total_net_amount")
    if total_net is not None and total_net >= policy.ctr_threshold:
        result.info(
            "large_transaction_reporting",
            "Transaction may require regulatory reporting",
            "regulatory_reporting",
        )

    if has_international_transfer(batch):
        result.info(
            "cross_border_compliance",
            "Cross-border payments may have additional compliance requirements",
            "cross_border",
        )

    return result


def check_aml(batch: PayoutBatch, policy: ValidationPolicy) -> RuleResult:
    """Accumulate anti-money-laundering indicators into a single notice."""
    result = RuleResult()
    indicators: list[str] = []

    total_net = amount(batch, "total_net_amount")
    if total_net is not None and total_net > policy.aml_large_amount:
        indicators.append("large_amount")

    if payout_count(batch) > policy.aml_high_volume:
        indicators.append("high_volume")

    high_risk = set(policy.high_risk_countries)
    if any(
        (text(p, "beneficiary_country") or "").strip().upper() in high_risk
        for _, p in line_items(batch)
    ):
        indicators.append("high_risk_geography")

    if indicators:
        result.info(
            "aml_risk_indicators",
            f"AML risk indicators detected: {', '.join(indicators)}",
            "aml_compliance",
        )

    return result


def check_audit_fields(batch: PayoutBatch, policy: ValidationPolicy, result: RuleResult) -> None:
    for field in policy.audit_fields:
        if not batch.get(field):
            result.warning("missing_audit_field", f"Audit field {field} is missing", field)


def check_documentation(batch: PayoutBatch, policy: ValidationPolicy) -> RuleResult:
    result = RuleResult()
    supporting = batch.get("supporting_documents")
    if not isinstance(supporting, list):
        supporting = []

    for doc in policy.required_documents:
        if not batch.get(doc) and doc not in supporting:
            result.warning(
                "missing_required_document",
                f"Required document {doc} is missing",
                "documentation",
            )

    check_audit_fields(batch, policy, result)

    result.info(
        "document_retention_notice",
        "Payout documentation must be retained per regulatory requirements",
        "document_retention",
    )
    return result
