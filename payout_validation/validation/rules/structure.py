"""Structural validation rule.

Checks the batch envelope and every line item for required fields,
numeric types and ranges, date ordering and enumerated values. Findings
here never stop the other rules: a malformed field should not hide
problems elsewhere in the batch.
"""

from collections.abc import Mapping
from typing import Any

from payout_validation.models import PayoutBatch, RuleResult, ValidationPolicy
from payout_validation.validation.fields import (
    ZERO,
    amount,
    did_you_mean,
    is_missing,
    is_number,
    money,
    parse_datetime,
    to_decimal,
)

REQUIRED_BATCH_FIELDS = ["period_start", "period_end", "currency", "payouts"]
REQUIRED_PAYOUT_FIELDS = ["payee_id", "gross_amount", "net_amount"]

BATCH_NUMERIC_FIELDS = [
    "total_gross_amount", "total_deductions", "total_net_amount",
    "total_fees", "total_taxes", "exchange_rate",
]
PAYOUT_AMOUNT_FIELDS = [
    "gross_amount", "net_amount", "deductions", "fees", "taxes",
    "withholding_tax", "platform_fee", "processing_fee", "backup_withholding",
]
NET_COMPONENT_FIELDS = ["deductions", "fees", "taxes", "withholding_tax"]

SECONDS_PER_DAY = 86400


def check_structure(batch: PayoutBatch, policy: ValidationPolicy) -> RuleResult:
    """Validate the batch envelope and each line item."""
    result = RuleResult()

    for field in REQUIRED_BATCH_FIELDS:
        if is_missing(batch.get(field)):
            result.error("missing_required_field", f"{field} is required", field)

    _check_period(batch, policy, result)

    currency = batch.get("currency")
    if not is_missing(currency) and currency not in policy.recognized_currencies:
        result.warning(
            "unrecognized_currency",
            f"Unrecognized currency: {currency}"
            + did_you_mean(currency, policy.recognized_currencies, policy.suggestion_threshold),
            "currency",
        )

    payouts = batch.get("payouts")
    if not is_missing(payouts):
        if not isinstance(payouts, list):
            result.error("invalid_payouts_format", "Payouts must be an array", "payouts")
        elif not payouts:
            result.error("empty_payouts", "At least one payout is required", "payouts")
        else:
            for index, payout in enumerate(payouts):
                if isinstance(payout, Mapping):
                    _check_payout(payout, index, policy, result)
                else:
                    result.error(
                        "invalid_payout_entry",
                        f"Payout {index} must be an object",
                        f"payouts[{index}]",
                    )

    status = batch.get("status")
    if status and status not in policy.batch_statuses:
        result.error(
            "invalid_status",
            f"Invalid status: {status}"
            + did_you_mean(status, policy.batch_statuses, policy.suggestion_threshold),
            "status",
        )

    for field in BATCH_NUMERIC_FIELDS:
        value = batch.get(field)
        if is_missing(value):
            continue
        if not is_number(value):
            result.error("invalid_numeric_value", f"{field} must be a valid number", field)
        elif to_decimal(value) < ZERO:
            result.error("negative_amount", f"{field} cannot be negative", field)

    return result


def _check_period(batch: PayoutBatch, policy: ValidationPolicy, result: RuleResult) -> None:
    raw_start = batch.get("period_start")
    raw_end = batch.get("period_end")
    if is_missing(raw_start) or is_missing(raw_end):
        return

    start = parse_datetime(raw_start)
    end = parse_datetime(raw_end)
    if start is None:
        result.error("invalid_period_start", "Period start date is invalid", "period_start")
    if end is None:
        result.error("invalid_period_end", "Period end date is invalid", "period_end")
    if start is None or end is None:
        return

    period_days = (end - start).total_seconds() / SECONDS_PER_DAY
    if end <= start:
        result.error(
            "invalid_period_range",
            "Period end date must be after start date",
            "period_range",
        )
    elif period_days > policy.max_period_days:
        result.warning("long_period", "Payout period exceeds one year", "period_range")
    elif period_days < policy.min_period_days:
        result.error(
            "very_short_period",
            "Payout period is less than one day",
            "period_range",
        )


def _check_payout(
    payout: Mapping[str, Any],
    index: int,
    policy: ValidationPolicy,
    result: RuleResult,
) -> None:
    prefix = f"payouts[{index}]"

    for field in REQUIRED_PAYOUT_FIELDS:
        value = payout.get(field)
        if is_missing(value) or (isinstance(value, str) and not value.strip()):
            result.error(
                "missing_payout_field",
                f"{field} is required for payout {index}",
                f"{prefix}.{field}",
            )

    for field in PAYOUT_AMOUNT_FIELDS:
        value = payout.get(field)
        if is_missing(value):
            continue
        if not is_number(value):
            result.error(
                "invalid_amount_type",
                f"{field} must be a number for payout {index}",
                f"{prefix}.{field}",
            )
        elif to_decimal(value) < ZERO:
            result.error(
                "negative_payout_amount",
                f"{field} cannot be negative for payout {index}",
                f"{prefix}.{field}",
            )

    gross = amount(payout, "gross_amount")
    net = amount(payout, "net_amount")
    if gross is not None and net is not None:
        if net > gross:
            result.error(
                "net_exceeds_gross",
                f"Net amount exceeds gross amount for payout {index}",
                f"{prefix}.amounts",
            )

        components = sum(
            (amount(payout, f) or ZERO for f in NET_COMPONENT_FIELDS), ZERO
        )
        expected_net = gross - components
        if abs(net - expected_net) > policy.tolerance:
            result.warning(
                "amount_calculation_mismatch",
                f"Net amount calculation may be incorrect for payout {index} "
                f"(expected {money(expected_net)}, got {money(net)})",
                f"{prefix}.calculation",
            )

    payee_id = payout.get("payee_id")
    if not is_missing(payee_id) and not isinstance(payee_id, str):
        result.error(
            "invalid_payee_id",
            f"Payee ID must be a string for payout {index}",
            f"{prefix}.payee_id",
        )

    currency = payout.get("currency")
    if not is_missing(currency) and not isinstance(currency, str):
        result.error(
            "invalid_payout_currency",
            f"Currency must be a string for payout {index}",
            f"{prefix}.currency",
        )

    method = payout.get("payment_method")
    if method and method not in policy.payment_methods:
        result.warning(
            "unrecognized_payment_method",
            f"Unrecognized payment method: {method} for payout {index}"
            + did_you_mean(method, policy.payment_methods, policy.suggestion_threshold),
            f"{prefix}.payment_method",
        )

    status = payout.get("status")
    if status and status not in policy.payout_statuses:
        result.error(
            "invalid_payout_status",
            f"Invalid payout status: {status} for payout {index}"
            + did_you_mean(status, policy.payout_statuses, policy.suggestion_threshold),
            f"{prefix}.status",
        )

    if net is not None and ZERO < net < policy.very_small_payout:
        result.warning(
            "very_small_payout",
            f"Very small payout amount ({money(net)}) for payout {index}",
            f"{prefix}.net_amount",
        )

    if net is not None and net > policy.large_payout:
        result.warning(
            "large_payout_amount",
            f"Large payout amount ({money(net)}) for payout {index}",
            f"{prefix}.net_amount",
        )
