"""Reconciliation rules.

Recomputes batch totals from the line items and compares them against the
declared totals. Gross and net mismatches beyond the tolerance block the
batch; the other totals are advisory. Also covers decimal precision,
rate ranges and currency conversion, which all feed the same totals.

All arithmetic is done in Decimal so that a difference of exactly one
cent compares equal to the 0.01 tolerance.
"""

from collections.abc import Mapping
from decimal import Decimal

from payout_validation.models import PayoutBatch, RuleResult, ValidationPolicy
from payout_validation.validation.fields import (
    ZERO,
    amount,
    amount_or_zero,
    decimal_places,
    is_missing,
    is_number,
    item_currency,
    line_items,
    text,
    to_decimal,
)
from payout_validation.validation.rules.structure import PAYOUT_AMOUNT_FIELDS

# (declared batch field, line-item field, finding code, blocking)
TOTALS = [
    ("total_gross_amount", "gross_amount", "gross_total_mismatch", True),
    ("total_net_amount", "net_amount", "net_total_mismatch", True),
    ("total_deductions", "deductions", "deductions_total_mismatch", False),
    ("total_fees", "fees", "fees_total_mismatch", False),
    ("total_taxes", "taxes", "taxes_total_mismatch", False),
]

RATE_FIELDS = [
    ("fee_rate", "invalid_fee_rate", "Fee rate"),
    ("tax_rate", "invalid_tax_rate", "Tax rate"),
    ("withholding_rate", "invalid_withholding_rate", "Withholding rate"),
]

BATCH_MONEY_FIELDS = [declared for declared, _, _, _ in TOTALS]


def calculate_totals(batch: PayoutBatch) -> dict[str, Decimal]:
    """Sum the line-item amounts behind each declared batch total.

    Keyed by the declared field name, e.g. ``total_net_amount``.
    """
    totals = {declared: ZERO for declared, _, _, _ in TOTALS}
    for _, payout in line_items(batch):
        for declared, item_field, _, _ in TOTALS:
            totals[declared] += amount_or_zero(payout, item_field)
    return totals


def check_total_reconciliation(batch: PayoutBatch, policy: ValidationPolicy) -> RuleResult:
    """Compare declared batch totals against totals recomputed from line items."""
    result = RuleResult()
    if not isinstance(batch.get("payouts"), list):
        return result

    calculated = calculate_totals(batch)

    for declared_field, _, code, blocking in TOTALS:
        declared = amount(batch, declared_field)
        if declared is None:
            continue
        difference = abs(declared - calculated[declared_field])
        if difference <= policy.tolerance:
            continue
        label = declared_field.replace("total_", "").replace("_amount", "")
        record = result.error if blocking else result.warning
        record(
            code,
            f"Declared {label} total ({declared}) doesn't match "
            f"calculated total ({calculated[declared_field]})",
            declared_field,
        )

    total_gross = amount(batch, "total_gross_amount")
    total_net = amount(batch, "total_net_amount")
    if total_gross is not None and total_net is not None and total_net > total_gross:
        result.error(
            "net_exceeds_gross_total",
            "Total net amount exceeds total gross amount",
            "totals",
        )

    return result


def check_calculation_precision(batch: PayoutBatch, policy: ValidationPolicy) -> RuleResult:
    """Flag money values with more than 2 decimals and rates with more than 6."""
    result = RuleResult()

    def check(value, field: str, max_decimals: int) -> None:
        places = decimal_places(value)
        if places > max_decimals:
            result.warning(
                "excessive_precision",
                f"{field} has excessive decimal precision ({places} places)",
                field,
            )

    for field in BATCH_MONEY_FIELDS:
        check(batch.get(field), field, policy.money_decimals)

    for index, payout in line_items(batch):
        for field in PAYOUT_AMOUNT_FIELDS:
            check(payout.get(field), f"payouts[{index}].{field}", policy.money_decimals)

    check(batch.get("exchange_rate"), "exchange_rate", policy.rate_decimals)
    rates = batch.get("exchange_rates")
    if isinstance(rates, Mapping):
        for currency, rate in rates.items():
            check(rate, f"exchange_rates.{currency}", policy.rate_decimals)

    return result


def check_rates(batch: PayoutBatch, policy: ValidationPolicy) -> RuleResult:
    """Rates and percentages must lie in [0, 1]; exchange rates must be sane."""
    result = RuleResult()

    for field, code, label in RATE_FIELDS:
        rate = amount(batch, field)
        if rate is None:
            continue
        if rate < ZERO or rate > Decimal("1"):
            result.error(code, f"{label} must be between 0 and 1", field)

    fee_rate = amount(batch, "fee_rate")
    if fee_rate is not None and fee_rate > policy.high_fee_rate:
        result.warning(
            "high_fee_rate",
            f"Fee rate exceeds {policy.high_fee_rate:.0%}",
            "fee_rate",
        )

    exchange_rate = amount(batch, "exchange_rate")
    if exchange_rate is not None:
        if exchange_rate <= ZERO:
            result.error("invalid_exchange_rate", "Exchange rate must be positive", "exchange_rate")
        _check_rate_bounds(exchange_rate, "exchange_rate", policy, result)

    return result


def check_currency_conversion(batch: PayoutBatch, policy: ValidationPolicy) -> RuleResult:
    """Foreign-currency line items need an exchange rate to reconcile."""
    result = RuleResult()
    base_currency = text(batch, "currency")
    rates = batch.get("exchange_rates")

    if isinstance(rates, Mapping):
        for currency, rate in rates.items():
            value = to_decimal(rate)
            if value is None or value <= ZERO:
                result.error(
                    "invalid_currency_rate",
                    f"Invalid exchange rate for {currency}",
                    f"exchange_rates.{currency}",
                )
            else:
                _check_rate_bounds(value, f"exchange_rates.{currency}", policy, result)
    elif not is_missing(rates):
        result.error(
            "invalid_currency_rate",
            "exchange_rates must map currency codes to rates",
            "exchange_rates",
        )

    if base_currency is None or not isinstance(batch.get("payouts"), list):
        return result

    foreign = [
        item_currency(payout, base_currency)
        for _, payout in line_items(batch)
        if item_currency(payout, base_currency) != base_currency
    ]
    if not foreign:
        return result

    if not is_number(batch.get("exchange_rate")):
        known = set(rates) if isinstance(rates, Mapping) else set()
        missing = sorted({c for c in foreign if c not in known})
        if missing:
            result.error(
                "missing_exchange_rate",
                f"Exchange rate required for currency conversion "
                f"({', '.join(missing)} to {base_currency})",
                "exchange_rate",
            )

    result.info(
        "currency_conversion_notice",
        f"{len(foreign)} payouts require currency conversion",
        "currency_conversion",
    )
    return result


def _check_rate_bounds(
    rate: Decimal,
    field: str,
    policy: ValidationPolicy,
    result: RuleResult,
) -> None:
    if rate > policy.max_exchange_rate or rate < policy.min_exchange_rate:
        result.warning(
            "unusual_exchange_rate",
            f"Exchange rate {rate} seems unusual",
            field,
        )


def reconcile(batch: PayoutBatch, policy: ValidationPolicy) -> list[RuleResult]:
    """Run every reconciliation check in order."""
    return [
        check_total_reconciliation(batch, policy),
        check_calculation_precision(batch, policy),
        check_rates(batch, policy),
        check_currency_conversion(batch, policy),
    ]
