"""Payee aggregation rules.

Groups line items by payee so that per-payee totals are computed once per
validation. The same aggregates feed the threshold and compliance rules.
"""

from payout_validation.models import (
    PayeeAggregate,
    PayoutBatch,
    RuleResult,
    ValidationPolicy,
)
from payout_validation.validation.fields import (
    ZERO,
    amount_or_zero,
    line_items,
    money,
    text,
)


def aggregate_payees(batch: PayoutBatch) -> dict[str, PayeeAggregate]:
    """Group line items by payee id and total their amounts.

    Items without a payee id are left out; the structural rule reports them.
    """
    aggregates: dict[str, PayeeAggregate] = {}

    for _, payout in line_items(batch):
        payee_id = payout.get("payee_id")
        if not payee_id:
            continue
        key = payee_id if isinstance(payee_id, str) else str(payee_id)

        aggregate = aggregates.setdefault(key, PayeeAggregate())
        aggregate.count += 1
        aggregate.total_gross += amount_or_zero(payout, "gross_amount")
        aggregate.total_net += amount_or_zero(payout, "net_amount")

        currency = text(payout, "currency")
        if currency:
            aggregate.currencies.add(currency)
        method = text(payout, "payment_method")
        if method:
            aggregate.payment_methods.add(method)

    return aggregates


def check_payee_id_format(batch: PayoutBatch) -> RuleResult:
    """Local format check on payee ids.

    This is not an existence lookup; callers that own a payee directory
    check existence themselves (see ``payout_validation.storage.memory``).
    """
    result = RuleResult()
    seen: set[str] = set()

    for _, payout in line_items(batch):
        payee_id = payout.get("payee_id")
        key = repr(payee_id)
        if key in seen:
            continue
        seen.add(key)
        if not isinstance(payee_id, str) or not payee_id.strip():
            result.error(
                "invalid_payee_id_format",
                "Payee ID must be a non-empty string",
                "payee_id",
            )

    return result


def check_payees(
    aggregates: dict[str, PayeeAggregate],
    policy: ValidationPolicy,
) -> RuleResult:
    """Flag payees whose grouped line items look inconsistent."""
    result = RuleResult()

    for payee_id, aggregate in aggregates.items():
        if len(aggregate.payment_methods) > 1:
            result.warning(
                "inconsistent_payment_methods",
                f"Payee {payee_id} has multiple payment methods: "
                f"{', '.join(sorted(aggregate.payment_methods))}",
                "payment_methods",
            )

        if len(aggregate.currencies) > 1:
            result.warning(
                "multiple_currencies_per_payee",
                f"Payee {payee_id} has payouts in multiple currencies: "
                f"{', '.join(sorted(aggregate.currencies))}",
                "currencies",
            )

        if aggregate.count > policy.high_transaction_count:
            result.warning(
                "high_transaction_count",
                f"Payee {payee_id} has {aggregate.count} transactions",
                "transaction_count",
            )

        if ZERO < aggregate.total_net < policy.payee_minimum:
            result.warning(
                "very_small_total_payout",
                f"Payee {payee_id} has very small total payout "
                f"({money(aggregate.total_net)})",
                "total_amount",
            )

    return result
