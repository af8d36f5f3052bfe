"""Threshold and limit rules.

Three tiers: the batch total against global bounds, each payee's aggregate
against the per-payee minimum, and each line item against its payment
method's [min, max] band. Only the global minimum blocks; the rest are
warnings because the business may override them.
"""

from payout_validation.models import (
    PayeeAggregate,
    PayoutBatch,
    RuleResult,
    ValidationPolicy,
)
from payout_validation.validation.fields import ZERO, amount, line_items, money, text


def check_global_thresholds(batch: PayoutBatch, policy: ValidationPolicy) -> RuleResult:
    """Compare the declared net total against the global bounds.

    A batch may carry ``minimum_payout_amount`` / ``maximum_payout_amount``
    to override the policy for itself.
    """
    result = RuleResult()
    total_net = amount(batch, "total_net_amount")
    if total_net is None:
        return result

    minimum = amount(batch, "minimum_payout_amount")
    if minimum is None:
        minimum = policy.global_minimum
    maximum = amount(batch, "maximum_payout_amount")
    if maximum is None:
        maximum = policy.global_maximum

    if total_net < minimum:
        result.error(
            "below_global_minimum",
            f"Total payout below global minimum ({money(minimum)})",
            "total_net_amount",
        )
    if total_net > maximum:
        result.warning(
            "above_global_maximum",
            f"Total payout above global maximum ({money(maximum)})",
            "total_net_amount",
        )
    return result


def check_payee_thresholds(
    aggregates: dict[str, PayeeAggregate],
    policy: ValidationPolicy,
) -> RuleResult:
    """Warn on payees whose aggregate net total is positive but tiny."""
    result = RuleResult()
    for payee_id, aggregate in aggregates.items():
        if ZERO < aggregate.total_net < policy.payee_minimum:
            result.warning(
                "below_payee_minimum",
                f"Payee {payee_id} total ({money(aggregate.total_net)}) "
                f"below minimum ({money(policy.payee_minimum)})",
                "payee_threshold",
            )
    return result


def check_method_thresholds(batch: PayoutBatch, policy: ValidationPolicy) -> RuleResult:
    """Check each line item's net amount against its payment method band."""
    result = RuleResult()

    for index, payout in line_items(batch):
        method = text(payout, "payment_method")
        net = amount(payout, "net_amount")
        band = policy.method_bands.get(method) if method else None
        if band is None or not net:
            continue

        if net < band.min:
            result.warning(
                "below_method_minimum",
                f"Payout {index} amount ({money(net)}) below {method} "
                f"minimum ({money(band.min)})",
                f"payouts[{index}].net_amount",
            )
        if net > band.max:
            result.warning(
                "above_method_maximum",
                f"Payout {index} amount ({money(net)}) above {method} "
                f"maximum ({money(band.max)})",
                f"payouts[{index}].net_amount",
            )

    return result
