"""Risk assessment rules.

Turns the composite risk score into a warning when it crosses the high-risk
line, and looks for amount patterns that often indicate manufactured
payouts: mostly round hundreds, or every payee receiving the same amount.
"""

from decimal import Decimal

from payout_validation.models import PayoutBatch, RuleResult, ValidationPolicy
from payout_validation.validation.fields import amount, is_multiple_of, line_items, money
from payout_validation.validation.scorer import calculate_risk_score

HUNDRED = Decimal("100")


def check_risk_assessment(batch: PayoutBatch, policy: ValidationPolicy) -> RuleResult:
    result = RuleResult()

    risk_score = calculate_risk_score(batch, policy)
    if risk_score > policy.high_risk_score:
        result.warning(
            "high_risk_transaction",
            f"Transaction flagged as high risk (score {risk_score})",
            "risk_assessment",
        )

    total_net = amount(batch, "total_net_amount")
    if (
        batch.get("processing_frequency") == "daily"
        and total_net is not None
        and total_net > policy.high_velocity_amount
    ):
        result.info(
            "high_velocity_payout",
            f"High daily payout volume detected ({money(total_net)})",
            "velocity",
        )

    return result


def check_payout_patterns(batch: PayoutBatch, policy: ValidationPolicy) -> RuleResult:
    """Detect round-amount and equal-amount patterns across line items."""
    result = RuleResult()
    items = line_items(batch)
    if not items:
        return result

    round_amounts = [
        net
        for net in (amount(p, "net_amount") for _, p in items)
        if net and is_multiple_of(net, HUNDRED) and net >= policy.round_pattern_minimum
    ]
    if len(round_amounts) > len(items) * policy.round_pattern_ratio:
        result.info(
            "round_amount_pattern",
            "Unusual pattern of round amounts detected",
            "patterns",
        )

    amounts = [net for net in (amount(p, "net_amount") for _, p in items) if net]
    if len(set(amounts)) == 1 and len(amounts) > policy.equal_pattern_min_count:
        result.info(
            "equal_amount_pattern",
            f"All payouts have identical amounts ({money(amounts[0])})",
            "patterns",
        )

    return result
