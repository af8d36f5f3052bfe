"""Business rules applied when a batch is created.

Per-line-item minimums and limits, batch-level limits, and the audit trail
an approved batch must carry.
"""

from payout_validation.models import PayoutBatch, RuleResult, ValidationPolicy
from payout_validation.validation.fields import ZERO, amount, line_items, money
from payout_validation.validation.rules.compliance import check_audit_fields


def check_minimum_thresholds(batch: PayoutBatch, policy: ValidationPolicy) -> RuleResult:
    """Line items below their minimum, honoring a per-item ``minimum_threshold``."""
    result = RuleResult()

    for index, payout in line_items(batch):
        net = amount(payout, "net_amount")
        if net is None or net <= ZERO:
            continue
        minimum = amount(payout, "minimum_threshold") or policy.default_payout_minimum
        if net < minimum:
            result.warning(
                "below_minimum_threshold",
                f"Payout {index} amount ({money(net)}) below minimum "
                f"threshold ({money(minimum)})",
                f"payouts[{index}].net_amount",
            )

    total_net = amount(batch, "total_net_amount")
    if total_net is not None and total_net < policy.very_small_payout:
        result.warning(
            "very_small_total_payout",
            "Total payout amount is very small",
            "total_net_amount",
        )

    return result


def check_maximum_limits(batch: PayoutBatch, policy: ValidationPolicy) -> RuleResult:
    result = RuleResult()

    for index, payout in line_items(batch):
        net = amount(payout, "net_amount")
        if net is not None and net > policy.individual_limit:
            result.warning(
                "high_individual_payout",
                f"Payout {index} amount ({money(net)}) exceeds individual "
                f"limit ({money(policy.individual_limit)})",
                f"payouts[{index}].net_amount",
            )

    total_net = amount(batch, "total_net_amount")
    if total_net is not None and total_net > policy.daily_limit:
        result.warning(
            "high_total_payout",
            f"Total payout amount ({money(total_net)}) exceeds daily limit "
            f"({money(policy.daily_limit)})",
            "total_net_amount",
        )

    return result


def check_audit_trail(batch: PayoutBatch, policy: ValidationPolicy) -> RuleResult:
    """Audit fields, calculation documentation and approval metadata."""
    result = RuleResult()

    check_audit_fields(batch, policy, result)

    if not batch.get("calculation_notes") and not batch.get("calculation_details"):
        result.warning(
            "missing_calculation_documentation",
            "Calculation documentation is recommended for audit purposes",
            "calculation_documentation",
        )

    if batch.get("status") == "approved":
        if not batch.get("approved_by"):
            result.error(
                "missing_approval_info",
                "Approved payouts must have approver information",
                "approved_by",
            )
        if not batch.get("approval_date"):
            result.warning(
                "missing_approval_date",
                "Approval date is missing",
                "approval_date",
            )

    return result
