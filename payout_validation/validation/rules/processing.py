"""Processing readiness rules.

Gates that decide whether a batch may move on to disbursement, plus the
timing and batch-shape advisories that come with scheduling it.
"""

from datetime import datetime

from payout_validation.models import PayoutBatch, RuleResult, ValidationPolicy
from payout_validation.validation.fields import (
    amount,
    line_items,
    money,
    parse_datetime,
    payout_count,
    text,
)

SATURDAY = 5
SUNDAY = 6


def check_processing_readiness(
    batch: PayoutBatch,
    policy: ValidationPolicy,
    now: datetime,
) -> RuleResult:
    """Status and approval gates, then timing and batch shape.

    ``now`` is a naive UTC datetime supplied by the engine's clock.
    """
    result = RuleResult()

    status = batch.get("status")
    if status not in policy.processable_statuses:
        result.error(
            "invalid_status_for_processing",
            f"Status {status} not valid for processing",
            "status",
        )

    if batch.get("requires_approval") and not batch.get("approved_by"):
        result.error(
            "missing_required_approval",
            "Payout requires approval before processing",
            "approval",
        )

    scheduled = parse_datetime(batch.get("scheduled_processing_date"))
    if scheduled is not None:
        if scheduled.date() < now.date():
            result.warning(
                "past_processing_date",
                "Scheduled processing date is in the past",
                "scheduled_processing_date",
            )
        _check_timing(batch, scheduled, now, policy, result)

    _check_batch_shape(batch, policy, result)
    return result


def _check_timing(
    batch: PayoutBatch,
    scheduled: datetime,
    now: datetime,
    policy: ValidationPolicy,
    result: RuleResult,
) -> None:
    if scheduled.weekday() in (SATURDAY, SUNDAY):
        result.warning(
            "weekend_processing",
            "Processing scheduled for weekend may be delayed",
            "scheduled_processing_date",
        )

    total_net = amount(batch, "total_net_amount")
    if (
        scheduled.date() == now.date()
        and total_net is not None
        and total_net > policy.same_day_large_amount
    ):
        result.warning(
            "same_day_large_processing",
            f"Large same-day processing ({money(total_net)}) may require "
            f"additional verification",
            "processing_timing",
        )


def _check_batch_shape(
    batch: PayoutBatch,
    policy: ValidationPolicy,
    result: RuleResult,
) -> None:
    batch_size = payout_count(batch)
    if batch_size > policy.large_batch_size:
        result.warning(
            "large_batch_size",
            f"Large batch size ({batch_size}) may affect processing time",
            "batch_size",
        )

    items = [payout for _, payout in line_items(batch)]

    currencies = {c for c in (text(p, "currency") for p in items) if c}
    if len(currencies) > 1:
        result.info(
            "mixed_currency_batch",
            f"Batch contains {len(currencies)} different currencies",
            "currency_mix",
        )

    methods = {m for m in (text(p, "payment_method") for p in items) if m}
    if len(methods) > policy.method_diversity:
        result.info(
            "mixed_method_batch",
            f"Batch contains {len(methods)} different payment methods",
            "method_mix",
        )
