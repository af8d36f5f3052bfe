"""Payment method rules.

Line items are grouped by payment method. Each method has fields that must
be present before money can move (a missing one blocks the batch) plus a
few group-level advisories. A ``payment_details`` object on the line item
stands in for any of the method-specific fields.
"""

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from payout_validation.models import PayoutBatch, RuleResult, ValidationPolicy
from payout_validation.validation.fields import ZERO, amount_or_zero, line_items, text

UNKNOWN_METHOD = "unknown"

Group = list[tuple[int, Mapping[str, Any]]]


def group_by_method(batch: PayoutBatch) -> dict[str, Group]:
    """Group (index, line item) pairs by payment method, preserving order."""
    groups: dict[str, Group] = {}
    for index, payout in line_items(batch):
        method = text(payout, "payment_method") or UNKNOWN_METHOD
        groups.setdefault(method, []).append((index, payout))
    return groups


def _has_any(payout: Mapping[str, Any], *fields: str) -> bool:
    return any(payout.get(f) for f in fields)


def _check_bank_transfers(
    group: Group, total: Decimal, policy: ValidationPolicy, result: RuleResult
) -> None:
    for index, payout in group:
        if not _has_any(payout, "bank_account_info", "payment_details"):
            result.error(
                "missing_bank_details",
                f"Bank account information required for payout {index}",
                f"payouts[{index}].bank_account_info",
            )

    if total > policy.high_value_bank_transfer:
        result.info(
            "high_value_bank_transfer",
            "High value bank transfers may require additional verification",
            "bank_transfer",
        )


def _check_paypal(
    group: Group, total: Decimal, policy: ValidationPolicy, result: RuleResult
) -> None:
    if total > policy.paypal_daily_limit:
        result.warning(
            "paypal_daily_limit",
            "PayPal payouts may exceed daily limit",
            "paypal_limit",
        )

    for index, payout in group:
        if not _has_any(payout, "paypal_email", "payment_details"):
            result.error(
                "missing_paypal_email",
                f"PayPal email required for payout {index}",
                f"payouts[{index}].paypal_email",
            )


def _check_checks(
    group: Group, total: Decimal, policy: ValidationPolicy, result: RuleResult
) -> None:
    for index, payout in group:
        if not _has_any(payout, "mailing_address", "payment_details"):
            result.error(
                "missing_mailing_address",
                f"Mailing address required for check payout {index}",
                f"payouts[{index}].mailing_address",
            )

    result.info(
        "check_processing_time",
        "Check payments typically take 7-14 business days",
        "check_timing",
    )


def _check_crypto(
    group: Group, total: Decimal, policy: ValidationPolicy, result: RuleResult
) -> None:
    for index, payout in group:
        if not _has_any(payout, "wallet_address", "payment_details"):
            result.error(
                "missing_wallet_address",
                f"Crypto wallet address required for payout {index}",
                f"payouts[{index}].wallet_address",
            )
        if not _has_any(payout, "crypto_network", "blockchain_network"):
            result.error(
                "missing_crypto_network",
                f"Crypto network required for payout {index}",
                f"payouts[{index}].crypto_network",
            )

    result.info(
        "crypto_volatility_notice",
        "Crypto payouts subject to exchange rate volatility",
        "crypto_volatility",
    )


METHOD_CHECKS = {
    "bank_transfer": _check_bank_transfers,
    "wire_transfer": _check_bank_transfers,
    "paypal": _check_paypal,
    "check": _check_checks,
    "crypto": _check_crypto,
}


def check_payment_methods(batch: PayoutBatch, policy: ValidationPolicy) -> RuleResult:
    """Validate method-specific requirements and the method distribution."""
    result = RuleResult()
    groups = group_by_method(batch)
    if not groups:
        return result

    for method, group in groups.items():
        method_check = METHOD_CHECKS.get(method)
        if method_check is None:
            continue
        total = sum((amount_or_zero(p, "net_amount") for _, p in group), ZERO)
        method_check(group, total, policy, result)

    total_payouts = sum(len(group) for group in groups.values())
    for method, group in groups.items():
        percentage = Decimal(len(group) * 100) / Decimal(total_payouts)
        if percentage > policy.dominant_method_percent:
            result.info(
                "dominant_payment_method",
                f"{method} represents {percentage:.1f}% of payouts",
                "payment_method_distribution",
            )

    for method in policy.unusual_payment_methods:
        if groups.get(method):
            result.info(
                "unusual_payment_method",
                f"{len(groups[method])} payouts using {method}",
                "unusual_methods",
            )

    return result
