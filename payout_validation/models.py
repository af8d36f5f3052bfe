"""Pydantic models for the payout batch validation engine."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal, TypedDict

from pydantic import BaseModel, Field, model_validator


Severity = Literal["error", "warning", "info"]
ValidationMode = Literal["creation", "processing", "compliance"]


class PayoutLineItem(TypedDict, total=False):
    """One payee's entry within a batch.

    Batches arrive as plain decoded JSON, so these are documentation types:
    the structural validator checks every field itself rather than letting
    a model coerce bad input away.
    """
    payee_id: str
    gross_amount: Decimal
    net_amount: Decimal
    deductions: Decimal
    fees: Decimal
    taxes: Decimal
    withholding_tax: Decimal
    backup_withholding: Decimal
    payment_method: str
    payment_details: dict[str, Any]
    currency: str
    status: str
    minimum_threshold: Decimal
    beneficiary_country: str


class PayoutBatch(TypedDict, total=False):
    """A batch of payouts submitted for validation."""
    period_start: str
    period_end: str
    currency: str
    status: str
    total_gross_amount: Decimal
    total_net_amount: Decimal
    total_deductions: Decimal
    total_fees: Decimal
    total_taxes: Decimal
    exchange_rate: Decimal
    exchange_rates: dict[str, Decimal]
    payouts: list[PayoutLineItem]
    created_by: str
    approved_by: str
    approval_date: str
    calculation_notes: str


class ValidationIssue(BaseModel):
    """A single finding produced by a validation rule."""
    code: str
    message: str
    field: str
    severity: Severity


class RuleResult(BaseModel):
    """Output of an individual validation rule check."""
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)

    def error(self, code: str, message: str, field: str) -> None:
        self.errors.append(
            ValidationIssue(code=code, message=message, field=field, severity="error")
        )

    def warning(self, code: str, message: str, field: str) -> None:
        self.warnings.append(
            ValidationIssue(code=code, message=message, field=field, severity="warning")
        )

    def info(self, code: str, message: str, field: str) -> None:
        """Record an informational notice (lower priority than a warning)."""
        self.warnings.append(
            ValidationIssue(code=code, message=message, field=field, severity="info")
        )

    @property
    def codes(self) -> list[str]:
        return [i.code for i in self.errors] + [i.code for i in self.warnings]


class PayeeAggregate(BaseModel):
    """Per-payee totals computed once per validation and shared by rules."""
    count: int = 0
    total_gross: Decimal = Decimal("0")
    total_net: Decimal = Decimal("0")
    currencies: set[str] = Field(default_factory=set)
    payment_methods: set[str] = Field(default_factory=set)


class ProcessingReadiness(BaseModel):
    ready: bool
    issues: list[str]


class BatchAnalysis(BaseModel):
    """Derived metrics attached to every validation result."""
    total_payouts: int = 0
    total_amount: Decimal = Decimal("0")
    currency: str | None = None
    risk_score: int = 0  # 0-100 composite risk score
    processing_readiness: ProcessingReadiness = Field(
        default_factory=lambda: ProcessingReadiness(ready=False, issues=[])
    )
    compliance_score: int = 100  # 0-100 documentation/regulatory completeness


class ValidationResult(BaseModel):
    """Result of validating one payout batch in one mode."""
    mode: ValidationMode
    is_valid: bool
    has_warnings: bool
    errors: list[ValidationIssue]
    warnings: list[ValidationIssue]
    error_count: int
    warning_count: int
    info_count: int
    summary: BatchAnalysis
    validated_at: datetime


class CreationOptions(BaseModel):
    validate_payees: bool = True
    validate_calculations: bool = True
    strict: bool = False


class ProcessingOptions(BaseModel):
    validate_payment_methods: bool = True
    validate_thresholds: bool = True


class ComplianceOptions(BaseModel):
    validate_tax_compliance: bool = True
    validate_regulatory_compliance: bool = True


class MethodBand(BaseModel):
    """Inclusive [min, max] net amount band for one payment method."""
    min: Decimal
    max: Decimal

    @model_validator(mode="after")
    def _check_order(self) -> "MethodBand":
        if self.min > self.max:
            raise ValueError(f"band minimum {self.min} exceeds maximum {self.max}")
        return self


def _default_method_bands() -> dict[str, MethodBand]:
    return {
        "bank_transfer": MethodBand(min=Decimal("1"), max=Decimal("100000")),
        "wire_transfer": MethodBand(min=Decimal("10"), max=Decimal("500000")),
        "paypal": MethodBand(min=Decimal("1"), max=Decimal("10000")),
        "check": MethodBand(min=Decimal("25"), max=Decimal("25000")),
        "crypto": MethodBand(min=Decimal("5"), max=Decimal("50000")),
    }


class ValidationPolicy(BaseModel):
    """Tunable thresholds for all payout validation rules."""

    # Recognized enumerations
    recognized_currencies: list[str] = [
        "USD", "EUR", "GBP", "CAD", "AUD", "JPY", "CHF", "SEK", "NOK", "DKK",
        "PLN", "CZK", "HUF", "BGN", "RON", "HRK", "RUB", "CNY", "INR", "BRL",
    ]
    batch_statuses: list[str] = [
        "draft", "calculated", "approved", "processing", "sent",
        "completed", "failed", "cancelled", "disputed",
    ]
    payout_statuses: list[str] = [
        "pending", "approved", "rejected", "processing", "sent",
        "completed", "failed", "disputed", "cancelled",
    ]
    payment_methods: list[str] = [
        "bank_transfer", "wire_transfer", "ach", "paypal", "stripe",
        "check", "crypto", "digital_wallet",
    ]
    processable_statuses: list[str] = ["calculated", "approved"]
    suggestion_threshold: int = 80  # fuzzy score needed for "did you mean"

    # Structure
    max_period_days: int = 366
    min_period_days: int = 1
    very_small_payout: Decimal = Decimal("1")
    large_payout: Decimal = Decimal("100000")

    # Reconciliation
    tolerance: Decimal = Decimal("0.01")
    money_decimals: int = 2
    rate_decimals: int = 6
    high_fee_rate: Decimal = Decimal("0.5")
    min_exchange_rate: Decimal = Decimal("0.001")
    max_exchange_rate: Decimal = Decimal("1000")

    # Payees
    high_transaction_count: int = 50
    payee_minimum: Decimal = Decimal("5")

    # Thresholds and limits
    global_minimum: Decimal = Decimal("10")
    global_maximum: Decimal = Decimal("50000")
    default_payout_minimum: Decimal = Decimal("10")
    individual_limit: Decimal = Decimal("10000")
    daily_limit: Decimal = Decimal("50000")
    method_bands: dict[str, MethodBand] = Field(default_factory=_default_method_bands)
    high_value_bank_transfer: Decimal = Decimal("25000")
    paypal_daily_limit: Decimal = Decimal("10000")
    dominant_method_percent: Decimal = Decimal("80")
    unusual_payment_methods: list[str] = ["crypto", "check"]
    large_batch_size: int = 1000
    same_day_large_amount: Decimal = Decimal("10000")
    method_diversity: int = 3
    rapid_succession_hours: Decimal = Decimal("1")

    # Risk
    risk_large_amount: Decimal = Decimal("25000")
    risk_large_amount_weight: int = 20
    risk_high_volume: int = 100
    risk_high_volume_weight: int = 15
    risk_international_weight: int = 10
    risk_rush_weight: int = 15
    risk_crypto_weight: int = 25
    high_risk_score: int = 75
    round_pattern_ratio: Decimal = Decimal("0.8")
    round_pattern_minimum: Decimal = Decimal("500")
    equal_pattern_min_count: int = 10
    high_velocity_amount: Decimal = Decimal("100000")

    # Compliance
    ctr_threshold: Decimal = Decimal("10000")
    round_notice_multiple: Decimal = Decimal("1000")
    round_notice_minimum: Decimal = Decimal("5000")
    form_1099_threshold: Decimal = Decimal("600")
    backup_withholding_rate: Decimal = Decimal("0.24")
    eu_jurisdictions: list[str] = ["DE", "FR", "GB", "IT", "ES"]
    aml_large_amount: Decimal = Decimal("50000")
    aml_high_volume: int = 200
    high_risk_countries: list[str] = ["AF", "IR", "KP", "SY"]
    required_documents: list[str] = ["calculation_report", "approval_record"]
    audit_fields: list[str] = ["created_by", "approved_by", "calculation_method"]
    compliance_risk_threshold: int = 50


class CreationRequest(BaseModel):
    """A batch to validate before creation."""
    batch: dict[str, Any]
    options: CreationOptions = Field(default_factory=CreationOptions)


class ProcessingRequest(BaseModel):
    """A batch to validate before processing."""
    batch: dict[str, Any]
    options: ProcessingOptions = Field(default_factory=ProcessingOptions)


class ComplianceRequest(BaseModel):
    """A batch to validate for compliance in the given jurisdictions."""
    batch: dict[str, Any]
    jurisdictions: list[str] = Field(default_factory=list)
    options: ComplianceOptions = Field(default_factory=ComplianceOptions)


class PayeeRegistration(BaseModel):
    """Payee ids to add to the payee directory."""
    payee_ids: list[str]
