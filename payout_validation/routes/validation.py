"""Validation endpoints, one per payout lifecycle stage."""

from fastapi import APIRouter, Request

from payout_validation.models import (
    ComplianceRequest,
    CreationRequest,
    ProcessingRequest,
    ValidationResult,
)
from payout_validation.storage.memory import MemoryPayeeDirectory, check_payee_existence
from payout_validation.validation.engine import PayoutValidator
from payout_validation.validation.scorer import merge_findings

router = APIRouter(prefix="/api/validation")


def _get_validator(request: Request) -> PayoutValidator:
    """Retrieve the payout validator from application state."""
    return request.app.state.validator


def _get_directory(request: Request) -> MemoryPayeeDirectory:
    """Retrieve the payee directory from application state."""
    return request.app.state.directory


@router.post("/creation", response_model=ValidationResult)
async def validate_creation(
    body: CreationRequest,
    request: Request,
) -> ValidationResult:
    """Validate a payout batch before it is created.

    In strict mode the payee ids are also looked up in the payee
    directory; unknown payees are reported as blocking errors.
    """
    validator = _get_validator(request)
    result = validator.validate_for_creation(body.batch, body.options)

    if body.options.strict:
        unknown = check_payee_existence(body.batch, _get_directory(request))
        result = merge_findings(result, unknown)

    return result


@router.post("/processing", response_model=ValidationResult)
async def validate_processing(
    body: ProcessingRequest,
    request: Request,
) -> ValidationResult:
    """Validate that a payout batch is ready for disbursement."""
    return _get_validator(request).validate_for_processing(body.batch, body.options)


@router.post("/compliance", response_model=ValidationResult)
async def validate_compliance(
    body: ComplianceRequest,
    request: Request,
) -> ValidationResult:
    """Validate a payout batch against tax and regulatory requirements."""
    return _get_validator(request).validate_for_compliance(
        body.batch, body.jurisdictions, body.options
    )
