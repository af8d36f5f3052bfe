"""Policy endpoints for reading and replacing validation thresholds."""

from fastapi import APIRouter, Request

from payout_validation.models import ValidationPolicy
from payout_validation.validation.engine import PayoutValidator

router = APIRouter(prefix="/api")


@router.get("/policy", response_model=ValidationPolicy)
async def get_policy(request: Request) -> ValidationPolicy:
    """Return the current validation policy."""
    return request.app.state.validator.policy


@router.put("/policy", response_model=ValidationPolicy)
async def update_policy(
    new_policy: ValidationPolicy,
    request: Request,
) -> ValidationPolicy:
    """Replace the validation policy.

    A new validator is swapped in rather than mutating the current one, so
    requests already running keep the policy they started with.
    """
    current = request.app.state.validator
    request.app.state.validator = PayoutValidator(policy=new_policy, clock=current.clock)
    return new_policy
