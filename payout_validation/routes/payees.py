"""Payee directory endpoints."""

from typing import List

from fastapi import APIRouter, Request

from payout_validation.models import PayeeRegistration
from payout_validation.storage.memory import MemoryPayeeDirectory

router = APIRouter(prefix="/api")


def _get_directory(request: Request) -> MemoryPayeeDirectory:
    """Retrieve the payee directory from application state."""
    return request.app.state.directory


@router.get("/payees", response_model=List[str])
async def list_payees(request: Request) -> List[str]:
    """List all registered payee ids."""
    return _get_directory(request).get_all()


@router.post("/payees", response_model=List[str])
async def register_payees(
    registration: PayeeRegistration,
    request: Request,
) -> List[str]:
    """Register payee ids so strict creation validation can find them."""
    directory = _get_directory(request)
    for payee_id in registration.payee_ids:
        directory.add(payee_id)
    return directory.get_all()
