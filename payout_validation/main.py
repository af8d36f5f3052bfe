"""Royalty Payout Validation API.

A thin HTTP service around the payout validation engine. Validates payout
batches at creation, before processing, and for compliance, returning the
engine's verdict unchanged.

Run with:
    python3 -m uvicorn payout_validation.main:app --host 0.0.0.0 --port 8000
"""

import json
import logging
from pathlib import Path
from typing import Dict

from fastapi import FastAPI

from payout_validation.models import ValidationPolicy
from payout_validation.routes import payees, policy, validation
from payout_validation.storage.memory import MemoryPayeeDirectory
from payout_validation.validation.engine import PayoutValidator

# Resolve the data/ directory relative to this file so the server works
# regardless of which directory uvicorn is launched from.
DATA_DIR = Path(__file__).parent / "data"

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def load_policy(path: Path = DATA_DIR / "validation_policy.json") -> ValidationPolicy:
    """Load the validation policy from JSON, or fall back to defaults."""
    if not path.exists():
        logger.info("No policy file at %s, using default thresholds", path)
        return ValidationPolicy()
    with open(path, "r") as f:
        return ValidationPolicy(**json.load(f))


app = FastAPI(
    title="Royalty Payout Validation API",
    description=(
        "Validation and reconciliation of royalty payout batches. "
        "Recomputes totals, enforces thresholds, scores risk and "
        "evaluates tax and AML compliance before funds are released."
    ),
    version="1.0.0",
)


@app.on_event("startup")
async def startup() -> None:
    """Load the policy and initialize the validator and payee directory."""
    validation_policy = load_policy()

    # Attach to app state for dependency injection in routes
    app.state.validator = PayoutValidator(policy=validation_policy)
    app.state.directory = MemoryPayeeDirectory()
    logger.info(
        "Payout validator ready (%d payment method bands)",
        len(validation_policy.method_bands),
    )


# Mount all API routers
app.include_router(validation.router)
app.include_router(policy.router)
app.include_router(payees.router)


@app.get("/health")
async def health_check() -> Dict[str, str]:
    """Simple health check endpoint."""
    return {"status": "healthy"}
