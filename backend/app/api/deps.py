"""FastAPI dependency injection: the persistence adapter and error mapping."""
from fastapi import HTTPException

from app.db import AsyncSessionLocal
from app.services.cost_store import CostStore
from app.services.errors import InvalidAllocationScope, InvalidAppliedCount, NotFound

DOMAIN_ERRORS = (NotFound, InvalidAllocationScope, InvalidAppliedCount)


def get_cost_store() -> CostStore:
    """Store backed by the application session factory; overridden in tests."""
    return CostStore(AsyncSessionLocal)


def http_error(exc: Exception) -> HTTPException:
    """NotFound → 404; rejected cost records → 422."""
    if isinstance(exc, NotFound):
        return HTTPException(status_code=404, detail=str(exc))
    return HTTPException(status_code=422, detail=str(exc))
