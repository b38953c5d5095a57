"""Map domain exceptions to HTTP errors"""

import logging
from fastapi import HTTPException
from sqlalchemy.orm import Session

from hire_purchase.domain.exceptions import AlreadyPaidError, InvariantViolation, NotFoundError, ValidationError


def fail(db: Session, exc: Exception, request_id: str) -> HTTPException:
    """
    Roll back the unit of work and translate the failure.

    Every path is logged; the returned exception is raised by the caller.
    """
    db.rollback()

    if isinstance(exc, AlreadyPaidError):
        logging.warning(f"Rejected duplicate payment: {exc}", extra={"request_id": request_id})
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, ValidationError):
        logging.warning(f"Validation failed: {exc}", extra={"request_id": request_id})
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, NotFoundError):
        logging.warning(f"Not found: {exc}", extra={"request_id": request_id})
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, InvariantViolation):
        logging.error(f"Ledger invariant violated: {exc}", extra={"request_id": request_id})
        return HTTPException(status_code=500, detail="Ledger state rejected")

    logging.exception(f"Unexpected error: {exc}", extra={"request_id": request_id})
    return HTTPException(status_code=500, detail="Internal server error")
