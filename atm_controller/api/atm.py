"""
ATM API endpoints.

The API layer is thin: it maps the error code of each result to an
HTTP status and owns the commit. Failed results are committed too,
so that closed sessions and blocked cards persist; only an internal
error rolls the whole request back.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from atm_controller.models.base import get_db
from atm_controller.schemas.atm import ATMRequest, ATMResponse
from atm_controller.services.atm_transaction_service import (
    ATMTransactionService,
    BAD_REQUEST,
    CARD_BLOCKED,
    INTERNAL_ERROR,
    INVALID_PIN,
    INVALID_STATE,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/atm", tags=["ATM"])


ERROR_CODE_TO_STATUS = {
    INVALID_PIN: 401,
    CARD_BLOCKED: 401,
    INVALID_STATE: 409,
    INTERNAL_ERROR: 500,
}


def to_json_response(response: ATMResponse) -> JSONResponse:
    if response.success:
        status_code = 200
    else:
        status_code = ERROR_CODE_TO_STATUS.get(response.error_code, 400)
    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


@router.post("/transaction", response_model=ATMResponse)
def perform_transaction(
    request: ATMRequest,
    db: Session = Depends(get_db),
):
    """
    Run a complete ATM transaction.

    Inserts the card, verifies the PIN, selects the account,
    performs the requested operation and ends the session.
    """
    service = ATMTransactionService(db)
    response = service.process_transaction(request)

    if response.error_code == INTERNAL_ERROR:
        db.rollback()
        return to_json_response(response)

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Failed to commit ATM transaction", exc_info=True)
        response = ATMResponse(
            success=False,
            message=f"Transaction failed: {e.__class__.__name__}",
            transaction_type=response.transaction_type,
            account_number=response.account_number,
            error_code=INTERNAL_ERROR,
            error_details="Unable to save transaction",
        )

    return to_json_response(response)


def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies in the same shape as other failures."""
    errors = ", ".join(
        f"{'.'.join(str(p) for p in error['loc'][1:])}: {error['msg']}"
        for error in exc.errors()
    )
    return to_json_response(ATMResponse(
        success=False,
        message=f"Validation failed: {errors}",
        transaction_type="UNKNOWN",
        error_code=BAD_REQUEST,
        error_details=errors,
    ))
