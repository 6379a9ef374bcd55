"""HTTP route definitions for the accounts service."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel

from ..domain.account import Account
from ..domain.contracts import RegisterAccountInput
from ..domain.errors import AccountValidationError, StorageError
from ..domain.service import AccountService
from ..security.passwords import PasswordEncodingError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1")

SERVER_ERROR_DETAIL = "the server encountered a problem and could not process your request"


class AccountResponse(BaseModel):
    """Serialised representation of an `Account` aggregate, without credentials."""

    id: int
    created_at: str
    name: str
    email: str
    activated: bool
    version: int

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        """Build a response model from the domain aggregate."""
        return cls(
            id=account.id,
            created_at=account.created_at.isoformat(),
            name=account.name,
            email=account.email,
            activated=account.activated,
            version=account.version,
        )


class RegisterAccountRequest(BaseModel):
    """Payload accepted when registering a new account."""

    name: str
    email: str
    password: str


class RegisterAccountResponse(BaseModel):
    """Response returned after an account has been registered."""

    account: AccountResponse


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


@router.post("/users", response_model=RegisterAccountResponse, status_code=status.HTTP_201_CREATED)
def register_account(
    payload: RegisterAccountRequest,
    service: AccountService = Depends(get_service),
) -> RegisterAccountResponse:
    """Register an account; the welcome email is sent after the response."""
    try:
        account = service.register_account(
            RegisterAccountInput(
                name=payload.name,
                email=payload.email,
                password=payload.password,
            )
        )
    except AccountValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail={"errors": exc.errors},
        ) from exc
    except (StorageError, PasswordEncodingError) as exc:
        logger.exception("account registration failed")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=SERVER_ERROR_DETAIL,
        ) from exc
    return RegisterAccountResponse(account=AccountResponse.from_domain(account))
