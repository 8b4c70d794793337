"""HTTP route definitions for the account service."""

from __future__ import annotations

import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from pydantic import BaseModel, EmailStr

from ..config import get_settings
from ..domain.account import Account
from ..domain.service import AccountService
from ..errors import AccountNotFound, AccountServiceError, DuplicateEmail, MalformedInput
from ..security.tokens import CreateToken, ResetToken, format_expiry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1")

RESET_PASSWORD_PATH = "/v1/reset-password"
CREATE_USER_PATH = "/v1/create-user"


class AccountResponse(BaseModel):
    """Public view of an :class:`Account`; the credential is never exposed."""

    user_id: int
    name: str
    email: str

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        """Build a response model from the domain record."""
        return cls(user_id=account.user_id, name=account.name, email=account.email)


class ResetLinkResponse(BaseModel):
    """Reset link parameters plus a ready-made URL."""

    user_id: int
    expires: str
    token: str
    url: str


class SignupRequest(BaseModel):
    requested_email: EmailStr


class CreateLinkResponse(BaseModel):
    """Create link parameters plus a ready-made URL."""

    email: str
    token: str
    url: str


class ResetPasswordRequest(BaseModel):
    requested_password: str


class ResetPasswordResponse(BaseModel):
    reset: bool


class CreateUserRequest(BaseModel):
    """Signup form; the email comes from the signed link, not from here."""

    requested_name: str
    requested_password: str


class CreateUserResponse(BaseModel):
    created: bool
    account: AccountResponse | None = None


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


def _link(path: str, params: dict[str, str]) -> str:
    return f"{get_settings().public_base_url.rstrip('/')}{path}?{urlencode(params)}"


@router.get("/users", response_model=list[AccountResponse])
def list_users(service: AccountService = Depends(get_service)) -> list[AccountResponse]:
    """List every account ordered by identifier."""
    return [AccountResponse.from_domain(account) for account in service.list_accounts()]


@router.post("/users/{user_id}/reset-link", response_model=ResetLinkResponse)
def generate_reset_link(
    user_id: int,
    service: AccountService = Depends(get_service),
) -> ResetLinkResponse:
    """Issue a time-bounded password reset link for an existing account."""
    try:
        reset = service.issue_reset_link(user_id)
    except AccountServiceError as exc:
        raise _http_error(exc) from exc
    params = reset.to_params()
    return ResetLinkResponse(
        user_id=reset.user_id,
        expires=format_expiry(reset.expires),
        token=params["token"],
        url=_link(RESET_PASSWORD_PATH, params),
    )


@router.get("/reset-password", response_model=AccountResponse)
def reset_password_form(
    user_id: int = Query(...),
    expires: str = Query(...),
    token: str = Query(...),
    service: AccountService = Depends(get_service),
) -> AccountResponse:
    """Describe the account a reset link targets."""
    try:
        ResetToken.from_transport(user_id, expires, token)
        account = service.get_account(user_id)
    except AccountServiceError as exc:
        raise _http_error(exc) from exc
    return AccountResponse.from_domain(account)


@router.post("/reset-password", response_model=ResetPasswordResponse)
def reset_password(
    payload: ResetPasswordRequest,
    user_id: int = Query(...),
    expires: str = Query(...),
    token: str = Query(...),
    service: AccountService = Depends(get_service),
) -> ResetPasswordResponse:
    """Apply a new password when the reset link verifies."""
    try:
        ok = service.reset_password_from_params(user_id, expires, token, payload.requested_password)
    except AccountServiceError as exc:
        raise _http_error(exc) from exc
    return ResetPasswordResponse(reset=ok)


@router.post("/signup", response_model=CreateLinkResponse)
def signup(
    payload: SignupRequest,
    service: AccountService = Depends(get_service),
) -> CreateLinkResponse:
    """Issue the create link for the requested email address."""
    link: CreateToken = service.request_signup(str(payload.requested_email))
    params = link.to_params()
    return CreateLinkResponse(
        email=link.email,
        token=params["token"],
        url=_link(CREATE_USER_PATH, params),
    )


@router.post("/create-user", response_model=CreateUserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    response: Response,
    payload: CreateUserRequest,
    email: str = Query(...),
    token: str = Query(...),
    service: AccountService = Depends(get_service),
) -> CreateUserResponse:
    """Create the account bound to a signed create link."""
    try:
        account = service.create_account_from_params(
            email, token, payload.requested_name, payload.requested_password
        )
    except AccountServiceError as exc:
        raise _http_error(exc) from exc
    if account is None:
        response.status_code = status.HTTP_200_OK
        return CreateUserResponse(created=False)
    return CreateUserResponse(created=True, account=AccountResponse.from_domain(account))


def _http_error(exc: AccountServiceError) -> HTTPException:
    status_code = status.HTTP_400_BAD_REQUEST
    if isinstance(exc, AccountNotFound):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, DuplicateEmail):
        status_code = status.HTTP_409_CONFLICT
    elif not isinstance(exc, MalformedInput):
        logger.warning("request failed: %s", exc)
    return HTTPException(status_code=status_code, detail=str(exc))
