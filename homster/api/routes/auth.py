"""
Account registration, login and token refresh.

Users register and get tokens straight away. Vendors register into a
pending approval state and can sign in only after an admin approves them.
"""

import logging
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, status

from homster.api.auth import Principal, get_principal
from homster.db import DatabaseConnection, UnitOfWork
from homster.models.account import (
    LoginRequest,
    MeResponse,
    RefreshRequest,
    Role,
    TokenPair,
    User,
    UserRegisterRequest,
    Vendor,
    VendorRegisterRequest,
)
from homster.models.notification import NotificationType, RelatedType
from homster.services.notifications import Outbox
from homster.utils.security import (
    REFRESH,
    InvalidTokenError,
    create_token,
    decode_token,
    hash_password,
    verify_password,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def _check_db_available():
    """Check if database is available, raise 503 if not."""
    if not DatabaseConnection.is_initialized():
        raise HTTPException(
            status_code=503,
            detail="Database not available",
        )


def _issue_tokens(account_id: str, role: Role) -> TokenPair:
    return TokenPair(
        access_token=create_token(account_id, role),
        refresh_token=create_token(account_id, role, token_type=REFRESH),
        role=role,
        account_id=account_id,
    )


@router.post(
    "/auth/users/register",
    response_model=TokenPair,
    status_code=status.HTTP_201_CREATED,
)
async def register_user(request: UserRegisterRequest) -> TokenPair:
    """
    Create a customer account and sign it in.

    Raises:
        409: Phone number already registered
    """
    _check_db_available()

    try:
        with UnitOfWork() as uow:
            if uow.users.get_by_phone(request.phone) is not None:
                raise HTTPException(
                    status_code=409,
                    detail="Phone number already registered",
                )

            user = uow.users.register(
                User(
                    id=str(uuid4()),
                    name=request.name,
                    phone=request.phone,
                    email=request.email,
                ),
                hash_password(request.password),
            )
            uow.commit()

        logger.info("User registered", extra={"json_fields": {"user_id": user.id}})
        return _issue_tokens(user.id, Role.USER)

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to register user: {str(e)}",
        )


@router.post(
    "/auth/vendors/register",
    response_model=Vendor,
    status_code=status.HTTP_201_CREATED,
)
async def register_vendor(request: VendorRegisterRequest) -> Vendor:
    """
    Create a vendor account awaiting admin approval.

    No tokens are issued; the vendor signs in once approved.

    Raises:
        409: Phone number already registered
    """
    _check_db_available()

    outbox = Outbox()
    try:
        with UnitOfWork() as uow:
            if uow.vendors.get_by_phone(request.phone) is not None:
                raise HTTPException(
                    status_code=409,
                    detail="Phone number already registered",
                )

            vendor = uow.vendors.register(
                Vendor(
                    id=str(uuid4()),
                    name=request.name,
                    business_name=request.business_name,
                    phone=request.phone,
                    email=request.email,
                    lat=request.lat,
                    lng=request.lng,
                    address=request.address,
                ),
                hash_password(request.password),
            )
            outbox.notify_admins(
                uow,
                NotificationType.GENERAL,
                "New vendor registration",
                f"{vendor.business_name or vendor.name} is waiting for approval.",
                related_id=vendor.id,
                related_type=RelatedType.VENDOR,
            )
            uow.commit()

        await outbox.flush()
        logger.info("Vendor registered", extra={"json_fields": {"vendor_id": vendor.id}})
        return vendor

    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(
            status_code=500,
            detail=f"Failed to register vendor: {str(e)}",
        )


@router.post("/auth/login", response_model=TokenPair)
async def login(request: LoginRequest) -> TokenPair:
    """
    Sign in with phone and password for a role.

    Raises:
        401: Unknown phone or wrong password
        403: Vendor not approved or account disabled
    """
    _check_db_available()

    with UnitOfWork() as uow:
        credentials = uow.accounts(request.role).get_credentials(request.phone)

    if credentials is None:
        raise HTTPException(status_code=401, detail="Invalid phone or password")

    account, password_hash = credentials
    if not verify_password(request.password, password_hash):
        raise HTTPException(status_code=401, detail="Invalid phone or password")

    if not getattr(account, "is_active", True):
        raise HTTPException(status_code=403, detail="Account is disabled")

    if request.role == Role.VENDOR and not account.is_approved:
        raise HTTPException(
            status_code=403,
            detail=f"Vendor account is {account.approval_status.value}",
        )

    return _issue_tokens(account.id, request.role)


@router.post("/auth/refresh", response_model=TokenPair)
async def refresh(request: RefreshRequest) -> TokenPair:
    """
    Exchange a refresh token for a new token pair.

    Raises:
        401: Invalid or expired refresh token
    """
    try:
        claims = decode_token(request.refresh_token, expected_type=REFRESH)
    except InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid or expired refresh token")

    return _issue_tokens(claims.account_id, claims.role)


@router.get("/auth/me", response_model=MeResponse)
async def me(principal: Principal = Depends(get_principal)) -> MeResponse:
    """Current principal with its profile."""
    _check_db_available()

    with UnitOfWork() as uow:
        account = uow.accounts(principal.role).get_by_id(principal.account_id)

    if account is None:
        raise HTTPException(status_code=404, detail="Account not found")

    return MeResponse(
        role=principal.role,
        account_id=principal.account_id,
        profile=account.model_dump(mode="json"),
    )
