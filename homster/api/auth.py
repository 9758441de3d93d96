"""
Authentication dependencies for API routes.

Every protected route reads a JWT access token from the
`Authorization: Bearer <token>` header. When the database is connected the
account behind the token must still exist, and vendors must be approved.
"""

from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status

from homster.db import DatabaseConnection, UnitOfWork
from homster.models.account import Role
from homster.utils.security import InvalidTokenError, decode_token


@dataclass(frozen=True)
class Principal:
    """Authenticated caller."""

    account_id: str
    role: Role


def _bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header is required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header must be 'Bearer <token>'",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token


async def get_principal(
    authorization: str | None = Header(default=None),
) -> Principal:
    """
    Resolve the caller from the bearer token.

    Args:
        authorization: Authorization header value

    Returns:
        Principal with account ID and role

    Raises:
        HTTPException: 401 if the token is missing, invalid or the account is gone
        HTTPException: 403 if a vendor is not approved
    """
    token = _bearer_token(authorization)

    try:
        claims = decode_token(token)
    except InvalidTokenError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # Check the account is still valid if database is connected
    if DatabaseConnection.is_initialized():
        with UnitOfWork() as uow:
            account = uow.accounts(claims.role).get_by_id(claims.account_id)

        if account is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Account no longer exists",
            )
        if claims.role == Role.VENDOR and not account.is_approved:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Vendor account is not approved",
            )

    return Principal(account_id=claims.account_id, role=claims.role)


def require_roles(*roles: Role):
    """
    Dependency factory restricting a route to the given roles.

    Usage:
        @router.get("/wallet")
        async def get_wallet(principal: Principal = Depends(require_roles(Role.VENDOR))):
            ...
    """

    async def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.role not in roles:
            allowed = " or ".join(r.value.capitalize() for r in roles)
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. {allowed} role required.",
            )
        return principal

    return dependency
