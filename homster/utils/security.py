"""
Password hashing and JWT helpers.

Access and refresh tokens are signed with separate secrets so a leaked
refresh secret cannot mint access tokens and vice versa.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext

from homster import config
from homster.models.account import Role

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS = "access"
REFRESH = "refresh"


class InvalidTokenError(Exception):
    """Raised when a token cannot be decoded or has the wrong type."""


@dataclass(frozen=True)
class TokenClaims:
    """Decoded identity carried by a Homster token."""

    account_id: str
    role: Role
    token_type: str


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def _secret_for(token_type: str) -> str:
    return config.JWT_REFRESH_SECRET if token_type == REFRESH else config.JWT_SECRET


def create_token(
    account_id: str,
    role: Role,
    token_type: str = ACCESS,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Sign a JWT for an account.

    Args:
        account_id: Account UUID placed in the `sub` claim
        role: Account role
        token_type: "access" or "refresh"
        expires_delta: Override for the configured lifetime

    Returns:
        Encoded JWT string
    """
    if expires_delta is None:
        minutes = (
            config.REFRESH_TOKEN_EXPIRE_MINUTES
            if token_type == REFRESH
            else config.ACCESS_TOKEN_EXPIRE_MINUTES
        )
        expires_delta = timedelta(minutes=minutes)

    claims = {
        "sub": account_id,
        "role": role.value,
        "type": token_type,
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(claims, _secret_for(token_type), algorithm=config.JWT_ALGORITHM)


def decode_token(token: str, expected_type: str = ACCESS) -> TokenClaims:
    """
    Decode and validate a JWT.

    Args:
        token: Encoded JWT
        expected_type: Token type the caller requires

    Returns:
        Decoded claims

    Raises:
        InvalidTokenError: If the signature, expiry, type or claims are invalid
    """
    try:
        payload = jwt.decode(
            token, _secret_for(expected_type), algorithms=[config.JWT_ALGORITHM]
        )
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e

    account_id = payload.get("sub")
    role = payload.get("role")
    if not account_id or role not in {r.value for r in Role}:
        raise InvalidTokenError("Token is missing subject or role")
    if payload.get("type", ACCESS) != expected_type:
        raise InvalidTokenError(f"Expected {expected_type} token")

    return TokenClaims(account_id=account_id, role=Role(role), token_type=expected_type)
