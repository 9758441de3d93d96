"""Hashing and signature helpers for Homster."""

import hashlib
import hmac
import secrets


def compute_hmac_sha256(secret: str, message: str) -> str:
    """
    Compute a hex HMAC-SHA256 digest.

    Args:
        secret: Shared secret key
        message: Message to sign

    Returns:
        Hexadecimal digest string
    """
    return hmac.new(
        secret.encode("utf-8"), message.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def verify_razorpay_signature(
    order_id: str, payment_id: str, signature: str, secret: str
) -> bool:
    """
    Verify a Razorpay checkout signature.

    Razorpay signs `<order_id>|<payment_id>` with the account key secret.

    Args:
        order_id: Razorpay order ID
        payment_id: Razorpay payment ID
        signature: Signature returned by the checkout
        secret: Razorpay key secret

    Returns:
        True when the signature matches
    """
    if not secret or not signature:
        return False
    expected = compute_hmac_sha256(secret, f"{order_id}|{payment_id}")
    return hmac.compare_digest(expected, signature)


def generate_otp(digits: int = 4) -> str:
    """Generate a numeric one-time code, zero padded."""
    return str(secrets.randbelow(10**digits)).zfill(digits)
