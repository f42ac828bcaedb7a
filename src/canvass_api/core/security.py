"""JWT token creation and validation.

Uses PyJWT. Tokens are issued by the external auth service; this module
verifies them and carries a helper to mint tokens for tests and tooling.
"""

import uuid
from datetime import UTC, datetime, timedelta

import jwt


def create_access_token(
    user_id: uuid.UUID | str,
    tenant_id: uuid.UUID | str,
    role: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_minutes: int = 60,
) -> str:
    """Create a tenant-scoped JWT access token.

    Args:
        user_id: The token subject (user id).
        tenant_id: The organization the user acts within.
        role: The user's role within the organization.
        secret_key: Secret key for signing.
        algorithm: JWT signing algorithm.
        expires_minutes: Token expiration in minutes.

    Returns:
        The encoded JWT string.
    """
    expire = datetime.now(UTC) + timedelta(minutes=expires_minutes)
    payload = {
        "sub": str(user_id),
        "tenant_id": str(tenant_id),
        "role": role,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def decode_token(
    token: str,
    secret_key: str,
    algorithm: str = "HS256",
) -> dict:
    """Decode and validate a JWT token.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired.
        jwt.InvalidTokenError: If the token is invalid.
    """
    return jwt.decode(token, secret_key, algorithms=[algorithm])
