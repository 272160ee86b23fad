from jose import JWTError, jwt
from loguru import logger

from supplier_orders.domain.supplier import Identity

# Supabase signs user access tokens with the project's JWT secret (HS256)
ALGORITHM = "HS256"


def identity_from_token(token: str | None, secret: str) -> Identity | None:
    """Return the identity carried by a Supabase access token.

    A missing token, an unset secret, a bad signature, an expired token or a
    token without an ``email`` claim all yield ``None``. Callers then fall
    back to unauthenticated handling.
    """
    if not token or not secret:
        return None
    try:
        claims = jwt.decode(token, secret, algorithms=[ALGORITHM], options={"verify_aud": False})
    except JWTError as exc:
        logger.warning(f"Rejected access token: {exc}")
        return None

    email = claims.get("email")
    if not email:
        logger.warning("Access token carries no email claim")
        return None
    return Identity(email=email)


def identity_from_header(authorization: str | None, secret: str) -> Identity | None:
    """Extract the bearer token from an ``Authorization`` header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return identity_from_token(token.strip(), secret)
