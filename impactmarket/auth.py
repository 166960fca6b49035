from fastapi import Header
from jose import JWTError, jwt

from impactmarket import config
from impactmarket.errors import ApiError

# Supabase signs access tokens with the project's JWT secret
SUPABASE_AUDIENCE = "authenticated"


def get_current_creator(authorization: str = Header(default=None)) -> str:
    """Return the creator id (``sub``) of a valid Supabase access token."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise ApiError(401, "Invalid or missing token")
    if not config.SUPABASE_JWT_SECRET:
        raise ApiError(401, "Invalid or missing token", "Token verification is not configured")

    token = authorization.split(" ", 1)[1].strip()
    try:
        claims = jwt.decode(
            token,
            config.SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            audience=SUPABASE_AUDIENCE,
        )
    except JWTError:
        raise ApiError(401, "Invalid or missing token")

    creator_id = claims.get("sub")
    if not creator_id:
        raise ApiError(401, "Invalid or missing token")
    return creator_id
