"""
Authentication and entitlement utilities
"""
import os
from typing import Optional

from dotenv import load_dotenv
from fastapi import Header, HTTPException
from jose import JWTError, jwt

from .logger import get_logger
from .supabase_client import get_supabase_client

load_dotenv()
load_dotenv('../.env')

logger = get_logger("backend.lib.auth")

# Same secret Supabase signs access tokens with
JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")
JWT_ALGORITHM = "HS256"
JWT_AUDIENCE = "authenticated"


def _decode_token(token: str) -> dict:
    """Verify a Supabase access token locally."""
    return jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM], audience=JWT_AUDIENCE)


def _load_profile(user_id: str) -> dict:
    supabase = get_supabase_client()
    profile_response = supabase.table('profiles').select('*').eq('id', user_id).single().execute()
    if not profile_response.data:
        raise HTTPException(status_code=404, detail="User profile not found")
    return profile_response.data


async def get_current_user(authorization: Optional[str] = Header(None)):
    """
    Validate the bearer token and return user info

    Args:
        authorization: Bearer token from Authorization header

    Returns:
        dict: id, email, is_premium and the raw profile

    Raises:
        HTTPException: If token is invalid or user not found
    """
    if not authorization:
        raise HTTPException(status_code=401, detail="Authorization header required")

    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Invalid authorization header format")

    token = authorization.replace("Bearer ", "", 1)

    try:
        if JWT_SECRET:
            claims = _decode_token(token)
            user_id, email = claims.get("sub"), claims.get("email")
        else:
            # No local secret: ask Supabase to validate the token
            user_response = get_supabase_client().auth.get_user(token)
            if not user_response or not user_response.user:
                raise HTTPException(status_code=401, detail="Invalid or expired token")
            user_id, email = user_response.user.id, user_response.user.email

        if not user_id:
            raise HTTPException(status_code=401, detail="Token has no subject")

        profile = _load_profile(user_id)
        return {
            "id": user_id,
            "email": email,
            "is_premium": bool(profile.get("is_premium", False)),
            "full_name": profile.get("full_name"),
            "profile": profile,
        }

    except HTTPException:
        raise
    except JWTError as e:
        logger.warning("Rejected access token", data={"error": str(e)})
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    except Exception as e:
        logger.error("Auth error", error=e)
        raise HTTPException(status_code=401, detail="Could not validate credentials")


def premium_predicate(user: dict):
    """Entitlement predicate for SessionManager bound to one authenticated user."""
    def is_premium_unlocked(user_id: Optional[str]) -> bool:
        return user_id == user.get("id") and bool(user.get("is_premium"))
    return is_premium_unlocked
