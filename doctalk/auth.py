# doctalk/auth.py
"""
Bearer-token verification.

Tokens are minted elsewhere; this module only checks the signature and
expiry and hands the subject id (the ``id`` claim) to the routes.
"""
import logging
from typing import Optional

import jwt
from fastapi import Depends, Header, HTTPException

from doctalk.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


def get_settings() -> Settings:
    return default_settings


def verify_token(token: str, settings: Settings) -> str:
    """Return the owner id carried by ``token``; raises jwt.InvalidTokenError."""
    payload = jwt.decode(token, settings.signing_key, algorithms=[settings.jwt_algorithm])
    owner = payload.get("id")
    if not owner:
        raise jwt.InvalidTokenError("token has no subject id")
    return str(owner)


async def get_current_owner(
    authorization: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> str:
    header = authorization or ""
    token = header[7:].strip() if header.startswith("Bearer ") else None
    if not token:
        raise HTTPException(status_code=401, detail="Authentication required")
    try:
        return verify_token(token, settings)
    except jwt.InvalidTokenError as e:
        logger.debug("Rejected bearer token: %s", e)
        raise HTTPException(status_code=401, detail="Invalid or expired token")
