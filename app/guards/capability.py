"""Capability gate for API routes.

Decodes the caller's Bearer JWT and checks the role claim against the action
(HTTP verb) a route performs. Routes receive the decoded principal but never
look inside it. The gate is a no-op when ``auth.enabled`` is false.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from fastapi import Request
from jose import JWTError, jwt

from app.logic.errors import Forbidden, Unauthorized

logger = logging.getLogger(__name__)

ROLE_PERMISSIONS: dict[str, tuple[str, ...]] = {
    "viewer": ("GET",),
    "editor": ("GET", "PUT", "PATCH"),
    "moderator": ("GET", "POST", "PUT", "PATCH", "DELETE"),
    "super_moderator": ("GET", "POST", "PUT", "PATCH", "DELETE"),
    "admin": ("GET", "POST", "PUT", "PATCH", "DELETE", "MANAGE_USERS"),
}

ANONYMOUS_PRINCIPAL: dict[str, Any] = {"role": "admin", "anonymous": True}


def can_perform_action(role: Optional[str], action: str) -> bool:
    if not role:
        return False
    return action in ROLE_PERMISSIONS.get(role, ())


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization") or ""
    if not header.startswith("Bearer "):
        return None
    token = header[len("Bearer "):].strip()
    return token or None


def decode_principal(token: str, secret: str, algorithm: str) -> dict[str, Any]:
    try:
        claims = jwt.decode(token, secret, algorithms=[algorithm])
    except JWTError as exc:
        logger.info("token rejected: %s", exc)
        raise Unauthorized("Invalid or expired token") from None
    if not isinstance(claims, dict):
        raise Unauthorized("Invalid or expired token")
    return claims


def require_action(action: str) -> Callable[[Request], dict[str, Any]]:
    """Build a FastAPI dependency enforcing ``action`` for the caller's role."""

    def _gate(request: Request) -> dict[str, Any]:
        auth = request.app.state.config.auth
        if not auth.enabled:
            return dict(ANONYMOUS_PRINCIPAL)
        token = _bearer_token(request)
        if token is None:
            raise Unauthorized("Authentication required")
        principal = decode_principal(token, auth.jwt_secret, auth.algorithm)
        if not can_perform_action(principal.get("role"), action):
            raise Forbidden(f"You don't have permission to {action.lower()} this resource")
        return principal

    return _gate


__all__ = [
    "ROLE_PERMISSIONS",
    "can_perform_action",
    "decode_principal",
    "require_action",
]
