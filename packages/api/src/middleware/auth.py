# This project was developed with assistance from AI tools.
"""
Session authentication for staff, admins and brokers (Keycloak OIDC).

Bearer tokens are RS256 JWTs checked against the realm's JWKS. The key set
is cached for ``JWKS_CACHE_TTL`` seconds and refetched once when a token
names a key id the cache does not know (key rotation).

Actor portal tokens are not JWTs and never reach this module; see
``middleware/actor_auth.py``.

Set AUTH_DISABLED=true to bypass validation (tests / local dev without Keycloak).
"""

import logging
import time
from typing import Annotated

import httpx
import jwt
from db.enums import UserRole
from fastapi import Depends, HTTPException, Request, status

from ..core.auth import build_data_scope
from ..core.config import settings
from ..schemas.auth import DataScope, TokenPayload, UserContext

logger = logging.getLogger(__name__)

# Most privileged first; a user holding several realm roles acts as the first one.
_ROLE_PRECEDENCE = (UserRole.ADMIN, UserRole.STAFF, UserRole.BROKER)


def _realm_url() -> str:
    return f"{settings.KEYCLOAK_URL}/realms/{settings.KEYCLOAK_REALM}"


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# ---------------------------------------------------------------------------
# JWKS cache
# ---------------------------------------------------------------------------


class _JwksCache:
    """Realm signing keys, refreshed when stale or when a key id is unknown."""

    def __init__(self) -> None:
        self._keys: dict[str, jwt.PyJWK] = {}
        self._fetched_at: float = 0

    def _stale(self) -> bool:
        return not self._keys or (time.time() - self._fetched_at) > settings.JWKS_CACHE_TTL

    async def _refresh(self) -> None:
        url = f"{_realm_url()}/protocol/openid-connect/certs"
        async with httpx.AsyncClient(timeout=5) as client:
            response = await client.get(url)
            response.raise_for_status()
        key_set = jwt.PyJWKSet.from_dict(response.json())
        self._keys = {key.key_id: key for key in key_set.keys if key.key_id}
        self._fetched_at = time.time()
        logger.info("Loaded %d signing keys for realm %s", len(self._keys), settings.KEYCLOAK_REALM)

    async def signing_key(self, kid: str | None) -> jwt.PyJWK:
        """Key for ``kid``; raises 503 when Keycloak cannot be reached."""
        try:
            if self._stale():
                await self._refresh()
            if kid not in self._keys:
                await self._refresh()
        except httpx.HTTPError as exc:
            logger.error("Failed to fetch JWKS from Keycloak: %s", exc)
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Authentication service unavailable",
            ) from exc
        if kid not in self._keys:
            raise jwt.InvalidTokenError(f"No matching key found for kid={kid}")
        return self._keys[kid]

    def clear(self) -> None:
        self._keys = {}
        self._fetched_at = 0


_jwks = _JwksCache()


# ---------------------------------------------------------------------------
# Token validation
# ---------------------------------------------------------------------------


def _extract_token(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth = request.headers.get("Authorization")
    if auth and auth.startswith("Bearer "):
        return auth[7:]
    return None


async def _decode_token(token: str) -> TokenPayload:
    header = jwt.get_unverified_header(token)
    signing_key = await _jwks.signing_key(header.get("kid"))
    payload = jwt.decode(
        token,
        signing_key.key,
        algorithms=["RS256"],
        issuer=_realm_url(),
        options={"verify_aud": False},
    )
    return TokenPayload(**payload)


def _resolve_role(token_payload: TokenPayload) -> UserRole:
    """The most privileged platform role among the token's realm roles."""
    granted = set(token_payload.realm_access.get("roles", []))
    user_roles = [role for role in _ROLE_PRECEDENCE if role.value in granted]

    if not user_roles:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No recognized role assigned",
        )
    if len(user_roles) > 1:
        logger.warning(
            "User %s holds roles %s, acting as %s",
            token_payload.sub,
            [role.value for role in user_roles],
            user_roles[0].value,
        )
    return user_roles[0]


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

_DISABLED_USER = UserContext(
    user_id="dev-user",
    role=UserRole.ADMIN,
    email="dev@rental-guarantee.local",
    name="Dev User",
    data_scope=DataScope(full_access=True),
)


async def get_current_user(request: Request) -> UserContext:
    """FastAPI dependency: validate the session JWT and return a UserContext.

    When AUTH_DISABLED=true, returns a dev admin user without token validation.
    """
    if settings.AUTH_DISABLED:
        return _DISABLED_USER

    token = _extract_token(request)
    if not token:
        raise _unauthorized("Missing authentication token")

    try:
        payload = await _decode_token(token)
    except jwt.ExpiredSignatureError as exc:
        raise _unauthorized("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise _unauthorized("Invalid token") from exc

    role = _resolve_role(payload)
    return UserContext(
        user_id=payload.sub,
        role=role,
        email=payload.email,
        name=payload.name or payload.preferred_username,
        data_scope=build_data_scope(role, payload.sub),
    )


CurrentUser = Annotated[UserContext, Depends(get_current_user)]


async def get_optional_user(request: Request) -> UserContext | None:
    """FastAPI dependency for routes that also accept actor portal tokens.

    No Authorization header means no session; a header that is present must
    still be a valid JWT.
    """
    if settings.AUTH_DISABLED:
        return _DISABLED_USER
    if _extract_token(request) is None:
        return None
    return await get_current_user(request)


OptionalUser = Annotated[UserContext | None, Depends(get_optional_user)]


def require_roles(*allowed_roles: UserRole):
    """Dependency factory: restrict a route to specific roles.

    Usage:
        @router.patch("/{policy_id}/status", dependencies=[Depends(require_roles(UserRole.ADMIN))])
    """

    async def _check(user: CurrentUser) -> UserContext:
        if user.role not in allowed_roles:
            logger.warning(
                "RBAC denied: user=%s role=%s needs one of %s",
                user.user_id,
                user.role.value,
                [r.value for r in allowed_roles],
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return _check
