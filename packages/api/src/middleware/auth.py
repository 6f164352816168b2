# This project was developed with assistance from AI tools.
"""
Bearer-token authentication for the back-office API.

Agency staff, admins and brokers sign in through the Keycloak realm and
call the API with its access token. The token is checked against the
realm's published signing keys, mapped to one of our three roles, and
turned into a UserContext whose DataScope limits brokers to the policies
they created.

Actors (landlords, tenants, guarantors) never hold a realm account; the
portal routes authenticate them by the access link token instead.

AUTH_DISABLED=true skips all of this and acts as a local admin.
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

STAFF_ROLES = (UserRole.ADMIN, UserRole.STAFF)
POLICY_ROLES = (UserRole.ADMIN, UserRole.STAFF, UserRole.BROKER)

# When a realm account carries several of our roles, the strongest wins.
_ROLE_PRECEDENCE = (UserRole.ADMIN, UserRole.STAFF, UserRole.BROKER)

_UNAUTHENTICATED_HEADERS = {"WWW-Authenticate": "Bearer"}


def _realm_url() -> str:
    return f"{settings.KEYCLOAK_URL}/realms/{settings.KEYCLOAK_REALM}"


# ---------------------------------------------------------------------------
# Realm signing keys
# ---------------------------------------------------------------------------

_realm_keys: dict | None = None
_realm_keys_loaded_at: float = 0


def _download_realm_keys() -> dict:
    response = httpx.get(f"{_realm_url()}/protocol/openid-connect/certs", timeout=5)
    response.raise_for_status()
    return response.json()


def _realm_key_set(reload: bool = False) -> dict:
    """Signing keys of the realm, kept for JWKS_CACHE_TTL seconds."""
    global _realm_keys, _realm_keys_loaded_at  # noqa: PLW0603

    now = time.time()
    stale = (now - _realm_keys_loaded_at) > settings.JWKS_CACHE_TTL
    if _realm_keys is None or reload or stale:
        _realm_keys = _download_realm_keys()
        _realm_keys_loaded_at = now
    return _realm_keys


def _key_with_id(keys: dict, kid: str | None) -> jwt.PyJWK | None:
    return next((k for k in jwt.PyJWKSet.from_dict(keys).keys if k.key_id == kid), None)


def _get_signing_key(token: str) -> jwt.PyJWK:
    """Key that signed ``token``.

    An unknown key id reloads the key set once, since the realm may have
    rotated its keys since the last download.
    """
    kid = jwt.get_unverified_header(token).get("kid")
    try:
        key = _key_with_id(_realm_key_set(), kid)
        if key is None:
            key = _key_with_id(_realm_key_set(reload=True), kid)
    except httpx.HTTPError as exc:
        logger.error("Could not download realm signing keys: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service unavailable",
        ) from exc
    if key is None:
        raise jwt.InvalidTokenError(f"Token signed with unknown key id {kid}")
    return key


# ---------------------------------------------------------------------------
# Claims
# ---------------------------------------------------------------------------


def _bearer_token(request: Request) -> str | None:
    scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
    if scheme == "Bearer" and credentials:
        return credentials
    return None


def _read_claims(token: str) -> TokenPayload:
    claims = jwt.decode(
        token,
        _get_signing_key(token).key,
        algorithms=["RS256"],
        issuer=_realm_url(),
        options={"verify_aud": False},
    )
    return TokenPayload(**claims)


def _resolve_role(token_payload: TokenPayload) -> UserRole:
    """Our role for the account, ignoring Keycloak's built-in realm roles."""
    granted = set(token_payload.realm_access.get("roles", []))
    matching = [role for role in _ROLE_PRECEDENCE if role.value in granted]
    if not matching:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="No recognized role assigned",
        )
    if len(matching) > 1:
        logger.warning(
            "Account %s holds roles %s; acting as %s",
            token_payload.sub,
            [r.value for r in matching],
            matching[0].value,
        )
    return matching[0]


# ---------------------------------------------------------------------------
# FastAPI dependencies
# ---------------------------------------------------------------------------

_DISABLED_USER = UserContext(
    user_id="dev-user",
    role=UserRole.ADMIN,
    email="dev@rent-guard.local",
    name="Dev User",
    data_scope=DataScope(full_pipeline=True),
)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers=_UNAUTHENTICATED_HEADERS,
    )


async def get_current_user(request: Request) -> UserContext:
    """The signed-in back-office user, or the local admin when auth is off."""
    if settings.AUTH_DISABLED:
        return _DISABLED_USER

    token = _bearer_token(request)
    if not token:
        raise _unauthorized("Missing authentication token")
    try:
        claims = _read_claims(token)
    except jwt.ExpiredSignatureError as exc:
        raise _unauthorized("Token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise _unauthorized("Invalid token") from exc

    role = _resolve_role(claims)
    return UserContext(
        user_id=claims.sub,
        role=role,
        email=claims.email,
        name=claims.name or claims.preferred_username,
        data_scope=build_data_scope(role, claims.sub),
    )


CurrentUser = Annotated[UserContext, Depends(get_current_user)]


def require_roles(*allowed_roles: UserRole):
    """Route dependency admitting only the given roles (403 otherwise).

    Usage:
        @router.post("/expire-policies", dependencies=[Depends(require_roles(UserRole.ADMIN))])
    """

    async def _check(user: CurrentUser) -> UserContext:
        if user.role not in allowed_roles:
            logger.warning(
                "Denied %s (%s): route requires one of %s",
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


def client_ip(request: Request) -> str | None:
    """Caller IP recorded on activity entries (first X-Forwarded-For hop)."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None
