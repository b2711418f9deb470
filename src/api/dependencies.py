"""Request dependencies: authentication, scan lookup and ownership checks."""

import logging
import uuid
from dataclasses import dataclass

import jwt
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings, get_settings
from core.exceptions import AuthError, AuthorizationError, NotFoundError, ValidationError
from db.models import Scan
from db.repositories import ScanRepository, SubscriptionRepository

logger = logging.getLogger(__name__)


@dataclass
class CurrentUser:
    """The authenticated caller."""

    id: uuid.UUID
    is_service_role: bool = False


def decode_access_token(token: str, settings: Settings) -> dict:
    """
    Decode a Supabase access token.

    Raises:
        AuthError: if the token is expired, malformed or not for this project
    """
    try:
        payload = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=["HS256"],
            options={"verify_aud": False},
        )
    except jwt.ExpiredSignatureError:
        raise AuthError("Session expired")
    except jwt.PyJWTError as e:
        logger.debug(f"Rejected access token: {e}")
        raise AuthError()

    # Service-role keys carry no audience; user sessions must name ours
    if payload.get("role") != "service_role":
        audience = payload.get("aud")
        audiences = audience if isinstance(audience, list) else [audience]
        if settings.supabase_jwt_audience not in audiences:
            logger.debug(f"Rejected access token for audience {audience!r}")
            raise AuthError()

    return payload


def _bearer_token(request: Request, settings: Settings) -> str | None:
    authorization = request.headers.get("authorization")
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token:
            return token.strip()
    return request.cookies.get(settings.session_cookie_name)


async def get_current_user(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    """
    Authenticate the request.

    Order: testing bypass header (never in production), then the Bearer
    token, then the session cookie.
    """
    bypass = request.headers.get(settings.testing_bypass_header)
    if bypass is not None and bypass.lower() == "true":
        if not settings.allow_testing_bypass:
            logger.warning("Testing bypass header refused")
            raise AuthorizationError("Testing bypass is not allowed in this environment")
        return CurrentUser(id=uuid.UUID(settings.testing_user_id), is_service_role=True)

    token = _bearer_token(request, settings)
    if not token:
        raise AuthError()

    payload = decode_access_token(token, settings)
    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthError()

    return CurrentUser(id=user_id, is_service_role=payload.get("role") == "service_role")


def parse_scan_id(scan_id: str | None) -> uuid.UUID:
    if not scan_id:
        raise ValidationError("Scan ID is required")
    try:
        return uuid.UUID(scan_id)
    except ValueError:
        raise ValidationError("Invalid scan ID")


async def get_owned_scan(session: AsyncSession, scan_id: uuid.UUID, user: CurrentUser) -> Scan:
    """Load a scan the caller may see: 404 when unknown, 403 when not theirs."""
    found = await ScanRepository(session).get_with_website(scan_id)
    if not found:
        raise NotFoundError("Scan not found")

    scan, website = found
    if not user.is_service_role and website.user_id != user.id:
        raise AuthorizationError()
    return scan


async def is_premium_user(session: AsyncSession, user: CurrentUser) -> bool:
    if user.is_service_role:
        return True
    subscription = await SubscriptionRepository(session).get_active_for_user(user.id)
    return bool(subscription and subscription.is_premium)
