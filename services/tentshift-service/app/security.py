import uuid
from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .config import JWT_ALGORITHM, JWT_AUDIENCE, JWT_SECRET
from .db import get_db
from .errors import ForbiddenError, NoTentError, UnauthorizedError
from .models import Profile, Role

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class RequestContext:
    """Who is calling and which tent they act in, resolved once per request."""

    user_id: uuid.UUID | None
    tent_id: uuid.UUID | None = None
    role: Role | None = None
    email: str | None = None

    @property
    def is_captain(self) -> bool:
        return self.role == Role.CAPTAIN


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(
            token,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=JWT_AUDIENCE,
            options={"verify_aud": bool(JWT_AUDIENCE)},
        )
    except JWTError:
        raise UnauthorizedError("Invalid or expired token")


def get_current_user(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict:
    token = None
    if creds and creds.scheme.lower() == "bearer":
        token = creds.credentials

    if not token:
        raise UnauthorizedError("Missing Bearer token")

    payload = decode_token(token)
    request.state.user_sub = payload.get("sub")
    return payload


def user_id_from_payload(payload: dict) -> uuid.UUID:
    sub = payload.get("sub")
    if not sub:
        raise UnauthorizedError("Token has no subject")
    try:
        return uuid.UUID(str(sub))
    except ValueError:
        raise UnauthorizedError("Token subject is not a user id")


async def load_profile(db: AsyncSession, user_id: uuid.UUID) -> Profile | None:
    result = await db.execute(select(Profile).where(Profile.id == user_id))
    return result.scalar_one_or_none()


async def get_request_context(
    payload: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> RequestContext:
    user_id = user_id_from_payload(payload)
    profile = await load_profile(db, user_id)

    if not profile:
        return RequestContext(user_id=user_id, email=payload.get("email"))

    return RequestContext(
        user_id=user_id,
        tent_id=profile.tent_id,
        role=profile.role,
        email=payload.get("email"),
    )


def require_tent(ctx: RequestContext = Depends(get_request_context)) -> RequestContext:
    if ctx.user_id is None:
        raise UnauthorizedError()
    if ctx.tent_id is None:
        raise NoTentError()
    return ctx


def require_captain(ctx: RequestContext = Depends(require_tent)) -> RequestContext:
    if not ctx.is_captain:
        raise ForbiddenError()
    return ctx
