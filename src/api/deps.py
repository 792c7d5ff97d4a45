"""
FastAPI dependencies for authentication, database sessions and the
per-request customize manager.
"""

from typing import Annotated, Any, Dict, Optional
from urllib.parse import parse_qsl

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.database import get_db
from src.engines.customize.extensions import CustomizeExtensions, get_customize_extensions
from src.engines.customize.manager import CustomizeManager, CustomizeRequest
from src.kernel.identity.identity_service import IdentityService
from src.kernel.identity.jwt import verify_access_token
from src.kernel.models.user import User
from src.schemas.customize import CustomizeRequestBody


# Security scheme
security = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]


async def _user_from_token(token: str, db: AsyncSession) -> Optional[User]:
    payload = verify_access_token(token)
    if not payload or payload.user_id is None:
        return None
    return await IdentityService(db).get_user_by_id(payload.user_id)


async def get_current_user_optional(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: DbSession,
) -> Optional[User]:
    """
    The authenticated user, or None for an anonymous request.

    A token that is present but invalid is refused rather than treated as
    anonymous.
    """
    if not credentials:
        return None

    user = await _user_from_token(credentials.credentials, db)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return user


OptionalUser = Annotated[Optional[User], Depends(get_current_user_optional)]


async def _read_body(request: Request) -> Dict[str, Any]:
    if request.method not in ("POST", "PUT", "PATCH"):
        return {}
    content_type = request.headers.get("content-type", "")
    raw = await request.body()
    if not raw:
        return {}
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Malformed JSON body",
            ) from None
        return body if isinstance(body, dict) else {}
    if content_type.startswith("application/x-www-form-urlencoded"):
        return dict(parse_qsl(raw.decode("utf-8"), keep_blank_values=True))
    return {}


async def get_customize_request(request: Request) -> CustomizeRequest:
    """Merge query string and body into the fields the customize session reads."""
    fields: Dict[str, Any] = dict(request.query_params)
    fields.update(await _read_body(request))
    try:
        body = CustomizeRequestBody.model_validate(fields)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.errors(include_url=False),
        ) from None
    return CustomizeRequest(
        method=request.method,
        transaction_uuid=body.customize_transaction_uuid,
        nonce=body.nonce,
        customized=body.customized,
        theme=body.theme,
        wp_customize=body.is_customize_request,
        messenger_channel=body.customize_messenger_channel,
        extra=dict(body.model_extra or {}),
    )


async def get_customize_manager(
    request: Request,
    db: DbSession,
    user: OptionalUser,
    customize_request: Annotated[CustomizeRequest, Depends(get_customize_request)],
    extensions: Annotated[CustomizeExtensions, Depends(get_customize_extensions)],
) -> CustomizeManager:
    """Bootstrap the customize session for this request."""
    manager = CustomizeManager(
        db,
        user,
        customize_request,
        hooks=extensions.session_hooks(),
        resolvers=extensions.resolvers,
    )
    await manager.setup()
    # Read back by RequestIdMiddleware for the response header
    request.state.transaction_uuid = str(manager.transaction.uuid)
    return manager


Manager = Annotated[CustomizeManager, Depends(get_customize_manager)]
