# chaoslinks/routers/share.py
# FastAPI router for share links: creation (authenticated) and public lookup

from __future__ import annotations

import asyncio
import math
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Header, status

from chaoslinks import config
from chaoslinks.constants import VALID_MAP_TYPES
from chaoslinks.middleware.error_handler import (
    AuthenticationError,
    NotFoundError,
    RateLimitError,
    ServiceUnavailableError,
    ShareExpiredError,
    ValidationError,
)
from chaoslinks.repositories.shared_configuration_repository import SharedConfigurationRepository
from chaoslinks.schemas.share import (
    ShareCreateRequest,
    ShareCreateResponse,
    SharedConfigurationResponse,
)
from chaoslinks.services.share_service import (
    GenerationExhausted,
    RateLimited,
    ShareExpired,
    ShareNotFound,
    ShareService,
)
from chaoslinks.utils.expiration import days_until_expiration, utcnow
from chaoslinks.utils.map_parameters import check_parameter_stability, validate_parameters
from chaoslinks.utils.share_codes import is_valid_short_code


router = APIRouter(tags=["Share"])


def get_service() -> ShareService:
    """Provide service with DI so handlers stay thin."""
    repo = SharedConfigurationRepository(
        max_transaction_retries=config.settings.SHARE_TRANSACTION_MAX_RETRIES,
        transaction_timeout=config.settings.SHARE_TRANSACTION_TIMEOUT_SECONDS,
    )
    return ShareService(repository=repo)


def get_current_user_id(x_user_id: Optional[str] = Header(default=None, alias="X-User-Id")) -> str:
    """User id asserted by the upstream auth provider."""
    if not x_user_id:
        raise AuthenticationError("Please log in to share configurations")
    try:
        return str(uuid.UUID(x_user_id))
    except ValueError:
        raise AuthenticationError("Invalid user identity")


@router.post("/share", response_model=ShareCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_share(
    payload: ShareCreateRequest,
    user_id: str = Depends(get_current_user_id),
    service: ShareService = Depends(get_service),
) -> ShareCreateResponse:
    """Create a public short link for a chaos map configuration."""
    if payload.map_type not in VALID_MAP_TYPES:
        raise ValidationError("Invalid map type", details={"mapType": payload.map_type})

    is_valid, errors = validate_parameters(payload.map_type, payload.parameters)
    if not is_valid:
        raise ValidationError(f"Invalid parameters: {', '.join(errors)}", details={"errors": errors})

    try:
        result = await service.create_share(user_id, payload.map_type, payload.parameters)
    except asyncio.TimeoutError:
        raise ServiceUnavailableError("Share link creation timed out. Please try again.")

    if isinstance(result, RateLimited):
        retry_after = max(1, math.ceil((result.reset_at - utcnow()).total_seconds()))
        raise RateLimitError(retry_after=retry_after, reset_at=result.reset_at)
    if isinstance(result, GenerationExhausted):
        raise ServiceUnavailableError("Failed to generate share link. Please try again.")

    share = result.share
    return ShareCreateResponse(
        short_code=share.short_code,
        share_url=f"{config.PUBLIC_BASE_URL}/s/{share.short_code}",
        expires_at=share.expires_at,
        remaining=result.remaining_quota,
    )


@router.get("/shared/{code}", response_model=SharedConfigurationResponse)
async def get_shared_configuration(
    code: str,
    service: ShareService = Depends(get_service),
) -> SharedConfigurationResponse:
    """Public lookup of a shared configuration. No authentication required."""
    if not is_valid_short_code(code):
        raise ValidationError("Invalid share code")

    result = await service.get_share_by_code(code)

    if isinstance(result, ShareNotFound):
        raise NotFoundError("Shared configuration not found")
    if isinstance(result, ShareExpired):
        raise ShareExpiredError()

    # out-of-range values are reported to the viewer, never rejected
    _, warnings = check_parameter_stability(result.map_type, result.parameters)

    return SharedConfigurationResponse(
        short_code=result.short_code,
        username=result.username or "Anonymous",
        map_type=result.map_type,
        parameters=result.parameters,
        view_count=result.view_count,
        created_at=result.created_at,
        expires_at=result.expires_at,
        days_remaining=days_until_expiration(result.expires_at),
        warnings=warnings,
    )
