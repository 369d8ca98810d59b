"""
API response models for the SecretShare JSON endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
separate from the auth/models.py dataclass, which owns the internal domain
shape. Route handlers map between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    components: dict[str, str]


class MeResponse(BaseModel):
    """Identity of the logged-in user. The secret itself is never returned."""

    user_id: int
    username: str
    provider: str
    email: Optional[str] = None
    has_secret: bool


class OAuthProviderInfo(BaseModel):
    name: str
    label: str
