"""
Token API schemas (request/response models).
"""

from __future__ import annotations

import uuid

from pydantic import BaseModel

ONE_TIME_WARNING = "Store this token securely. It will not be shown again."


class CreateTokenRequest(BaseModel):
    project_id: str | None = None


class IssuedTokenResponse(BaseModel):
    token: str
    project_id: uuid.UUID
    warning: str = ONE_TIME_WARNING
