from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class Identity(BaseModel):
    """Authenticated caller as reported by the upstream auth layer."""

    user_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class PlayerRead(BaseModel):
    id: int
    user_id: str
    name: str
    email: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
