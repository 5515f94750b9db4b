"""
Group model for collaborative meetup planning
"""

import secrets
import string
import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


def generate_group_code() -> str:
    """Generate a 6-character group code (uppercase alphanumeric)"""
    return "".join(secrets.choice(string.ascii_uppercase + string.digits) for _ in range(6))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Group(BaseModel):
    """
    A meetup group. Members join with the short code.
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, description="Stable group id")
    code: str = Field(default_factory=generate_group_code, description="6-character join code")
    name: str | None = Field(default=None, description="Optional display name")
    created_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "5f1c0b7e9d8a4c2e8b1a3f6d7e9c0a12",
                "code": "XY7K9M",
                "name": "Friday hangout",
                "created_at": "2025-01-01T00:00:00Z",
            }
        }
    )
