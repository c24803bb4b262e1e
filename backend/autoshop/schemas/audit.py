import json
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import field_validator

from autoshop.schemas.common import CamelModel


class AuditEntry(CamelModel):
    """One recorded change to an appointment, project or account."""
    id: int
    user_id: int
    action: str
    entity_type: str
    entity_id: int
    payload: Optional[Dict[str, Any]] = None
    created_at: datetime

    @field_validator("payload", mode="before")
    @classmethod
    def decode_payload(cls, value):
        # Stored as JSON text
        return json.loads(value) if isinstance(value, str) else value
