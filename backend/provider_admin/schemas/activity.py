import uuid
from datetime import datetime

from pydantic import BaseModel


class ActivityLogRead(BaseModel):
    id: uuid.UUID
    action: str
    details: dict | None = None
    admin_id: str | None = None
    admin_email: str | None = None
    timestamp: datetime

    model_config = {"from_attributes": True}
