from pydantic import BaseModel
from datetime import datetime
import uuid

class NotificationBase(BaseModel):
    title: str
    message: str
    type: str
    status: str

class NotificationCreate(NotificationBase):
    user_id: uuid.UUID

class NotificationRead(NotificationBase):
    id: uuid.UUID
    user_id: uuid.UUID
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True
