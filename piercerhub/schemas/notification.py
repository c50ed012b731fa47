# piercerhub/schemas/notification.py
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from piercerhub.schemas.common import PaginatedResponse

class Notification(BaseModel):
    id: int
    type: str
    title: str
    message: str | None
    created_at: datetime

    is_read: bool
    action_url: str | None
    related_entity_id: str | None

    class Config:
        from_attributes = True

class PaginatedNotifications(PaginatedResponse[Notification]):
    pass

class AppointmentNotificationRequest(BaseModel):
    appointment_id: str
    client_email: EmailStr
    client_phone: str = ""
    client_name: str = Field(..., min_length=1)
    service: str = Field(..., min_length=1)
    start_time: datetime
    end_time: datetime
    location: str | None = None
    piercer_email: EmailStr | None = None

class AppointmentMessage(BaseModel):
    """Готовое к отправке подтверждение записи."""
    to: list[str]
    subject: str
    formatted_date: str
    formatted_start_time: str
    formatted_end_time: str
    google_calendar_link: str
    whatsapp_link: str | None
    ics_content: str

class DispatchResult(BaseModel):
    success: bool
    id: str | None = None
