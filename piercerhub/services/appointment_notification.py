# piercerhub/services/appointment_notification.py
"""
Подтверждение записи клиента: письмо, ссылка в WhatsApp и файл календаря.

Здесь только сборка текста и ссылок. Письмо отправляет удаленная функция,
которой уходит уже готовый payload.
"""

import logging
import re
from datetime import datetime, timezone
from urllib.parse import quote
from zoneinfo import ZoneInfo

import httpx

from piercerhub.clients.functions import functions_client
from piercerhub.core import locales
from piercerhub.core.config import settings
from piercerhub.core.exceptions import RemoteServiceError
from piercerhub.schemas.notification import (
    AppointmentMessage,
    AppointmentNotificationRequest,
    DispatchResult,
)

logger = logging.getLogger(__name__)

APPOINTMENT_FUNCTION = "send-appointment-notification"
ICS_PRODID = "-//PiercerHub//Appointment//EN"


def _studio_time(value: datetime) -> datetime:
    tz = ZoneInfo(settings.STUDIO_TIMEZONE)
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def _utc_stamp(value: datetime) -> str:
    """20240115T130000Z"""
    return _studio_time(value).astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def format_date_pt_br(value: datetime) -> str:
    """segunda-feira, 15 de janeiro de 2024"""
    local = _studio_time(value)
    weekday = locales.WEEKDAYS_PT_BR[local.weekday()]
    month = locales.MONTHS_PT_BR[local.month - 1]
    return f"{weekday}, {local.day} de {month} de {local.year}"


def format_time(value: datetime) -> str:
    return _studio_time(value).strftime("%H:%M")


def _details(request: AppointmentNotificationRequest, newline: str) -> str:
    text = f"Agendamento: {request.service}{newline}Cliente: {request.client_name}"
    if request.location:
        text += f"{newline}Local: {request.location}"
    return text


def build_google_calendar_link(request: AppointmentNotificationRequest) -> str:
    dates = f"{_utc_stamp(request.start_time)}/{_utc_stamp(request.end_time)}"
    details = _details(request, "\n")
    return (
        "https://calendar.google.com/calendar/render?action=TEMPLATE"
        f"&text={quote(request.service, safe='')}"
        f"&dates={dates}"
        f"&details={quote(details, safe='')}"
        f"&location={quote(request.location or '', safe='')}"
    )


def build_ics(request: AppointmentNotificationRequest, now: datetime | None = None) -> str:
    """Событие календаря с напоминанием за час."""
    if now is None:
        now = datetime.now(timezone.utc)
    # В ICS перевод строки экранируется как \n
    description = _details(request, "\\n")
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{ICS_PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{request.appointment_id}@piercerhub.com",
        f"DTSTAMP:{_utc_stamp(now)}",
        f"DTSTART:{_utc_stamp(request.start_time)}",
        f"DTEND:{_utc_stamp(request.end_time)}",
        f"SUMMARY:{request.service}",
        f"DESCRIPTION:{description}",
    ]
    if request.location:
        lines.append(f"LOCATION:{request.location}")
    lines += [
        "STATUS:CONFIRMED",
        "BEGIN:VALARM",
        "TRIGGER:-PT1H",
        "ACTION:DISPLAY",
        "DESCRIPTION:Lembrete: Agendamento em 1 hora",
        "END:VALARM",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    return "\r\n".join(lines)


def build_whatsapp_link(
    request: AppointmentNotificationRequest,
    formatted_date: str,
    start: str,
    end: str,
    calendar_link: str,
) -> str | None:
    phone = re.sub(r"\D", "", request.client_phone or "")
    if not phone:
        return None

    text = (
        f"Olá {request.client_name}! ✨\n\n"
        "Seu agendamento foi confirmado:\n\n"
        f"📅 *Serviço:* {request.service}\n"
        f"🗓️ *Data:* {formatted_date}\n"
        f"⏰ *Horário:* {start} às {end}\n"
    )
    if request.location:
        text += f"📍 *Local:* {request.location}\n"
    text += f"\n✅ Adicione ao seu calendário: {calendar_link}\n\nNos vemos em breve!"

    return f"https://wa.me/{phone}?text={quote(text, safe='')}"


def compose_appointment_notification(
    request: AppointmentNotificationRequest, now: datetime | None = None
) -> AppointmentMessage:
    formatted_date = format_date_pt_br(request.start_time)
    start = format_time(request.start_time)
    end = format_time(request.end_time)
    calendar_link = build_google_calendar_link(request)

    return AppointmentMessage(
        to=[request.client_email],
        subject=f"✨ Agendamento Confirmado - {request.service}",
        formatted_date=formatted_date,
        formatted_start_time=start,
        formatted_end_time=end,
        google_calendar_link=calendar_link,
        whatsapp_link=build_whatsapp_link(request, formatted_date, start, end, calendar_link),
        ics_content=build_ics(request, now),
    )


async def send_appointment_notification(
    request: AppointmentNotificationRequest, piercer_email: str | None = None
) -> DispatchResult:
    """
    Собирает подтверждение и отдает его удаленной функции на отправку.
    Письмо пирсеру уходит, если известен его email.
    """
    message = compose_appointment_notification(request)
    payload = {
        "from": settings.NOTIFICATIONS_FROM,
        "appointment_id": request.appointment_id,
        "client_name": request.client_name,
        "client_phone": request.client_phone,
        "service": request.service,
        "location": request.location,
        "piercer_email": request.piercer_email or piercer_email,
        "message": message.model_dump(mode="json"),
    }

    try:
        result = await functions_client.invoke(APPOINTMENT_FUNCTION, payload)
    except (httpx.HTTPStatusError, httpx.RequestError) as e:
        logger.error(f"Failed to dispatch notification for appointment {request.appointment_id}", exc_info=True)
        raise RemoteServiceError() from e

    logger.info(f"Appointment {request.appointment_id} notification dispatched to {request.client_email}")
    return DispatchResult(success=True, id=result.get("id"))
