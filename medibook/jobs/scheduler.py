import logging
from datetime import datetime, timedelta

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.orm import Session

from ..config import settings
from ..database import SessionLocal
from ..models import Appointment, AppointmentStatus, local_tz
from ..services.notifications import send_reminder

logger = logging.getLogger(__name__)


def reminder_window(now: datetime) -> tuple[datetime, datetime]:
    """[now+N h rounded down to the hour, +1 h), naive local like the DB."""
    target = now.astimezone(local_tz()) + timedelta(hours=settings.REMINDER_HOURS_AHEAD)
    start = target.replace(minute=0, second=0, microsecond=0, tzinfo=None)
    return start, start + timedelta(hours=1)


def reminder_job(now: datetime | None = None) -> int:
    now = now or datetime.now(local_tz())
    start, end = reminder_window(now)

    db: Session = SessionLocal()
    sent = 0
    try:
        appts = db.query(Appointment).filter(
            Appointment.start_at >= start,
            Appointment.start_at < end,
            Appointment.status == AppointmentStatus.confirmed,
        ).all()
        for a in appts:
            status = send_reminder(a)
            if status.get("status") == "sent":
                sent += 1
            else:
                logger.info("Reminder not sent: appt_id=%s status=%s", a.appointment_id, status)
    finally:
        db.close()
    logger.info("Reminder job: window=%s..%s sent=%s", start.isoformat(), end.isoformat(), sent)
    return sent


def start_scheduler():
    scheduler = BackgroundScheduler(timezone=settings.TIMEZONE)
    scheduler.add_job(reminder_job, CronTrigger(minute=0))  # hourly
    scheduler.start()
    return scheduler
