# medibook/services/google_calendar.py
from __future__ import annotations
import os, json, logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional

import httplib2
import google_auth_httplib2
from dateutil import parser as dtparser
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..config import settings
from ..errors import ConfigurationError, UpstreamDegraded
from .. import models

logger = logging.getLogger(__name__)

_SCOPES = ["https://www.googleapis.com/auth/calendar"]
_credentials_cache = None


@dataclass(frozen=True)
class BusyInterval:
    start: datetime
    end: datetime


# ====== Authentication ======
def _load_credentials():
    """
    OAuth2 with a stored refresh token (GOOGLE_CLIENT_ID/SECRET/REFRESH_TOKEN);
    otherwise a service account from GCAL_SA_JSON (JSON or path to a file),
    optionally impersonating GCAL_IMPERSONATE_EMAIL.
    google-auth refreshes the access token on demand.
    """
    if settings.GOOGLE_REFRESH_TOKEN and settings.GOOGLE_CLIENT_ID and settings.GOOGLE_CLIENT_SECRET:
        return Credentials(
            token=None,
            refresh_token=settings.GOOGLE_REFRESH_TOKEN,
            client_id=settings.GOOGLE_CLIENT_ID,
            client_secret=settings.GOOGLE_CLIENT_SECRET,
            token_uri=settings.GOOGLE_TOKEN_URI,
            scopes=_SCOPES,
        )

    sa_json = settings.GCAL_SA_JSON
    if not sa_json:
        raise ConfigurationError(
            "Google Calendar credentials missing: set GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET "
            "and GOOGLE_REFRESH_TOKEN, or GCAL_SA_JSON."
        )
    try:
        if os.path.exists(sa_json):
            with open(sa_json, "r", encoding="utf-8") as f:
                info = json.load(f)
        else:
            info = json.loads(sa_json)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Invalid GCAL_SA_JSON: {e}")

    creds = service_account.Credentials.from_service_account_info(info, scopes=_SCOPES)
    if settings.GCAL_IMPERSONATE_EMAIL:
        creds = creds.with_subject(settings.GCAL_IMPERSONATE_EMAIL)
    return creds


def _get_service():
    """
    Credentials are cached; the client is built per call because
    httplib2.Http is not thread-safe and routes run in a threadpool.
    """
    global _credentials_cache
    if _credentials_cache is None:
        _credentials_cache = _load_credentials()
        logger.info("Google Calendar credentials loaded (%s)", type(_credentials_cache).__module__)
    http = google_auth_httplib2.AuthorizedHttp(
        _credentials_cache, http=httplib2.Http(timeout=settings.GCAL_TIMEOUT_SECONDS)
    )
    return build("calendar", "v3", http=http, cache_discovery=False)


def _execute(request, what: str):
    """Single attempt, no retry. Transport/API failures become UpstreamDegraded."""
    try:
        return request.execute(num_retries=0)
    except (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError) as e:
        logger.warning("GCAL %s failed: %s", what, e)
        raise UpstreamDegraded(f"Google Calendar {what} failed: {e}")


# ====== Time helpers ======
def _day_bounds(day: date) -> tuple[datetime, datetime]:
    tz = models.local_tz()
    start = tz.localize(datetime.combine(day, datetime.min.time()))
    return start, start + timedelta(days=1)


def _iso_to_dt(s: str) -> datetime:
    """Google answers in UTC ('...Z') or with an offset; normalized to clinic time."""
    dt = dtparser.isoparse(s)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=models.local_tz())
    return dt.astimezone(models.local_tz())


# ====== Free/busy ======
def get_busy_intervals(calendar_id: str, day: date) -> List[BusyInterval]:
    """Busy windows of the calendar during [day 00:00, day+1 00:00) at clinic offset."""
    service = _get_service()
    t_min, t_max = _day_bounds(day)
    body = {
        "timeMin": t_min.isoformat(),
        "timeMax": t_max.isoformat(),
        "timeZone": settings.TIMEZONE,
        "items": [{"id": calendar_id}],
    }
    logger.debug("GCAL freebusy request: %s", body)
    resp = _execute(service.freebusy().query(body=body), "freebusy")

    cal = (resp.get("calendars") or {}).get(calendar_id) or {}
    if cal.get("errors"):
        reasons = ", ".join(err.get("reason", "unknown") for err in cal["errors"])
        raise UpstreamDegraded(f"Google Calendar freebusy error for {calendar_id}: {reasons}")

    out = [BusyInterval(_iso_to_dt(b["start"]), _iso_to_dt(b["end"])) for b in cal.get("busy", [])]
    logger.debug("GCAL freebusy busy_windows=%s", [(b.start.isoformat(), b.end.isoformat()) for b in out])
    return out


# ====== Events ======
def create_event(
    calendar_id: str,
    summary: str,
    start: datetime,
    end: datetime,
    description: str = "",
    attendees: Optional[List[str]] = None,
    timezone: Optional[str] = None,
) -> dict:
    """Inserts an event and returns {"id", "htmlLink"}."""
    service = _get_service()
    tzname = timezone or settings.TIMEZONE
    body = {
        "summary": summary,
        "description": description or "",
        "start": {"dateTime": models.as_local(start).isoformat(), "timeZone": tzname},
        "end": {"dateTime": models.as_local(end).isoformat(), "timeZone": tzname},
        "attendees": [{"email": a} for a in (attendees or []) if a],
    }
    logger.info("GCAL create_event request: calendar_id=%s start=%s end=%s",
                calendar_id, body["start"]["dateTime"], body["end"]["dateTime"])

    ev = _execute(service.events().insert(calendarId=calendar_id, body=body), "event insert")
    logger.info("GCAL create_event OK: event_id=%s htmlLink=%s", ev.get("id"), ev.get("htmlLink"))
    return {"id": ev.get("id"), "htmlLink": ev.get("htmlLink")}


# ====== Diagnostics for the admin router ======
def list_calendars() -> list[dict]:
    service = _get_service()
    resp = _execute(service.calendarList().list(), "calendarList")
    return [{
        "id": c.get("id"),
        "summary": c.get("summary"),
        "timeZone": c.get("timeZone"),
        "accessRole": c.get("accessRole"),
    } for c in resp.get("items", [])]
