# medibook/services/sms.py
import logging

from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from ..config import settings
from ..errors import ConfigurationError, UpstreamDegraded

logger = logging.getLogger(__name__)


def _normalize_phone(number: str) -> str:
    number = (number or "").strip().replace(" ", "").replace("-", "")
    if number and not number.startswith("+"):
        number = "+" + number
    return number


def get_twilio_client() -> Client | None:
    if not settings.TWILIO_ACCOUNT_SID or not settings.TWILIO_AUTH_TOKEN:
        return None
    return Client(settings.TWILIO_ACCOUNT_SID, settings.TWILIO_AUTH_TOKEN)


def send_sms(to: str, body: str) -> dict:
    """
    Sends an SMS through Twilio.
    - DRY_RUN=true: nothing is sent, the message is logged and {"dryRun": True} returned
    - missing credentials/sender: ConfigurationError
    - Twilio failure: UpstreamDegraded
    """
    to_norm = _normalize_phone(to)

    if settings.DRY_RUN:
        logger.info("[DRY_RUN SMS] to=%s body=%s", to_norm, body.replace("\n", " | "))
        return {"dryRun": True, "to": to_norm}

    client = get_twilio_client()
    if client is None or not settings.TWILIO_SMS_FROM:
        raise ConfigurationError("Twilio configuration incomplete (TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_SMS_FROM).")

    try:
        msg = client.messages.create(from_=_normalize_phone(settings.TWILIO_SMS_FROM), to=to_norm, body=body)
    except (TwilioException, OSError) as e:
        logger.warning("SMS send failed: to=%s err=%s", to_norm, e)
        raise UpstreamDegraded(f"SMS delivery failed: {e}")

    logger.info("SMS sent: to=%s sid=%s", to_norm, msg.sid)
    return {"sid": msg.sid, "to": to_norm}
