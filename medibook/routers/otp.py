import logging

from fastapi import APIRouter, Depends, HTTPException

from .. import email_templates, schemas
from ..config import settings
from ..errors import SchedulingError
from ..services.mailer import send_email
from ..services.otp import OtpService, get_otp_service
from ..services.sms import send_sms

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/otp", tags=["otp"])


@router.post("/send")
def send_otp(req: schemas.OtpSendRequest, otp: OtpService = Depends(get_otp_service)):
    """
    Issues a 6-digit code and delivers it by email (or SMS for phone-only
    contacts). Missing SMTP/Twilio settings fail fast with a 500.
    """
    contact = req.contact
    if not contact:
        raise HTTPException(status_code=400, detail="Email or phone is required.")

    code = otp.issue(contact)
    ttl_minutes = max(1, otp.ttl_seconds // 60)
    try:
        if req.email:
            subject, html, text = email_templates.one_time_passcode(code, req.name, ttl_minutes, otp.max_attempts)
            info = send_email(req.email, subject, html, text)
            channel = "email"
        else:
            info = send_sms(req.phone, f"Your {settings.CLINIC_NAME} OTP is {code}. It expires in {ttl_minutes} minutes.")
            channel = "sms"
    except SchedulingError:
        # An undelivered code must not stay verifiable
        otp.revoke(contact)
        raise

    logger.info("OTP delivered via %s to %s", channel, contact)
    return {
        "success": True,
        "channel": channel,
        "expiresIn": otp.ttl_seconds,
        "messageId": info.get("messageId") or info.get("sid"),
    }


@router.post("/verify")
def verify_otp(req: schemas.OtpVerifyRequest, otp: OtpService = Depends(get_otp_service)):
    contact = req.contact
    if not contact:
        raise HTTPException(status_code=400, detail="Email or phone is required.")
    result = otp.verify(contact, req.otp)
    return {"success": result.valid, **result.to_dict()}


@router.get("/status/{contact}")
def otp_status(contact: str, otp: OtpService = Depends(get_otp_service)):
    status = otp.status(contact)
    if status is None:
        return {"exists": False}
    return status
