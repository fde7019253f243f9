"""
OTP endpoints backed by locally generated codes.
The code is delivered through the Hahu gateway; delivery failures do not fail the call.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eservice.core.config import settings
from eservice.core.database import get_db
from eservice.core.exceptions import SMSServiceError
from eservice.core.logging_config import logger
from eservice.core.rate_limiter import strict_rate_limit
from eservice.core.security import generate_otp_code
from eservice.models.user import User
from eservice.schemas.auth import SendOtpRequest, VerifyOtpRequest
from eservice.services import otp_service
from eservice.services.sms_service import HahuSMSClient, get_sms_client
from eservice.utils.responses import success_response

router = APIRouter(prefix="/otp", tags=["OTP"])


@router.post("/send")
@strict_rate_limit()
async def send_otp(
    request: Request,
    payload: SendOtpRequest,
    db: AsyncSession = Depends(get_db),
    sms: HahuSMSClient = Depends(get_sms_client),
):
    code = generate_otp_code()
    await otp_service.store_otp(db, payload.phone_number, code)

    sms_sent = True
    try:
        await sms.send_sms(payload.phone_number, settings.OTP_MESSAGE_TEMPLATE.format(code=code))
    except SMSServiceError as e:
        sms_sent = False
        logger.log_sms_event("otp", payload.phone_number, success=False, reason=e.message)

    data = {
        "phone_number": payload.phone_number,
        "expires_in_minutes": settings.OTP_EXPIRE_MINUTES,
        "sms_sent": sms_sent,
    }
    if not sms_sent and settings.DEBUG:
        # Lets local development continue without a gateway
        data["otp_code"] = code

    return success_response(data, message="OTP sent successfully")


@router.post("/verify")
async def verify_otp(
    payload: VerifyOtpRequest,
    db: AsyncSession = Depends(get_db),
):
    await otp_service.verify_otp(db, payload.phone_number, payload.otp_code)

    result = await db.execute(select(User).where(User.phone_number == payload.phone_number))
    user = result.scalar_one_or_none()
    if user and not user.phone_verified:
        user.phone_verified = True
        await db.flush()

    return success_response({"verified": True}, message="OTP verified successfully")
