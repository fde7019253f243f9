"""
Hahu SMS gateway endpoints.

Sending arbitrary SMS requires `sms:send`; the OTP pair is public so the
signup and forgot-password flows can use it.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from eservice.core.database import get_db
from eservice.core.logging_config import logger
from eservice.core.rate_limiter import strict_rate_limit
from eservice.models.user import User
from eservice.modules.auth.dependencies import require_permission
from eservice.schemas.auth import SendSmsRequest, HahuSendOtpRequest, HahuVerifyOtpRequest, validate_phone
from eservice.services import otp_service
from eservice.services.sms_service import HahuSMSClient, get_sms_client, extract_otp_code, is_otp_verified
from eservice.utils.responses import success_response

router = APIRouter(prefix="/hahusms", tags=["SMS"])


@router.post("")
@strict_rate_limit()
async def send_sms(
    request: Request,
    payload: SendSmsRequest,
    current_user: User = Depends(require_permission("sms:send")),
    sms: HahuSMSClient = Depends(get_sms_client),
):
    result = await sms.send_sms(payload.phone, payload.message)
    return success_response(result, message="SMS sent successfully")


@router.get("")
@strict_rate_limit()
async def send_sms_query(
    request: Request,
    phone: str = Query(..., min_length=1),
    message: str = Query(..., min_length=1, max_length=1000),
    current_user: User = Depends(require_permission("sms:send")),
    sms: HahuSMSClient = Depends(get_sms_client),
):
    """Same as POST, for callers that can only issue GET requests"""
    try:
        phone = validate_phone(phone)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    result = await sms.send_sms(phone, message)
    return success_response(result, message="SMS sent successfully")


@router.post("/send-otp")
@strict_rate_limit()
async def send_gateway_otp(
    request: Request,
    payload: HahuSendOtpRequest,
    db: AsyncSession = Depends(get_db),
    sms: HahuSMSClient = Depends(get_sms_client),
):
    """Hahu generates the code; it is stored locally when the gateway returns it"""
    result = await sms.send_otp(payload.phone, payload.message, payload.expire)

    code = extract_otp_code(result)
    if code:
        await otp_service.store_otp(db, payload.phone, code)
    else:
        logger.warning(f"[HahuSMS] OTP code missing from gateway response: {result}")

    return success_response(result, message="OTP sent successfully")


@router.post("/verify-otp")
async def verify_gateway_otp(
    payload: HahuVerifyOtpRequest,
    db: AsyncSession = Depends(get_db),
    sms: HahuSMSClient = Depends(get_sms_client),
):
    result = await sms.verify_otp(payload.otp)

    if not is_otp_verified(result):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=result.get("message") if isinstance(result, dict) and result.get("message") else "Invalid or expired OTP code"
        )

    if payload.phone:
        await otp_service.consume_otps(db, payload.phone)

    return success_response(result, message="OTP verified successfully")
