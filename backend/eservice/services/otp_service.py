"""One-time codes stored per phone number"""
from datetime import timedelta
from typing import Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from eservice.core.config import settings
from eservice.core.exceptions import OTPNotFoundError, InvalidOTPError
from eservice.core.types import utcnow
from eservice.models.user import Otp


async def store_otp(db: AsyncSession, phone_number: str, code: str) -> Otp:
    """Upsert the phone's code; the previous code stops being valid"""
    expires_at = utcnow() + timedelta(minutes=settings.OTP_EXPIRE_MINUTES)

    result = await db.execute(select(Otp).where(Otp.phone_number == phone_number))
    otp = result.scalar_one_or_none()
    if otp:
        otp.code = str(code)
        otp.expires_at = expires_at
    else:
        otp = Otp(phone_number=phone_number, code=str(code), expires_at=expires_at)
        db.add(otp)
    await db.flush()
    return otp


async def get_otp(db: AsyncSession, phone_number: str) -> Optional[Otp]:
    result = await db.execute(select(Otp).where(Otp.phone_number == phone_number))
    return result.scalar_one_or_none()


async def verify_otp(db: AsyncSession, phone_number: str, code: str) -> Otp:
    """
    Check `code` against the stored one.

    Raises OTPNotFoundError when nothing was issued and InvalidOTPError
    on mismatch or expiry.
    """
    otp = await get_otp(db, phone_number)
    if otp is None:
        raise OTPNotFoundError(phone_number)
    if otp.is_expired() or str(otp.code).strip() != str(code).strip():
        raise InvalidOTPError()
    return otp


async def consume_otps(db: AsyncSession, phone_number: str) -> None:
    await db.execute(delete(Otp).where(Otp.phone_number == phone_number))
    await db.flush()
