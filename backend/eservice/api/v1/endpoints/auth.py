"""
Authentication endpoints: signup, login, token refresh and password management.
Users sign in with their phone number.
"""
import re

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eservice.core.database import get_db
from eservice.core.exceptions import OTPNotFoundError, InvalidOTPError
from eservice.core.logging_config import logger
from eservice.core.rate_limiter import auth_rate_limit, strict_rate_limit
from eservice.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    create_token_pair,
    decode_token,
)
from eservice.core.types import utcnow
from eservice.db.seed_data import get_or_create_role
from eservice.models.user import User, RoleName
from eservice.modules.auth.dependencies import get_current_user
from eservice.schemas.auth import (
    SignupRequest,
    LoginRequest,
    RefreshTokenRequest,
    ResetPasswordRequest,
    ChangePasswordRequest,
    serialize_user,
)
from eservice.services import otp_service
from eservice.utils.responses import success_response

router = APIRouter(prefix="/auth", tags=["Authentication"])


async def build_username(db: AsyncSession, name: str, phone_number: str) -> str:
    """`{name without spaces}_{last 4 phone digits}`, numbered on collision"""
    base = re.sub(r"\s+", "", name.lower())
    digits = re.sub(r"\D", "", phone_number)
    candidate = f"{base}_{digits[-4:]}"

    suffix = 1
    username = candidate
    while True:
        result = await db.execute(select(User.id).where(User.username == username))
        if result.first() is None:
            return username
        suffix += 1
        username = f"{candidate}{suffix}"


@router.post("/signup", status_code=status.HTTP_201_CREATED)
@strict_rate_limit()
async def signup(
    request: Request,
    payload: SignupRequest,
    db: AsyncSession = Depends(get_db)
):
    """Register a customer account"""
    result = await db.execute(select(User).where(User.phone_number == payload.phone_number))
    if result.scalar_one_or_none():
        logger.log_auth_event("signup", False, payload.phone_number, reason="duplicate phone")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User with this phone number already exists"
        )

    if payload.otp_code:
        await otp_service.verify_otp(db, payload.phone_number, payload.otp_code)
        await otp_service.consume_otps(db, payload.phone_number)

    customer_role = await get_or_create_role(db, RoleName.CUSTOMER.value)

    user = User(
        username=await build_username(db, payload.name, payload.phone_number),
        phone_number=payload.phone_number,
        password_hash=get_password_hash(payload.password),
        role_id=customer_role.id,
        is_active=True,
        phone_verified=True,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.log_auth_event("signup", True, user.phone_number, user_id=user.id)

    tokens = create_token_pair(user.id, user.role_name)
    return success_response(
        {"user": serialize_user(user), **tokens},
        message="Account created successfully",
    )


@router.post("/login")
@auth_rate_limit()
async def login(
    request: Request,
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db)
):
    """Login with phone number and password"""
    result = await db.execute(select(User).where(User.phone_number == payload.phone_number))
    user = result.scalar_one_or_none()

    if not user:
        logger.log_auth_event("login", False, payload.phone_number, reason="unknown phone")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Phone number is not found"
        )

    if not verify_password(payload.password, user.password_hash):
        logger.log_auth_event("login", False, payload.phone_number, reason="wrong password")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Password is incorrect"
        )

    if not user.is_active:
        logger.log_auth_event("login", False, payload.phone_number, reason="blocked")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User is blocked. Please contact the administrator"
        )

    user.last_login = utcnow()
    await db.flush()

    logger.log_auth_event("login", True, user.phone_number, user_id=user.id)

    tokens = create_token_pair(user.id, user.role_name)
    return success_response({"user": serialize_user(user), **tokens}, message="Login successful")


@router.post("/refresh")
async def refresh_token(
    payload: RefreshTokenRequest,
    db: AsyncSession = Depends(get_db)
):
    """Exchange a refresh token for a new access token"""
    claims = decode_token(payload.refresh_token)
    if claims.get("type") != "refresh":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type"
        )

    user = await db.get(User, claims.get("sub"))
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive"
        )

    access_token = create_access_token({"sub": str(user.id), "role": user.role_name})
    return success_response({"access_token": access_token, "token_type": "bearer"})


@router.post("/reset-password")
@strict_rate_limit()
async def reset_password(
    request: Request,
    payload: ResetPasswordRequest,
    db: AsyncSession = Depends(get_db)
):
    """Reset a forgotten password with the OTP sent to the phone"""
    try:
        await otp_service.verify_otp(db, payload.phone_number, payload.otp_code)
    except (OTPNotFoundError, InvalidOTPError):
        logger.log_auth_event("reset_password", False, payload.phone_number, reason="invalid otp")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired OTP code"
        )

    result = await db.execute(select(User).where(User.phone_number == payload.phone_number))
    user = result.scalar_one_or_none()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    user.password_hash = get_password_hash(payload.new_password)
    await otp_service.consume_otps(db, payload.phone_number)

    logger.log_auth_event("reset_password", True, user.phone_number, user_id=user.id)
    return success_response(message="Password reset successfully")


@router.post("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    if not verify_password(payload.current_password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect"
        )

    current_user.password_hash = get_password_hash(payload.new_password)
    await db.flush()

    logger.log_auth_event("change_password", True, current_user.phone_number, user_id=current_user.id)
    return success_response(message="Password changed successfully")


@router.get("/me")
async def get_me(current_user: User = Depends(get_current_user)):
    """Current user with role, permissions and office"""
    return success_response(serialize_user(current_user))
