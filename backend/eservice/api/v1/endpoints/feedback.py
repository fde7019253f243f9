"""Customer satisfaction feedback, one per request"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eservice.core.database import get_db
from eservice.core.logging_config import logger
from eservice.models.request import ServiceRequest, Feedback
from eservice.models.user import User
from eservice.modules.auth.dependencies import get_current_user
from eservice.schemas.common import dump
from eservice.schemas.request import FeedbackCreate, FeedbackResponse
from eservice.utils.responses import success_response

router = APIRouter(prefix="/feedback", tags=["Feedback"])


async def get_own_request(db: AsyncSession, request_id: str, user: User, detail: str) -> ServiceRequest:
    request = await db.get(ServiceRequest, request_id)
    if not request:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Request not found")
    if request.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)
    return request


async def find_feedback(db: AsyncSession, request_id: str):
    result = await db.execute(select(Feedback).where(Feedback.request_id == request_id))
    return result.scalar_one_or_none()


@router.get("/{request_id}")
async def get_feedback(
    request_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await get_own_request(db, request_id, current_user, "Unauthorized")
    feedback = await find_feedback(db, request_id)
    return success_response(dump(FeedbackResponse, feedback) if feedback else None)


@router.post("/{request_id}")
async def submit_feedback(
    request_id: str,
    payload: FeedbackCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create or replace the rating for the caller's request"""
    if payload.rating is None or not 1 <= payload.rating <= 5:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Rating is required and must be between 1 and 5"
        )

    await get_own_request(
        db, request_id, current_user,
        "Unauthorized - You can only provide feedback for your own requests",
    )

    feedback = await find_feedback(db, request_id)
    if feedback:
        feedback.rating = payload.rating
        feedback.comment = payload.comment
        message = "Feedback updated successfully"
    else:
        feedback = Feedback(request_id=request_id, rating=payload.rating, comment=payload.comment)
        db.add(feedback)
        message = "Feedback submitted successfully"

    await db.flush()
    await db.refresh(feedback)

    logger.info(f"Feedback saved for request {request_id} by {current_user.id}")
    return success_response(dump(FeedbackResponse, feedback), message=message)
