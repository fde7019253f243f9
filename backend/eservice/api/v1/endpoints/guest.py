"""Public landing data: active offices with their services"""
from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eservice.core.database import get_db
from eservice.models.office import Office
from eservice.models.service import Service

router = APIRouter(prefix="/guest", tags=["Guest"])


@router.get("/data")
async def guest_data(db: AsyncSession = Depends(get_db)):
    offices = (await db.execute(
        select(Office).where(Office.status.is_(True)).order_by(Office.name)
    )).scalars().all()

    services = (await db.execute(
        select(Service.id, Service.name, Service.description, Service.time_to_take, Service.office_id)
        .join(Office, Service.office_id == Office.id)
        .where(Office.status.is_(True))
        .order_by(Service.name)
    )).all()

    by_office = {}
    for row in services:
        by_office.setdefault(row.office_id, []).append({
            "id": row.id,
            "name": row.name,
            "description": row.description,
            "time_to_take": row.time_to_take,
        })

    data = [
        {
            "office_id": office.id,
            "office_name": office.name,
            "office_logo": office.logo,
            "office_slogan": office.slogan,
            "office_room_number": office.room_number,
            "office_address": office.address,
            "services": by_office.get(office.id, []),
        }
        for office in offices
    ]

    return {
        "success": True,
        "data": data,
        "meta": {"total_offices": len(data), "total_services": len(services)},
    }
