"""
Database Seed Data Module

Permissions, the four built-in roles with their default permission sets,
and an optional initial admin account. Seeding is idempotent.
Run with: python -m eservice.db.seed_data
"""
import asyncio
from typing import Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from eservice.core.config import settings
from eservice.core.database import AsyncSessionLocal, init_db
from eservice.core.logging_config import logger
from eservice.core.security import get_password_hash
from eservice.models.user import User, Role, Permission, RoleName
from eservice.utils.phone import normalize_phone_number


# ==================== Permission Catalogue ====================

def _crud(resource: str, *extra: str) -> List[str]:
    return [f"{resource}:{action}" for action in ("create", "read", "update", "delete", "manage", *extra)]


PERMISSIONS: List[str] = [
    *_crud("user"),
    *_crud("office", "configure"),
    *_crud("service", "assign-staff"),
    *_crud("staff", "assign-office"),
    *_crud("request", "approve-staff", "approve-manager", "approve-admin", "view-all"),
    *_crud("appointment", "approve"),
    *_crud("report", "send", "approve", "view-all"),
    *_crud("gallery", "upload-images"),
    *_crud("role", "assign-permissions"),
    "permission:read",
    "permission:manage",
    "language:read",
    "language:update",
    "language:manage",
    "about:read",
    "about:update",
    "about:manage",
    "administration:read",
    "administration:update",
    "administration:manage",
    "feedback:create",
    "feedback:read",
    "feedback:manage",
    "file:upload",
    "file:download",
    "file:delete",
    "file:manage",
    "dashboard:view",
    "dashboard:admin",
    "dashboard:manager",
    "dashboard:staff",
    "dashboard:customer",
    "configuration:read",
    "configuration:update",
    "configuration:manage",
    "profile:read",
    "profile:update",
    "profile:change-password",
    "sms:send",
    "otp:send",
    "otp:verify",
]

PROFILE_PERMISSIONS = ["profile:read", "profile:update", "profile:change-password"]
FILE_PERMISSIONS = ["file:upload", "file:download"]

ROLE_PERMISSIONS: Dict[str, List[str]] = {
    RoleName.ADMIN.value: PERMISSIONS,
    RoleName.MANAGER.value: [
        "dashboard:manager", "dashboard:view",
        "office:read", "office:update", "office:configure",
        "service:create", "service:read", "service:update", "service:delete",
        "service:assign-staff", "service:manage",
        "staff:create", "staff:read", "staff:update", "staff:delete",
        "staff:assign-office", "staff:manage",
        "request:read", "request:update", "request:view-all", "request:approve-manager",
        "appointment:create", "appointment:read", "appointment:update", "appointment:manage",
        "appointment:approve",
        "report:create", "report:read", "report:update", "report:delete",
        "report:send", "report:approve", "report:view-all",
        "configuration:read", "configuration:update",
        *PROFILE_PERMISSIONS,
        *FILE_PERMISSIONS,
    ],
    RoleName.STAFF.value: [
        "dashboard:staff", "dashboard:view",
        "service:read",
        "request:read", "request:update", "request:approve-staff",
        "appointment:create", "appointment:read", "appointment:update", "appointment:approve",
        "report:create", "report:read", "report:update",
        "staff:read",
        *PROFILE_PERMISSIONS,
        *FILE_PERMISSIONS,
    ],
    RoleName.CUSTOMER.value: [
        "dashboard:customer", "dashboard:view",
        "office:read", "service:read",
        "request:create", "request:read", "request:update", "request:delete",
        "appointment:create", "appointment:read", "appointment:update", "appointment:delete",
        "feedback:read", "feedback:create",
        *PROFILE_PERMISSIONS,
        *FILE_PERMISSIONS,
    ],
}

ROLE_DESCRIPTIONS = {
    RoleName.ADMIN.value: "System administrator with every permission",
    RoleName.MANAGER.value: "Office manager",
    RoleName.STAFF.value: "Office staff member",
    RoleName.CUSTOMER.value: "Citizen applying for services",
}


def describe_permission(name: str) -> str:
    resource, action = name.split(":", 1)
    return f"{action.replace('-', ' ').capitalize()} {resource}"


# ==================== Seed Functions ====================

async def seed_permissions(db: AsyncSession) -> Dict[str, Permission]:
    """Create missing permissions; returns all of them by name"""
    result = await db.execute(select(Permission))
    existing = {p.name: p for p in result.scalars().all()}

    created = 0
    for name in PERMISSIONS:
        if name not in existing:
            permission = Permission(name=name, description=describe_permission(name))
            db.add(permission)
            existing[name] = permission
            created += 1

    await db.flush()
    if created:
        logger.info(f"[Seed] Created {created} permission(s)")
    return existing


async def get_or_create_role(db: AsyncSession, name: str, office_id: Optional[str] = None) -> Role:
    """Role by case-insensitive name within the office scope (global when office_id is None)"""
    query = select(Role).where(Role.name.ilike(name))
    if office_id:
        query = query.where(Role.office_id == office_id)
    else:
        query = query.where(Role.office_id.is_(None))
    result = await db.execute(query)
    role = result.scalars().first()
    if role is None:
        role = Role(name=name, description=ROLE_DESCRIPTIONS.get(name), office_id=office_id)
        db.add(role)
        await db.flush()
        await db.refresh(role)
    return role


async def seed_roles(db: AsyncSession, permissions: Dict[str, Permission]) -> Dict[str, Role]:
    """Built-in global roles; missing default permissions are added, extra ones kept"""
    roles = {}
    for role_name, permission_names in ROLE_PERMISSIONS.items():
        role = await get_or_create_role(db, role_name)
        assigned = {p.name for p in role.permissions}
        for permission_name in permission_names:
            if permission_name not in assigned:
                role.permissions.append(permissions[permission_name])
        roles[role_name] = role

    await db.flush()
    return roles


async def seed_permissions_and_roles(db: AsyncSession) -> Dict[str, Role]:
    permissions = await seed_permissions(db)
    return await seed_roles(db, permissions)


async def ensure_initial_admin(db: AsyncSession, roles: Dict[str, Role]) -> Optional[User]:
    """Create the admin from INITIAL_ADMIN_* settings when no user has that phone yet"""
    if not settings.INITIAL_ADMIN_PHONE or not settings.INITIAL_ADMIN_PASSWORD:
        return None

    phone = normalize_phone_number(settings.INITIAL_ADMIN_PHONE)
    result = await db.execute(select(User).where(User.phone_number == phone))
    user = result.scalar_one_or_none()
    if user:
        return user

    user = User(
        username=settings.INITIAL_ADMIN_USERNAME,
        phone_number=phone,
        password_hash=get_password_hash(settings.INITIAL_ADMIN_PASSWORD),
        role_id=roles[RoleName.ADMIN.value].id,
        is_active=True,
        phone_verified=True,
    )
    db.add(user)
    await db.flush()
    logger.info(f"[Seed] Created initial admin {user.username}")
    return user


# ==================== Main Seed Function ====================

async def seed_all():
    """Create tables, permissions, roles and the initial admin"""
    await init_db()

    async with AsyncSessionLocal() as db:
        try:
            roles = await seed_permissions_and_roles(db)
            await ensure_initial_admin(db, roles)
            await db.commit()
            logger.info("[Seed] Database seeding completed")
        except Exception as e:
            await db.rollback()
            logger.error(f"[Seed] Error seeding database: {e}", exc_info=True)
            raise


def main():
    asyncio.run(seed_all())


if __name__ == "__main__":
    main()
