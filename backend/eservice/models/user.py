from sqlalchemy import Column, String, Boolean, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
import enum

from eservice.core.database import Base
from eservice.core.types import GUID, generate_uuid, utcnow


class RoleName(str, enum.Enum):
    """Built-in role names; admins may add custom roles next to these"""
    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"
    CUSTOMER = "customer"


class Permission(Base):
    """Permission in `resource:action` form"""
    __tablename__ = "permissions"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(100), unique=True, index=True, nullable=False)
    description = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<Permission {self.name}>"


class RolePermission(Base):
    """Role <-> permission link"""
    __tablename__ = "role_permissions"
    __table_args__ = (UniqueConstraint("role_id", "permission_id", name="uq_role_permission"),)

    id = Column(GUID, primary_key=True, default=generate_uuid)
    role_id = Column(GUID, ForeignKey("roles.id", ondelete="CASCADE"), nullable=False, index=True)
    permission_id = Column(GUID, ForeignKey("permissions.id", ondelete="CASCADE"), nullable=False, index=True)


class Role(Base):
    """Role, global when office_id is null"""
    __tablename__ = "roles"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    name = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=True)
    office_id = Column(GUID, ForeignKey("offices.id", ondelete="CASCADE"), nullable=True, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    permissions = relationship(
        "Permission",
        secondary="role_permissions",
        lazy="selectin",
        order_by="Permission.name",
    )
    users = relationship("User", back_populates="role", passive_deletes=True)

    @property
    def permission_names(self) -> set:
        return {permission.name for permission in self.permissions}

    def __repr__(self):
        return f"<Role {self.name}>"


class User(Base):
    """Portal user; signs in with phone number + password"""
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    username = Column(String(100), unique=True, index=True, nullable=False)
    phone_number = Column(String(20), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    role_id = Column(GUID, ForeignKey("roles.id", ondelete="SET NULL"), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    phone_verified = Column(Boolean, default=False, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    last_login = Column(DateTime, nullable=True)

    # Relationships
    role = relationship("Role", back_populates="users", lazy="selectin")
    staff_records = relationship(
        "Staff",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def role_name(self) -> str:
        return (self.role.name if self.role else "").lower()

    @property
    def permission_names(self) -> set:
        return self.role.permission_names if self.role else set()

    @property
    def staff(self):
        """The staff record of the user's office, if any"""
        return self.staff_records[0] if self.staff_records else None

    @property
    def office_id(self):
        return self.staff.office_id if self.staff else None

    def has_role(self, *names) -> bool:
        wanted = {n.value if isinstance(n, RoleName) else str(n).lower() for n in names}
        return self.role_name in wanted

    def __repr__(self):
        return f"<User {self.username}>"


class Otp(Base):
    """Last one-time code issued to a phone number"""
    __tablename__ = "otps"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    phone_number = Column(String(20), unique=True, index=True, nullable=False)
    code = Column(String(12), nullable=False)
    expires_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def is_expired(self) -> bool:
        return self.expires_at is not None and self.expires_at < utcnow()
