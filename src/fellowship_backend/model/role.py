from datetime import datetime, timezone
from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime,
    ForeignKey, Integer, String, Text, UniqueConstraint, false, func, true
)
from sqlalchemy.orm import relationship

from .base import Base


def _utcnow():
    return datetime.now(timezone.utc)


SCOPE_LEVELS = ('superadmin', 'national', 'region', 'university', 'smallgroup', 'alumnismallgroup')
ROLE_LEVELS = ('System', 'National', 'Regional', 'Campus', 'SmallGroup', 'GraduateNetwork', 'Department')
PERMISSION_SCOPES = ('global', 'regional', 'university', 'smallgroup', 'alumni_group', 'personal')


def _in(column: str, values) -> str:
    return f"{column} IN ({', '.join(repr(v) for v in values)})"


class Role(Base):
    __tablename__ = 'role'
    __table_args__ = (
        CheckConstraint(_in('level', ROLE_LEVELS), name='ck_role_level'),
    )

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
    description = Column(Text)
    level = Column(String(32), nullable=False)
    is_active = Column(Boolean, nullable=False, server_default=true(), default=True)
    is_system = Column(Boolean, nullable=False, server_default=false(), default=False)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())

    role_permissions = relationship('RolePermission', back_populates='role')
    user_roles = relationship('UserRole', back_populates='role')


class Permission(Base):
    __tablename__ = 'permission'
    __table_args__ = (
        CheckConstraint(_in('scope', PERMISSION_SCOPES), name='ck_permission_scope'),
    )

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
    description = Column(Text)
    resource = Column(String(100), nullable=False, index=True)
    action = Column(String(50), nullable=False)
    scope = Column(String(32), nullable=False, server_default='global', default='global')
    is_active = Column(Boolean, nullable=False, server_default=true(), default=True)
    created_at = Column(DateTime(True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(True), nullable=False, server_default=func.now(), onupdate=func.now())

    role_permissions = relationship('RolePermission', back_populates='permission')


class RolePermission(Base):
    __tablename__ = 'role_permission'
    __table_args__ = (
        UniqueConstraint('role_id', 'permission_id', name='uq_role_permission'),
    )

    id = Column(Integer, primary_key=True)
    role_id = Column(ForeignKey('role.id', ondelete='RESTRICT'), nullable=False, index=True)
    permission_id = Column(ForeignKey('permission.id', ondelete='RESTRICT'), nullable=False, index=True)
    granted_by = Column(ForeignKey('user.id', ondelete='SET NULL'))
    granted_at = Column(DateTime(True), nullable=False, default=_utcnow)

    role = relationship('Role', back_populates='role_permissions')
    permission = relationship('Permission', back_populates='role_permissions')


class UserRole(Base):
    """Scope assignment of a user. One row per user."""
    __tablename__ = 'user_role'
    __table_args__ = (
        CheckConstraint(_in('scope', SCOPE_LEVELS), name='ck_user_role_scope'),
        CheckConstraint(
            "(scope != 'region' OR region_id IS NOT NULL) AND "
            "(scope != 'university' OR university_id IS NOT NULL) AND "
            "(scope != 'smallgroup' OR small_group_id IS NOT NULL) AND "
            "(scope != 'alumnismallgroup' OR alumni_group_id IS NOT NULL)",
            name='ck_user_role_scope_entity'
        ),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, unique=True)
    scope = Column(String(32), nullable=False)
    role_id = Column(ForeignKey('role.id', ondelete='RESTRICT'))
    region_id = Column(ForeignKey('region.id', ondelete='RESTRICT'))
    university_id = Column(ForeignKey('university.id', ondelete='RESTRICT'))
    small_group_id = Column(ForeignKey('small_group.id', ondelete='RESTRICT'))
    alumni_group_id = Column(ForeignKey('alumni_small_group.id', ondelete='RESTRICT'))
    assigned_at = Column(DateTime(True), nullable=False, default=_utcnow)

    user = relationship('User', back_populates='user_role')
    role = relationship('Role', back_populates='user_roles')
