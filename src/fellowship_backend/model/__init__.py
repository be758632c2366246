from .base import Base, metadata
from .auth import User
from .hierarchy import Region, University, SmallGroup, AlumniSmallGroup
from .role import Role, Permission, RolePermission, UserRole
from .member import Member, Event

__all__ = [
    'Base', 'metadata',
    'User',
    'Region', 'University', 'SmallGroup', 'AlumniSmallGroup',
    'Role', 'Permission', 'RolePermission', 'UserRole',
    'Member', 'Event',
]
