from typing import Any
from sqlalchemy.orm import Session, Query
from fellowship_backend.api.exceptions import PermissionDenied
from fellowship_backend.interface.scopes import EntityChain, ScopeLevel
from fellowship_backend.permissions.handlers import PermissionHandler
from fellowship_backend.permissions.principal import Principal
from fellowship_backend.permissions.query_builders import HierarchyQueryBuilder, ScopeFilterQueryBuilder


class ScopedEntityPermissionHandler(PermissionHandler):
    """Permission handler for records that store their full entity chain (members, events)"""

    def build_query(self, principal: Principal, action: str, db: Session) -> Query:
        entity_filter = self.require(principal, action)
        return ScopeFilterQueryBuilder.apply(db.query(self.entity), self.entity, entity_filter)


class HierarchyPermissionHandler(PermissionHandler):
    """Permission handler for regions, universities, small groups and alumni small groups.

    Reads see the caller's own chain plus everything below it, so a campus
    leader can look up its region. Writes are held to the scope filter.
    """

    def build_query(self, principal: Principal, action: str, db: Session) -> Query:
        self.require(principal, action)
        return HierarchyQueryBuilder.visible(db.query(self.entity), self.entity, principal.scope)


class AdminPermissionHandler(PermissionHandler):
    """Permission handler for users, roles and permissions: superadmin and national only"""

    def check_admin(self, principal: Principal):
        if not principal.is_admin:
            raise PermissionDenied(detail="Administrator scope required")

    def build_query(self, principal: Principal, action: str, db: Session) -> Query:
        self.check_admin(principal)
        self.require(principal, action)
        return db.query(self.entity)

    def check_write(self, principal: Principal, action: str, chain: EntityChain):
        self.check_admin(principal)
        self.require(principal, action)

    def check_action(self, principal: Principal, action: str):
        self.check_admin(principal)
        self.require(principal, action)


class UserPermissionHandler(AdminPermissionHandler):
    """Admin handler for login users; superadmin accounts are changed by superadmins only"""

    def check_stored(self, principal: Principal, action: str, db_item: Any):
        super().check_stored(principal, action, db_item)

        assignment = db_item.user_role
        if assignment is not None and assignment.scope == ScopeLevel.superadmin.value and not principal.is_superadmin:
            raise PermissionDenied(detail="Only superadmins can change a superadmin account")
