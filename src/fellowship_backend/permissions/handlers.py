from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type
from sqlalchemy.orm import Session, Query
from fellowship_backend.api.exceptions import ForbiddenException
from fellowship_backend.interface.base import ACTIONS
from fellowship_backend.interface.scopes import AccessDecision, EntityChain
from fellowship_backend.permissions.cascade import chain_of, row_values
from fellowship_backend.permissions.gate import enforce_write, ensure_allowed
from fellowship_backend.permissions.principal import Principal


class PermissionHandler(ABC):
    """Base class for entity-specific permission handlers"""

    def __init__(self, entity: Type[Any], resource: Optional[str] = None):
        self.entity = entity
        self.resource_name = resource or entity.__tablename__

    def decide(self, principal: Principal, action: str) -> AccessDecision:
        """Run the access gate for a CRUD action (get/list map to read)."""
        return principal.authorize(self.resource_name, ACTIONS.get(action, action))

    @abstractmethod
    def build_query(self, principal: Principal, action: str, db: Session) -> Query:
        """Build a query narrowed to the rows the principal may act on"""
        pass

    def check_write(self, principal: Principal, action: str, chain: EntityChain):
        """Reject a create/update/delete whose target chain is outside the caller's scope"""
        enforce_write(self.decide(principal, action), chain)

    def require(self, principal: Principal, action: str):
        decision = self.decide(principal, action)
        return ensure_allowed(decision, self.resource_name, ACTIONS.get(action, action))

    def check_action(self, principal: Principal, action: str):
        """Check the action alone, before the target row is known"""
        self.require(principal, action)

    def check_stored(self, principal: Principal, action: str, db_item: Any):
        """Reject an update or delete of a stored row that lies outside the caller's scope"""
        self.check_write(principal, action, chain_of(self.entity, row_values(db_item)))


class PermissionRegistry:
    """Registry for managing entity permission handlers"""

    _instance = None
    _handlers: Dict[Type[Any], PermissionHandler] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def register(self, entity: Type[Any], handler: PermissionHandler):
        """Register a permission handler for an entity"""
        self._handlers[entity] = handler

    def get_handler(self, entity: Type[Any]) -> Optional[PermissionHandler]:
        """Get the permission handler for an entity"""
        return self._handlers.get(entity)

    def check_permissions(self, principal: Principal, entity: Type[Any], action: str, db: Session) -> Query:
        """Check permissions and return filtered query"""
        handler = self.get_handler(entity)
        if not handler:
            # Fallback to superadmin-only if no handler registered
            if not principal.is_superadmin:
                raise ForbiddenException(detail=f"No access rules defined for {entity.__tablename__}")
            return db.query(entity)

        return handler.build_query(principal, action, db)

    def check_write(self, principal: Principal, entity: Type[Any], action: str, chain: EntityChain):
        handler = self.get_handler(entity)
        if not handler:
            if not principal.is_superadmin:
                raise ForbiddenException(detail=f"No access rules defined for {entity.__tablename__}")
            return
        handler.check_write(principal, action, chain)

    def check_action(self, principal: Principal, entity: Type[Any], action: str):
        handler = self.get_handler(entity)
        if not handler:
            if not principal.is_superadmin:
                raise ForbiddenException(detail=f"No access rules defined for {entity.__tablename__}")
            return
        handler.check_action(principal, action)

    def check_stored(self, principal: Principal, entity: Type[Any], action: str, db_item: Any):
        handler = self.get_handler(entity)
        if not handler:
            if not principal.is_superadmin:
                raise ForbiddenException(detail=f"No access rules defined for {entity.__tablename__}")
            return
        handler.check_stored(principal, action, db_item)


# Global registry instance
permission_registry = PermissionRegistry()
