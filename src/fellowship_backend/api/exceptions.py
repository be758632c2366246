from typing import Any, Dict, Optional
from fastapi import HTTPException, status

class NotFoundException(HTTPException):
    code = "NOT_FOUND"
    def __init__(self,detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_404_NOT_FOUND
        self.detail = detail or "Not found"

class ForbiddenException(HTTPException):
    code = "FORBIDDEN"
    def __init__(self,detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_403_FORBIDDEN
        self.detail = detail or "Forbidden"

class BadRequestException(HTTPException):
    code = "VALIDATION_ERROR"
    def __init__(self,detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_400_BAD_REQUEST
        self.detail = detail or "Bad request"

class UnauthorizedException(HTTPException):
    code = "UNAUTHENTICATED"
    def __init__(self,detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_401_UNAUTHORIZED
        self.detail = detail or "Unauthorized"

class BasicAuthException(HTTPException):
    code = "UNAUTHENTICATED"
    def __init__(self,detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = {"WWW-Authenticate": "Basic"}
        self.status_code = status.HTTP_401_UNAUTHORIZED
        self.detail = "Incorrect username or password"

class ConflictException(HTTPException):
    code = "CONFLICT"
    def __init__(self,detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_409_CONFLICT
        self.detail = detail or "Conflict"

class InternalServerException(HTTPException):
    code = "INTERNAL_ERROR"
    def __init__(self,detail: Any = None, headers: Optional[Dict[str, str]] = None):
        self.headers = headers
        self.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        self.detail = detail or "Internal server error"

# Access control

class NoScopeAssigned(ForbiddenException):
    code = "NO_SCOPE_ASSIGNED"
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(detail or "No role found for user", headers)

class PermissionDenied(ForbiddenException):
    code = "PERMISSION_DENIED"
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(detail or "Permission denied", headers)

class ScopeViolation(ForbiddenException):
    code = "SCOPE_VIOLATION"
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(detail or "Target entity is outside of your scope", headers)

class ScopeEntityNotFound(NotFoundException):
    code = "SCOPE_ENTITY_NOT_FOUND"
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(detail or "Entity referenced by the scope assignment does not exist", headers)

# Roles and permissions

class RoleNotFound(NotFoundException):
    code = "ROLE_NOT_FOUND"
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(detail or "Role not found", headers)

class PermissionNotFound(NotFoundException):
    code = "PERMISSION_NOT_FOUND"
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(detail or "Permission not found", headers)

class AssignmentNotFound(NotFoundException):
    code = "ASSIGNMENT_NOT_FOUND"
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(detail or "Role permission assignment not found", headers)

class AlreadyAssigned(ConflictException):
    code = "ALREADY_ASSIGNED"
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(detail or "Permission is already assigned to this role", headers)

class DuplicateName(ConflictException):
    code = "DUPLICATE_NAME"
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(detail or "Name already exists", headers)

class HasActiveAssignments(ConflictException):
    code = "HAS_ACTIVE_ASSIGNMENTS"
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(detail or "Cannot delete while active assignments exist", headers)

class ReconcileTransactionError(InternalServerException):
    code = "TRANSACTION_FAILED"
    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(detail or "Failed to update permissions, no changes were applied", headers)
