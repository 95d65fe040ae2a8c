from __future__ import annotations
from typing import Optional


class PreserverError(Exception):
    """Base for every error the service raises on purpose."""


class ValidationError(PreserverError, ValueError):
    pass


class NotFound(PreserverError):
    def __init__(self, entity: str, entity_id: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        detail = f"{entity} not found" if entity_id is None else f"{entity} {entity_id} not found"
        super().__init__(detail)


class InvalidTransition(PreserverError):
    def __init__(self, transition: str, expected: str, actual: str):
        self.transition = transition
        self.expected = expected
        self.actual = actual
        super().__init__(f"Cannot {transition}: expected status {expected}, found {actual}")


class ConflictError(PreserverError):
    pass


class Forbidden(PreserverError, PermissionError):
    pass


class RepositoryError(PreserverError):
    pass


class ExternalServiceError(PreserverError):
    pass
