"""
Error taxonomy for the catalog options engine.

Every error here is caused by caller input (except InternalError) and is never
retried. The HTTP layer maps ``status_code`` and ``code`` onto the response.
"""
from typing import Any, Dict, Optional


class CatalogError(Exception):
    status_code = 400
    code = "CATALOG_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload = {"detail": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFoundError(CatalogError):
    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found", {"entity": entity, "id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(CatalogError):
    status_code = 422
    code = "VALIDATION_ERROR"


class TypeMismatchError(ValidationError):
    code = "TYPE_MISMATCH"


class ConflictError(CatalogError):
    status_code = 409
    code = "CONFLICT"


class IncompleteSelectionError(CatalogError):
    status_code = 422
    code = "INCOMPLETE_SELECTION"

    def __init__(self, missing_attribute_ids):
        missing = sorted(missing_attribute_ids)
        super().__init__(
            "Selection is missing required variant attributes: "
            + ", ".join(str(a) for a in missing),
            {"missing_attribute_ids": missing},
        )
        self.missing_attribute_ids = missing


class InternalError(CatalogError):
    status_code = 500
    code = "INTERNAL_ERROR"
