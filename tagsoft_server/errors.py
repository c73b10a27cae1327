"""
Error types for TagSoft server.

This module defines all exception types raised by the core:
- TagSoftError: Base exception
- Unauthorized: Missing or wrong API key
- ValidationFailed: Payload validation failures
- NotFound: Lookup by id found nothing
- GenerationExhausted: Identifier generator ran out of attempts

Invariants:
    - All errors inherit from TagSoftError
    - Each error declares the HTTP status the API layer responds with
    - The core never builds responses; api/app.py maps errors to JSON
    - Raw credentials never appear in error details
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class TagSoftError(Exception):
    """Base exception for all TagSoft errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        status_code: HTTP status the API layer should use
        details: Additional error context
    """

    status_code = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "TAGSOFT_ERROR"
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for a JSON error body."""
        return {"error": self.message, "error_code": self.code, "details": self.details}


class Unauthorized(TagSoftError):
    """Credential missing or not equal to the configured secret.

    Only the masked form of the supplied credential is kept.
    """

    status_code = 401

    def __init__(self, message: str = "unauthorized", masked_credential: str = "") -> None:
        super().__init__(message, code="UNAUTHORIZED")
        self.masked_credential = masked_credential


class ValidationFailed(TagSoftError):
    """Payload validation failed.

    Raised when:
    - Required field is missing or blank
    - Field value has wrong type
    - Enum value is invalid
    - A referenced entity does not exist
    """

    status_code = 400

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        errors: Optional[List[str]] = None,
    ) -> None:
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details={"field": field_name, "errors": errors or []},
        )
        self.field_name = field_name
        self.errors = errors or []


class NotFound(TagSoftError):
    """Resource not found."""

    status_code = 404

    def __init__(
        self,
        message: str,
        resource_type: str,
        resource_id: str,
    ) -> None:
        super().__init__(
            message,
            code="NOT_FOUND",
            details={
                "resource_type": resource_type,
                "resource_id": resource_id,
            },
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class GenerationExhausted(TagSoftError):
    """No free identifier was found within the attempt budget."""

    status_code = 500

    def __init__(self, prefix: str, slug: str, attempts: int) -> None:
        super().__init__(
            f"Could not generate a unique id for '{prefix}_{slug}' after {attempts} attempts",
            code="ID_GENERATION_EXHAUSTED",
            details={"prefix": prefix, "slug": slug, "attempts": attempts},
        )
        self.prefix = prefix
        self.slug = slug
        self.attempts = attempts
