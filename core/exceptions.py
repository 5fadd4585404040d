"""
Custom exceptions for SiteAudit
Provides structured error handling across all domains
"""
from typing import Any, Dict, Optional


class SiteAuditError(Exception):
    """Base exception for all SiteAudit errors"""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a serializable dictionary"""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(SiteAuditError):
    """Raised when input validation fails"""

    def __init__(self, message: str, field: Optional[str] = None, **details):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details={"field": field, **details} if field else details,
        )


class ConfigurationError(SiteAuditError):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, setting: Optional[str] = None, **details):
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details={"setting": setting, **details} if setting else details,
        )


class ScoringError(SiteAuditError):
    """Raised when an audit cannot be scored"""

    def __init__(self, message: str, audit_id: Optional[str] = None, **details):
        super().__init__(
            message=message,
            error_code="SCORING_ERROR",
            details={"audit_id": audit_id, **details},
        )


class ExportError(SiteAuditError):
    """Raised when an audit cannot be transformed for export"""

    def __init__(self, message: str, audit_id: Optional[str] = None, **details):
        super().__init__(
            message=message,
            error_code="EXPORT_ERROR",
            details={"audit_id": audit_id, **details},
        )


class WarehouseError(SiteAuditError):
    """Raised when warehouse operations fail"""

    def __init__(self, message: str, operation: Optional[str] = None, **details):
        super().__init__(
            message=message,
            error_code="WAREHOUSE_ERROR",
            details={"operation": operation, **details} if operation else details,
        )
