"""
Custom Exceptions for the E-Service Portal
==========================================

Services raise these instead of generic Exception so the API layer can map
them onto the standard failure envelope with the right status code.

Usage:
    from eservice.core.exceptions import ResourceNotFoundError

    if not office:
        raise ResourceNotFoundError("Office", office_id)
"""

from typing import Optional, Any, Dict, List


class PortalError(Exception):
    """Base exception for all portal errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Authentication & Authorization Errors
# ============================================

class AuthenticationError(PortalError):
    """User authentication failed"""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, code="AUTH_FAILED")


class AuthorizationError(PortalError):
    """User not authorized for this action"""

    status_code = 403

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, code="NOT_AUTHORIZED")


class PermissionDeniedError(AuthorizationError):
    """A required permission is missing from the user's role"""

    def __init__(self, permissions: List[str]):
        if len(permissions) == 1:
            message = f"Permission '{permissions[0]}' required"
        else:
            message = f"One of permissions {', '.join(repr(p) for p in permissions)} required"
        super().__init__(message)
        self.code = "PERMISSION_DENIED"
        self.details = {"required": permissions}


# ============================================
# Resource Errors (404-type)
# ============================================

class ResourceNotFoundError(PortalError):
    """Base class for not found errors"""

    status_code = 404

    def __init__(self, resource_type: str, resource_id: Optional[str] = None, message: Optional[str] = None):
        super().__init__(
            message or f"{resource_type} not found",
            code=f"{resource_type.upper().replace(' ', '_')}_NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id} if resource_id else {}
        )


class OTPNotFoundError(ResourceNotFoundError):
    """No OTP was issued for the phone number"""

    def __init__(self, phone_number: str):
        super().__init__("OTP", message="OTP not found. Please request a new one")
        self.details = {"phone_number": phone_number}


# ============================================
# Validation Errors (400-type)
# ============================================

class ValidationError(PortalError):
    """Input validation failed"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class DuplicateResourceError(ValidationError):
    """A unique field already holds this value"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, field)
        self.code = "DUPLICATE_RESOURCE"


class WorkflowError(ValidationError):
    """Approval workflow step is not allowed in the current state"""

    def __init__(self, message: str):
        super().__init__(message)
        self.code = "WORKFLOW_ERROR"


class InvalidOTPError(ValidationError):
    """OTP code does not match or has expired"""

    def __init__(self, message: str = "Invalid or expired OTP code"):
        super().__init__(message, field="otp_code")
        self.code = "INVALID_OTP"


class InvalidFileTypeError(ValidationError):
    """File type not allowed"""

    def __init__(self, file_type: str, allowed_types: list):
        super().__init__(
            f"File type '{file_type}' not allowed. Allowed: {', '.join(allowed_types)}"
        )
        self.code = "INVALID_FILE_TYPE"
        self.details = {"file_type": file_type, "allowed_types": allowed_types}


class FileTooLargeError(ValidationError):
    """Upload exceeds the configured size limit"""

    def __init__(self, size: int, max_size: int):
        super().__init__(
            f"File too large. Maximum size is {max_size // 1024 // 1024}MB"
        )
        self.code = "FILE_TOO_LARGE"
        self.details = {"size": size, "max_size": max_size}


class InvalidFilenameError(ValidationError):
    """Filename tries to escape the storage directory"""

    def __init__(self, filename: str):
        super().__init__("Invalid filename")
        self.code = "INVALID_FILENAME"
        self.details = {"filename": filename}


# ============================================
# Storage Errors
# ============================================

class StorageError(PortalError):
    """Storage operation failed"""

    def __init__(self, message: str):
        super().__init__(message, code="STORAGE_ERROR")


class MissingChunkError(StorageError):
    """A chunk is absent when the upload is being assembled"""

    def __init__(self, chunk_index: int):
        super().__init__(f"Missing chunk_{chunk_index}")
        self.code = "MISSING_CHUNK"
        self.details = {"chunk_index": chunk_index}


# ============================================
# SMS Gateway Errors
# ============================================

class SMSServiceError(PortalError):
    """SMS gateway call failed"""

    status_code = 502

    def __init__(self, message: str, provider_response: Optional[Any] = None):
        super().__init__(message, code="SMS_SERVICE_ERROR")
        if provider_response is not None:
            self.details["provider_response"] = provider_response


class SMSNotConfiguredError(SMSServiceError):
    """Gateway credentials are missing"""

    status_code = 503

    def __init__(self):
        super().__init__("Hahu SMS API not configured")
        self.code = "SMS_NOT_CONFIGURED"


# ============================================
# Localization Errors
# ============================================

class LocaleError(PortalError):
    """Unknown language code or unreadable locale file"""

    status_code = 400

    def __init__(self, message: str, lang_code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message, code="LOCALE_ERROR", status_code=status_code)
        if lang_code:
            self.details["lang_code"] = lang_code


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: PortalError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    body: Dict[str, Any] = {
        "success": False,
        "error": error.message,
        "code": error.code,
    }
    if error.details:
        body["details"] = error.details
    return body
