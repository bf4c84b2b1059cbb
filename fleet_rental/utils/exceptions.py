from fastapi import HTTPException, status


# ═══════════════════════════════════════════════════════════════════════════════
# ERROR CODES: machine-readable constants for frontend switch/case
# ═══════════════════════════════════════════════════════════════════════════════
class ErrorCode:
    VALIDATION_ERROR        = "VALIDATION_ERROR"
    NOT_FOUND               = "NOT_FOUND"
    DUPLICATE_ENTRY         = "DUPLICATE_ENTRY"
    DELETION_BLOCKED        = "DELETION_BLOCKED"
    CONCURRENT_MODIFICATION = "CONCURRENT_MODIFICATION"
    ALREADY_BOOKED          = "ALREADY_BOOKED"
    VEHICLE_UNAVAILABLE     = "VEHICLE_UNAVAILABLE"
    ALREADY_RETURNED        = "ALREADY_RETURNED"
    INVALID_DATE_RANGE      = "INVALID_DATE_RANGE"
    OPERATION_CANCELLED     = "OPERATION_CANCELLED"
    INTERNAL_SERVER_ERROR   = "INTERNAL_SERVER_ERROR"


# ═══════════════════════════════════════════════════════════════════════════════
# BASE EXCEPTION
# ═══════════════════════════════════════════════════════════════════════════════
class AppException(HTTPException):
    """
    Base exception for all application-level errors.
    Carries a machine-readable error_code for frontend handling.
    """
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: str,
        details: list | None = None,
        field: str | None = None,
    ):
        self.message    = message
        self.error_code = error_code
        self.details    = details
        super().__init__(status_code=status_code, detail={
            "message": message,
            "error": {
                "code": error_code,
                "details": details,
                "field": field,
            }
        })

    def __str__(self) -> str:
        return f"{self.error_code}: {self.message}"


# ═══════════════════════════════════════════════════════════════════════════════
# CONCRETE EXCEPTIONS
# ═══════════════════════════════════════════════════════════════════════════════

class NotFoundException(AppException):
    def __init__(self, resource: str = "Resource"):
        super().__init__(status.HTTP_404_NOT_FOUND, f"{resource} not found", ErrorCode.NOT_FOUND)


class DuplicateEntryException(AppException):
    def __init__(self, message: str = "Record already exists", field: str | None = None):
        super().__init__(status.HTTP_409_CONFLICT, message, ErrorCode.DUPLICATE_ENTRY, field=field)


class DeletionBlockedException(AppException):
    """Strict delete refused. `summary` maps each dependent level to its row count."""
    def __init__(self, entity: str, summary: dict[str, int]):
        self.summary = summary
        super().__init__(
            status.HTTP_409_CONFLICT,
            f"{entity} has dependent records; confirm a collective delete to remove them",
            ErrorCode.DELETION_BLOCKED,
            details=[{"kind": kind, "count": count} for kind, count in summary.items()],
        )


class ConflictException(AppException):
    def __init__(self, message: str = "The records changed while the operation was running. Please retry."):
        super().__init__(status.HTTP_409_CONFLICT, message, ErrorCode.CONCURRENT_MODIFICATION)


class StalePlanException(ConflictException):
    def __init__(self):
        super().__init__("Deletion plan is stale: dependents changed since it was computed")


class AlreadyBookedException(AppException):
    def __init__(
        self,
        message: str = "Vehicle is already booked for the requested dates",
        error_code: str = ErrorCode.ALREADY_BOOKED,
    ):
        super().__init__(status.HTTP_409_CONFLICT, message, error_code)


class VehicleUnavailableException(AlreadyBookedException):
    def __init__(self):
        super().__init__(
            "Vehicle is unavailable for the selected dates",
            ErrorCode.VEHICLE_UNAVAILABLE,
        )


class AlreadyReturnedException(AppException):
    def __init__(self):
        super().__init__(
            status.HTTP_409_CONFLICT,
            "Vehicle for this rental has already been returned",
            ErrorCode.ALREADY_RETURNED,
        )


class InvalidDateRangeException(AppException):
    def __init__(self):
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            "Return date must be after pick-up date",
            ErrorCode.INVALID_DATE_RANGE,
        )


class OperationCancelledException(AppException):
    def __init__(self):
        super().__init__(
            status.HTTP_409_CONFLICT,
            "Operation was cancelled before commit; nothing was changed",
            ErrorCode.OPERATION_CANCELLED,
        )
