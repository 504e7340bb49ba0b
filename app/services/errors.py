class ServiceError(Exception):
    status_code = 500
    reason = "Internal Server Error."


class NotFoundError(ServiceError):
    status_code = 404
    reason = "The required object was not found."


class ConflictError(ServiceError):
    status_code = 409
    reason = "Integrity constraint has been violated."


class ValidationError(ServiceError):
    status_code = 400
    reason = "Incorrectly made request."


class CapacityChangedError(ConflictError):
    """Raised when the confirmed counter moved between read and write."""
