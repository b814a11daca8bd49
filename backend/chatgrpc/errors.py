class ServiceError(Exception):
    """Base for failures the engines report back to callers."""

    default_detail = "Request failed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFound(ServiceError):
    default_detail = "Not found"


class AlreadyExists(ServiceError):
    default_detail = "Already exists"


class InvalidArgument(ServiceError):
    default_detail = "Invalid argument"


class PermissionDenied(ServiceError):
    default_detail = "Insufficient permissions"


class FailedPrecondition(ServiceError):
    default_detail = "Failed precondition"


class Unauthenticated(ServiceError):
    default_detail = "Invalid credentials"
