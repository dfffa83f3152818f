class ServiceError(Exception):
    status_code = 500
    retryable = False

    def __init__(self, code: str, message: str | None = None) -> None:
        self.code = code
        self.message = message or code
        super().__init__(self.message)


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409

    def __init__(self, code: str, message: str | None = None, kind: str | None = None) -> None:
        super().__init__(code, message)
        self.kind = kind


class ValidationError(ServiceError):
    status_code = 422


class GatewayError(ServiceError):
    """A collaborator answered, but not with anything we can use."""

    status_code = 502


class InternalError(ServiceError):
    status_code = 500


class ServiceTimeoutError(ServiceError):
    status_code = 504
    retryable = True


class TransportError(ServiceError):
    status_code = 502
    retryable = True
