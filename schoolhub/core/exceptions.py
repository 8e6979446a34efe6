from fastapi import status


class ServiceError(Exception):
    """A failure the user can recover from; routers turn it into an HTTP error with ``message`` as detail."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthError(ServiceError):
    """Raised when sign-in credentials are rejected. Shown inline on the login form."""

    def __init__(self, message: str = "Invalid login credentials") -> None:
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)
