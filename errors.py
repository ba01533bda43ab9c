"""
Service-level errors. The HTTP layer maps each one to its status code and the
JSON envelope; services never build responses themselves.
"""


class StoreError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StoreError):
    status_code = 400


class AuthError(StoreError):
    status_code = 401


class NotFoundError(StoreError):
    status_code = 404


class InternalError(StoreError):
    status_code = 500
