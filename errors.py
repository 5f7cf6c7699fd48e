"""
Error types raised by the entity and auth layers.

Each class carries the HTTP status it maps to; main.py renders them as
``{"detail": message}``.
"""


class StorefrontError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(StorefrontError):
    status_code = 400


class DuplicateNameError(ValidationError):
    pass


class InvalidCategoryError(ValidationError):
    def __init__(self, message: str = "Invalid category"):
        super().__init__(message)


class NotFoundError(StorefrontError):
    status_code = 404


class AuthError(StorefrontError):
    status_code = 401


class InvalidCredentialsError(AuthError):
    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class ForbiddenError(StorefrontError):
    status_code = 403


class AccountDisabledError(ForbiddenError):
    def __init__(self, message: str = "Your account has been deactivated. Please contact the administrator."):
        super().__init__(message)


class DependencyError(StorefrontError):
    status_code = 400


class HasDependentsError(DependencyError):
    pass
