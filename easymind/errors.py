"""
Error types raised by the EasyMind services.

Each carries the message shown to the user and the HTTP status the routes
answer with.
"""


class EasyMindError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {"error": self.message}


class ValidationError(EasyMindError):
    """Form input rejected before any write."""

    def __init__(self, message, field_errors=None):
        super().__init__(message)
        self.field_errors = field_errors or {}

    def to_dict(self):
        data = {"error": self.message}
        if self.field_errors:
            data["fields"] = self.field_errors
        return data


class NotFoundError(EasyMindError):
    status_code = 404


class AccessDenied(EasyMindError):
    status_code = 403


class VerificationError(EasyMindError):
    status_code = 401
