"""
Error kinds raised by the guarantor protocol.
Each carries a stable `code` so the HTTP layer (and callers in tests) can tell
NotFound, FailedPrecondition and PermissionDenied apart; `message` is safe to show to users.
"""


class GuarantorError(Exception):
    code = "internal"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthenticated(GuarantorError):
    code = "unauthenticated"


class PermissionDenied(GuarantorError):
    code = "permission-denied"


class InvalidArgument(GuarantorError):
    code = "invalid-argument"


class NotFound(GuarantorError):
    code = "not-found"


class FailedPrecondition(GuarantorError):
    code = "failed-precondition"


class Internal(GuarantorError):
    code = "internal"


class EmailNotConfigured(Internal):
    code = "email-not-configured"
