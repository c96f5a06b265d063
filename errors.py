from enum import Enum


class ErrorKind(str, Enum):
    INVALID_DATA = "invalid_data"
    INVALID_INTERVAL = "invalid_interval"
    SCHEDULING_CONFLICT = "scheduling_conflict"
    SEAT_CONFLICT = "seat_conflict"
    NOT_FOUND = "not_found"
    # movie catalog only
    DUPLICATE = "duplicate"


HTTP_STATUS = {
    ErrorKind.INVALID_DATA: 400,
    ErrorKind.INVALID_INTERVAL: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.SCHEDULING_CONFLICT: 409,
    ErrorKind.SEAT_CONFLICT: 409,
    ErrorKind.DUPLICATE: 409,
}


class DomainError(Exception):
    """An expected business outcome, tagged with its ErrorKind."""

    def __init__(self, kind: ErrorKind, message: str, errors=None):
        self.kind = kind
        self.message = message
        self.errors = errors or []
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return HTTP_STATUS[self.kind]

    def to_dict(self):
        body = {"message": self.message, "error": self.kind.value}
        if self.errors:
            body["errors"] = self.errors
        return body


class InternalError(Exception):
    """Unexpected storage failure. Never part of the domain taxonomy."""


def invalid_data(exc):
    """Turn a marshmallow ValidationError into an INVALID_DATA DomainError."""
    errors = []
    for field, messages in (exc.messages or {}).items():
        if isinstance(messages, dict):
            messages = [str(messages)]
        for message in messages:
            errors.append({"field": field, "msg": message})
    return DomainError(ErrorKind.INVALID_DATA, "Invalid input", errors)
