# trackreg/errors.py
"""
Failure reasons for registry calls.

Every rejected call carries one of these stable numeric codes. The registry
raises the matching RegistryError subclass; the engine turns it into a
failed CallResult with the same code.
"""

from enum import IntEnum
from typing import Dict, Type


class ErrorCode(IntEnum):
    """Stable numeric reason codes."""
    NOT_AUTHORIZED = 100
    ALREADY_REGISTERED = 101   # Reserved, no operation raises it yet
    INVALID_PARAM = 102
    NOT_OWNER = 103
    NOT_FOUND = 104
    PAUSED = 105
    METADATA_TOO_LONG = 106
    INVALID_SHARE = 107


class RegistryError(Exception):
    """Base class for rejected registry calls."""
    code: ErrorCode

    def __init__(self, message: str = ""):
        super().__init__(message or self.code.name)

    @property
    def message(self) -> str:
        return str(self)


class NotAuthorizedError(RegistryError):
    code = ErrorCode.NOT_AUTHORIZED


class AlreadyRegisteredError(RegistryError):
    code = ErrorCode.ALREADY_REGISTERED


class InvalidParamError(RegistryError):
    code = ErrorCode.INVALID_PARAM


class NotOwnerError(RegistryError):
    code = ErrorCode.NOT_OWNER


class NotFoundError(RegistryError):
    code = ErrorCode.NOT_FOUND


class PausedError(RegistryError):
    code = ErrorCode.PAUSED


class MetadataTooLongError(RegistryError):
    code = ErrorCode.METADATA_TOO_LONG


class InvalidShareError(RegistryError):
    code = ErrorCode.INVALID_SHARE


_BY_CODE: Dict[ErrorCode, Type[RegistryError]] = {
    cls.code: cls
    for cls in (
        NotAuthorizedError,
        AlreadyRegisteredError,
        InvalidParamError,
        NotOwnerError,
        NotFoundError,
        PausedError,
        MetadataTooLongError,
        InvalidShareError,
    )
}


def error_for_code(code: int, message: str = "") -> RegistryError:
    """
    Build the exception matching a numeric reason code.

    Used by the client to re-raise failures reported by a server.

    Raises:
        ValueError: If the code is not a known reason
    """
    return _BY_CODE[ErrorCode(code)](message)


class ConfigError(ValueError):
    """Invalid registry configuration."""


class UnknownOperationError(ValueError):
    """A call named an operation the engine does not serve."""


class StateError(ValueError):
    """A persisted store file could not be read back."""
