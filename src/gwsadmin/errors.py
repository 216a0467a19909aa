"""
Error types raised by gwsadmin.

Library code raises these and never exits the process.  The command layer
catches GWSAdminError at a single point, prints it and sets the exit status.
"""
import json

from googleapiclient.errors import HttpError


class GWSAdminError(Exception):
    """Root of every error gwsadmin raises on purpose."""

    def __init__(self, message: str, hints: list[str]|None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hints = list(hints) if hints else []


class ConfigurationError(GWSAdminError):
    """Bad or missing configuration, including unknown output formats."""


class CredentialPathError(ConfigurationError):
    """A credential path failed the traversal or location check."""


class ValidationError(GWSAdminError):
    """User input failed validation before any remote call."""


class CacheError(GWSAdminError):
    """Hard cache failure: the directory or an entry could not be handled."""


class FormatError(GWSAdminError):
    """Output could not be rendered in the requested mode."""


class TransferError(GWSAdminError):
    """A data transfer could not be started or did not finish."""


class ApiError(GWSAdminError):
    """
    A Google API call failed.  Wraps the HttpError from the vendor client with
    the operation that was attempted and, where useful, hints for the operator.
    """

    def __init__(self, operation: str, cause: Exception, hints: list[str]|None = None) -> None:
        self.operation = operation
        self.status = None
        detail = str(cause)
        if isinstance(cause, HttpError):
            self.status = cause.resp.status if cause.resp is not None else None
            detail = _http_error_reason(cause)
        super().__init__(f"{operation}: {detail}", hints)
        self.__cause__ = cause


def _http_error_reason(err: HttpError) -> str:
    """
    Pull the human readable message out of the error payload.
    Falls back on the client's own reason string.
    """
    try:
        payload = json.loads(err.content.decode("utf-8"))
    except (ValueError, AttributeError):
        return err._get_reason() if hasattr(err, "_get_reason") else str(err)
    message = payload.get("error", {}).get("message") if isinstance(payload, dict) else None
    return message or str(err)

