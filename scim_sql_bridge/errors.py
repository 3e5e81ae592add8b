"""
Plugin error types.

Every failure raised by a plugin operation is a ``PluginError`` carrying the
operation name, so the host can log it and turn it into a SCIM error response
without inspecting driver exceptions.
"""

from typing import Optional


class PluginError(Exception):
    """Base class for errors raised by plugin operations."""

    status: int = 500
    scim_type: Optional[str] = None

    def __init__(self, action: str, message: str):
        self.action = action
        self.message = message
        super().__init__(f"{action} error: {message}")


class UnsupportedFilterError(PluginError):
    """The caller asked for a filter shape the plugin does not implement."""

    status = 400
    scim_type = "invalidFilter"


class InvalidValueError(PluginError):
    """A required attribute is missing or malformed."""

    status = 400
    scim_type = "invalidValue"


class NotSupportedError(PluginError):
    """The operation is not implemented for this endpoint."""

    status = 501

    def __init__(self, action: str):
        super().__init__(action, f"{action} is not supported")


class DatabaseConnectionError(PluginError):
    """The database could not be reached or refused the credentials."""

    status = 503


class QueryError(PluginError):
    """A statement failed to execute."""

    def __init__(self, action: str, sql: str, message: str, conflict: bool = False):
        self.sql = sql
        if conflict:
            self.status = 409
            self.scim_type = "uniqueness"
        super().__init__(action, f"SQL client request: {sql} Error: {message}")
