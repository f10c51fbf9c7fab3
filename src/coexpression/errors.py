from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    ARGUMENT_VALIDATION = "argument_validation"
    JSONRPC = "jsonrpc"
    HTTP = "http"
    INCOMPATIBLE = "incompatible"
    AUTHENTICATION = "authentication"
    CONFIG = "config"


class CoExpressionError(Exception):
    """Base class for every failure raised by the CoExpression client."""

    kind: ErrorKind

    def __init__(self, message: str, method_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.method_name = method_name


class ArgumentValidationError(CoExpressionError):
    """Raised locally, before any request is sent, for bad call arguments."""

    kind = ErrorKind.ARGUMENT_VALIDATION


class JSONRPCError(CoExpressionError):
    """The server answered with a JSON-RPC error object."""

    kind = ErrorKind.JSONRPC

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        data: Any = None,
        method_name: Optional[str] = None,
    ) -> None:
        super().__init__(message, method_name=method_name)
        self.code = code
        self.data = data

    def __str__(self) -> str:
        text = f"{self.message} (code {self.code})" if self.code is not None else self.message
        if self.data:
            text = f"{text}\n{self.data}"
        return text


class HTTPError(CoExpressionError):
    """No usable response came back from the service."""

    kind = ErrorKind.HTTP

    def __init__(
        self,
        message: str,
        status_line: Optional[str] = None,
        method_name: Optional[str] = None,
    ) -> None:
        super().__init__(message, method_name=method_name)
        self.status_line = status_line

    def __str__(self) -> str:
        if self.status_line:
            return f"{self.message}: {self.status_line}"
        return self.message


class ClientServerIncompatible(CoExpressionError):
    kind = ErrorKind.INCOMPATIBLE

    def __init__(self, message: str, server_version: str, client_version: str) -> None:
        super().__init__(message, method_name="version")
        self.server_version = server_version
        self.client_version = client_version

    def __str__(self) -> str:
        return (
            f"{self.message} (server version {self.server_version}, "
            f"client version {self.client_version})"
        )


class AuthenticationError(CoExpressionError):
    """No bearer token could be obtained for the client."""

    kind = ErrorKind.AUTHENTICATION


class ConfigError(CoExpressionError):
    """Raised when the client configuration is missing or invalid."""

    kind = ErrorKind.CONFIG


class ClientVersionWarning(UserWarning):
    """Non-fatal client/server version mismatch."""


__all__ = [
    "ErrorKind",
    "CoExpressionError",
    "ArgumentValidationError",
    "JSONRPCError",
    "HTTPError",
    "ClientServerIncompatible",
    "AuthenticationError",
    "ConfigError",
    "ClientVersionWarning",
]
