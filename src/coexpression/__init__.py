"""
Client for the CoExpression gene co-expression analysis service.

The package contains the authenticated JSON-RPC client, its transport and
error types, configuration loading, and a loader for narrative method
display documents.
"""

from coexpression.client import CLIENT_VERSION, CoExpressionClient, check_version_compatibility
from coexpression.errors import (
    ArgumentValidationError,
    AuthenticationError,
    ClientServerIncompatible,
    ClientVersionWarning,
    CoExpressionError,
    ConfigError,
    ErrorKind,
    HTTPError,
    JSONRPCError,
)
from coexpression.models import ConstCoexNetClustParams, FilterGenesParams, ServiceEndpoint

__version__ = CLIENT_VERSION

__all__ = [
    "CoExpressionClient",
    "check_version_compatibility",
    "CoExpressionError",
    "ErrorKind",
    "ArgumentValidationError",
    "JSONRPCError",
    "HTTPError",
    "ClientServerIncompatible",
    "AuthenticationError",
    "ConfigError",
    "ClientVersionWarning",
    "FilterGenesParams",
    "ConstCoexNetClustParams",
    "ServiceEndpoint",
]
