"""
Client for the CoExpression service.

The service builds gene co-expression networks and clusters (WGCNA and
related methods) for expression data held in a workspace. Both domain
methods enqueue server-side jobs and return job ids; this client only ships
parameter mappings across and hands the ids back.
"""

from __future__ import annotations

import logging
import warnings
from collections.abc import Mapping
from typing import Any, List, Optional, Tuple, Union

import requests

from coexpression.auth import resolve_token
from coexpression.config import ClientConfig, load_config, resolve_timeout
from coexpression.errors import (
    ArgumentValidationError,
    ClientServerIncompatible,
    ClientVersionWarning,
    ConfigError,
    HTTPError,
    JSONRPCError,
)
from coexpression.models import (
    ConstCoexNetClustParams,
    FilterGenesParams,
    ServiceEndpoint,
)
from coexpression.transport import JsonRpcTransport

logger = logging.getLogger(__name__)

SERVICE_NAME = "CoExpression"

# Semantic version of the client; must match the server implementation.
CLIENT_VERSION = "0.1.0"

ParamsArg = Union[Mapping, FilterGenesParams, ConstCoexNetClustParams]


def _parse_version(version: str) -> Tuple[int, int]:
    parts = str(version).strip().split(".")
    try:
        return int(parts[0]), int(parts[1]) if len(parts) > 1 else 0
    except ValueError as exc:
        raise ValueError(f"Not a semantic version: {version!r}") from exc


def check_version_compatibility(client_version: str, server_version: str) -> List[str]:
    """
    Compare `major.minor` of the client and server.

    Raises ClientServerIncompatible when majors differ or the server minor is
    behind the client's. Otherwise returns the non-fatal warnings, also
    emitted as ClientVersionWarning.
    """

    try:
        c_major, c_minor = _parse_version(client_version)
        s_major, s_minor = _parse_version(server_version)
    except ValueError as exc:
        raise ClientServerIncompatible(
            str(exc), server_version=str(server_version), client_version=client_version
        ) from exc

    if s_major != c_major:
        raise ClientServerIncompatible(
            "Major version numbers differ.",
            server_version=server_version,
            client_version=client_version,
        )
    if s_minor < c_minor:
        raise ClientServerIncompatible(
            "Client minor version greater than Server minor version.",
            server_version=server_version,
            client_version=client_version,
        )

    notes: List[str] = []
    if s_minor > c_minor:
        notes.append(f"New client version available for {SERVICE_NAME} client.")
    if s_major == 0:
        notes.append(f"{SERVICE_NAME} client version is {server_version}. API subject to change.")
    for note in notes:
        logger.warning(note)
        warnings.warn(note, ClientVersionWarning, stacklevel=3)
    return notes


class CoExpressionClient:
    """
    Authenticated JSON-RPC client for the CoExpression service.

    Construction fails with AuthenticationError when no token can be found,
    since every method of the service requires one.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        token: Optional[str] = None,
        user_id: Optional[str] = None,
        password: Optional[str] = None,
        timeout: Optional[float] = None,
        validate_version: bool = False,
        session: Optional[requests.Session] = None,
        config: Optional[ClientConfig] = None,
        transport: Optional[JsonRpcTransport] = None,
    ) -> None:
        cfg = config if config is not None else load_config()

        service_url = url or cfg.service.url
        if not service_url:
            raise ConfigError(
                "No CoExpression service URL given. Pass url= or set 'service.url' in the config file."
            )

        resolved = resolve_token(
            token=token, user_id=user_id, password=password, config=cfg, session=session
        )

        self.endpoint = ServiceEndpoint(
            url=service_url,
            token=resolved,
            timeout_s=resolve_timeout(timeout, cfg),
        )
        self._owns_session = session is None and transport is None
        self._transport = transport or JsonRpcTransport(session=session)
        self._last_status_line: Optional[str] = None

        if validate_version:
            try:
                self.validate_version()
            except Exception:
                self.close()
                raise

    @property
    def url(self) -> str:
        return self.endpoint.url

    @property
    def status_line(self) -> Optional[str]:
        """
        HTTP status line of the most recent call made through this client.

        Informational only; with concurrent callers it may belong to another
        call. Errors carry the status line of their own request.
        """

        return self._last_status_line

    def close(self) -> None:
        if self._owns_session:
            self._transport.session.close()

    def __enter__(self) -> "CoExpressionClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _call(self, method_name: str, params: List[Any]) -> Any:
        response, status_line = self._transport.call(
            self.endpoint, f"{SERVICE_NAME}.{method_name}", params
        )
        self._last_status_line = status_line
        if response is None:
            raise HTTPError(
                f"Error invoking method {method_name}",
                status_line=status_line,
                method_name=method_name,
            )
        if response.is_service:
            return response.content
        if response.is_error:
            raise JSONRPCError(
                response.error_message or "Unknown JSON-RPC error",
                code=response.error_code,
                data=response.error_data,
                method_name=method_name,
            )
        if not response.is_success:
            raise HTTPError(
                f"Error invoking method {method_name}",
                status_line=status_line,
                method_name=method_name,
            )
        return response.result

    @staticmethod
    def _single_params(method_name: str, args: Tuple[Any, ...]) -> dict:
        if len(args) != 1:
            raise ArgumentValidationError(
                f"Invalid argument count for function {method_name} "
                f"(received {len(args)}, expecting 1)",
                method_name=method_name,
            )
        (params,) = args
        is_builder = isinstance(params, (FilterGenesParams, ConstCoexNetClustParams))
        if is_builder and params.method_name == method_name:
            return params.to_params()
        if is_builder or not isinstance(params, Mapping):
            bad = f'Invalid type for argument 1 "args" (value was "{params}")'
            raise ArgumentValidationError(
                f"Invalid arguments passed to {method_name}:\n\t{bad}\n",
                method_name=method_name,
            )

        missing = [str(key) for key, value in params.items() if value is None]
        if missing:
            raise ArgumentValidationError(
                f"Missing value(s) for {method_name} parameter(s): {', '.join(missing)}",
                method_name=method_name,
            )
        # Values always travel as strings; the caller's mapping is never touched.
        return {str(key): str(value) for key, value in params.items()}

    def filter_genes(self, *args: ParamsArg) -> List[str]:
        """
        Queue a gene filtering job.

        Takes one FilterGenesParams mapping (ws_id, inobj_id, outobj_id,
        p_value, method, num_genes) and returns the job ids.
        """

        params = self._single_params("filter_genes", args)
        return self._call("filter_genes", [params])

    def const_coex_net_clust(self, *args: ParamsArg) -> List[str]:
        """
        Queue co-expression network construction and clustering.

        Takes one ConstCoexNetClustParams mapping (ws_id, inobj_id, outobj_id,
        cut_off, net_method, clust_method, num_modules) and returns the job
        ids.
        """

        params = self._single_params("const_coex_net_clust", args)
        return self._call("const_coex_net_clust", [params])

    def version(self) -> str:
        """Return the semantic version reported by the server."""

        result = self._call("version", [])
        if isinstance(result, list):
            if not result:
                raise JSONRPCError("Empty version result from server", method_name="version")
            return str(result[0])
        return str(result)

    def validate_version(self, client_version: str = CLIENT_VERSION) -> List[str]:
        return check_version_compatibility(client_version, self.version())


__all__ = [
    "SERVICE_NAME",
    "CLIENT_VERSION",
    "CoExpressionClient",
    "check_version_compatibility",
]
