from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Optional

from coexpression.errors import ArgumentValidationError

DEFAULT_TIMEOUT_S = 30 * 60


@dataclass(frozen=True)
class ServiceEndpoint:
    """Target service URL plus the credentials every request is sent with."""

    url: str
    token: Optional[str] = None
    timeout_s: float = DEFAULT_TIMEOUT_S

    def __repr__(self) -> str:
        token = "<set>" if self.token else None
        return f"ServiceEndpoint(url={self.url!r}, token={token!r}, timeout_s={self.timeout_s!r})"


@dataclass
class RpcRequest:
    """A single JSON-RPC invocation."""

    method: str
    params: List[Any] = field(default_factory=list)
    id: Optional[str] = None
    version: Optional[str] = "1.1"

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"method": self.method, "params": self.params}
        if self.version is not None:
            payload["version"] = self.version
        if self.id is not None:
            payload["id"] = self.id
        return payload


@dataclass
class RpcResponse:
    """
    Parsed body of a JSON-RPC response.

    - content: the decoded JSON object.
    - status_code: HTTP status the body arrived with.
    - is_service: True for `system.*` introspection calls, whose bodies are
      handed back as-is without error translation.
    """

    content: Dict[str, Any]
    status_code: int
    is_service: bool = False

    @property
    def error(self) -> Optional[Dict[str, Any]]:
        err = self.content.get("error")
        if err is None:
            return None
        if isinstance(err, dict):
            return err
        return {"message": str(err)}

    @property
    def is_error(self) -> bool:
        return self.error is not None

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300 and not self.is_error

    @property
    def result(self) -> Any:
        return self.content.get("result")

    @property
    def error_code(self) -> Optional[int]:
        err = self.error
        return err.get("code") if err else None

    @property
    def error_message(self) -> Optional[str]:
        err = self.error
        if not err:
            return None
        return str(err.get("message") or err.get("name") or "Unknown JSON-RPC error")

    @property
    def error_data(self) -> Any:
        err = self.error
        if not err:
            return None
        # KBase 1.1 servers put the server-side traceback under "error".
        if "data" in err:
            return err["data"]
        return err.get("error")


@dataclass
class _ParamsBuilder:
    """Shared conversion of typed operation parameters to the wire mapping."""

    method_name = ""

    def to_params(self) -> Dict[str, str]:
        params: Dict[str, str] = {}
        missing: List[str] = []
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None or value == "":
                missing.append(f.name)
                continue
            params[f.name] = str(value)
        if missing:
            raise ArgumentValidationError(
                f"Missing required parameter(s) for {self.method_name}: {', '.join(missing)}",
                method_name=self.method_name,
            )
        return params


@dataclass
class FilterGenesParams(_ParamsBuilder):
    """Parameters for `filter_genes`; numeric thresholds are sent as strings."""

    method_name = "filter_genes"

    ws_id: str
    inobj_id: str
    outobj_id: str
    p_value: Any
    method: str
    num_genes: Any


@dataclass
class ConstCoexNetClustParams(_ParamsBuilder):
    """Parameters for `const_coex_net_clust`."""

    method_name = "const_coex_net_clust"

    ws_id: str
    inobj_id: str
    outobj_id: str
    cut_off: Any
    net_method: str
    clust_method: str
    num_modules: Any


__all__ = [
    "DEFAULT_TIMEOUT_S",
    "ServiceEndpoint",
    "RpcRequest",
    "RpcResponse",
    "FilterGenesParams",
    "ConstCoexNetClustParams",
]
