from __future__ import annotations

import json
import logging
import random
from typing import Any, List, Optional, Tuple

import requests

from coexpression.models import RpcRequest, RpcResponse, ServiceEndpoint

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
USER_AGENT = "coexpression-client/0.1"


def configure_session() -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": USER_AGENT})
    return session


def _random_id() -> str:
    return str(random.randint(1, 10**16))


def _content_type(resp: requests.Response) -> str:
    return resp.headers.get("Content-Type", "").split(";")[0].strip().lower()

CallResult = Tuple[Optional[RpcResponse], str]


class JsonRpcTransport:
    """
    One-shot JSON-RPC over HTTP POST.

    `call` returns a `(response, status_line)` pair. The response is an
    RpcResponse when the server produced a parseable body (including JSON
    error bodies sent with a non-2xx status) and None when there is no usable
    response; the status line describes what happened to that request.
    Nothing is retried, and no per-call state is kept on the transport.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        jsonrpc_version: str = "1.1",
        request_id: Optional[str] = None,
    ) -> None:
        if jsonrpc_version not in ("1.0", "1.1"):
            raise ValueError(f"Unsupported JSON-RPC version: {jsonrpc_version!r}")
        self.session = session or configure_session()
        self.jsonrpc_version = jsonrpc_version
        self.request_id = request_id

    def build_request(self, method: str, params: List[Any]) -> RpcRequest:
        if self.jsonrpc_version == "1.0":
            return RpcRequest(
                method=method,
                params=params,
                id=self.request_id or "JSON::RPC::Client",
                version=None,
            )
        return RpcRequest(
            method=method,
            params=params,
            id=self.request_id if self.request_id is not None else _random_id(),
            version=self.jsonrpc_version,
        )

    def _headers(self, endpoint: ServiceEndpoint) -> dict:
        headers = {
            "Content-Type": JSON_CONTENT_TYPE,
            "Accept": JSON_CONTENT_TYPE,
        }
        if endpoint.token:
            headers["Authorization"] = endpoint.token
        return headers

    def call(self, endpoint: ServiceEndpoint, method: str, params: List[Any]) -> CallResult:
        request = self.build_request(method, params)
        body = json.dumps(request.to_payload())
        is_service = method.startswith("system.")

        logger.debug("POST %s method=%s id=%s", endpoint.url, method, request.id)
        try:
            resp = self.session.post(
                endpoint.url,
                data=body.encode("utf-8"),
                headers=self._headers(endpoint),
                timeout=endpoint.timeout_s,
            )
        except requests.RequestException as exc:
            logger.debug("Request to %s failed: %s", endpoint.url, exc)
            return None, f"Connection failed: {exc}"

        status_line = f"{resp.status_code} {resp.reason or ''}".strip()
        logger.debug("Response %s for method=%s", status_line, method)

        if resp.ok:
            if not resp.content:
                # Notification; nothing to hand back.
                return None, status_line
            return self._parse(resp, status_line, is_service=is_service)
        if _content_type(resp) == JSON_CONTENT_TYPE:
            return self._parse(resp, status_line, is_service=False)
        return None, status_line

    def _parse(self, resp: requests.Response, status_line: str, is_service: bool) -> CallResult:
        try:
            payload = resp.json()
        except ValueError as exc:
            return None, f"{status_line} (failed to decode JSON response: {exc})"
        if not isinstance(payload, dict):
            return None, f"{status_line} (unexpected JSON structure in response)"
        response = RpcResponse(content=payload, status_code=resp.status_code, is_service=is_service)
        return response, status_line


__all__ = ["JSON_CONTENT_TYPE", "CallResult", "JsonRpcTransport", "configure_session"]
