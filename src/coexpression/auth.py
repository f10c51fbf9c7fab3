"""
Bearer token acquisition for the CoExpression client.

Every CoExpression method requires authentication, so these helpers either
return a token or raise `AuthenticationError`; there is no anonymous mode.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

import requests

from coexpression.config import ClientConfig
from coexpression.errors import AuthenticationError

logger = logging.getLogger(__name__)

TOKEN_ENV_VAR = "KB_AUTH_TOKEN"
DEFAULT_AUTH_URL = "https://kbase.us/services/authorization/Sessions/Login"


def login(
    user_id: str,
    password: str,
    auth_url: str = DEFAULT_AUTH_URL,
    session: Optional[requests.Session] = None,
    timeout_s: float = 60.0,
) -> str:
    """Exchange a user id and password for a token at the auth service."""

    http = session or requests.Session()
    try:
        resp = http.post(
            auth_url,
            data={"user_id": user_id, "password": password, "fields": "token"},
            timeout=timeout_s,
        )
    except requests.RequestException as exc:
        raise AuthenticationError(f"Authentication failed: {exc}") from exc

    if not resp.ok:
        raise AuthenticationError(
            f"Authentication failed: HTTP {resp.status_code}: {resp.text[:500]}"
        )
    try:
        payload = resp.json()
    except ValueError as exc:
        raise AuthenticationError(
            f"Authentication failed: could not decode auth service response: {exc}"
        ) from exc

    token = payload.get("token") if isinstance(payload, dict) else None
    if not token:
        raise AuthenticationError("Authentication failed: auth service returned no token.")
    return str(token)


def resolve_token(
    token: Optional[str] = None,
    user_id: Optional[str] = None,
    password: Optional[str] = None,
    config: Optional[ClientConfig] = None,
    session: Optional[requests.Session] = None,
) -> str:
    """
    Find a token for the client.

    Sources, first match wins: the explicit token, an explicit user id and
    password, the KB_AUTH_TOKEN environment variable, the config file token,
    and finally config file credentials.
    """

    if token:
        return token

    auth_url = DEFAULT_AUTH_URL
    if config is not None and config.auth.auth_url:
        auth_url = config.auth.auth_url

    if user_id or password:
        if not (user_id and password):
            raise AuthenticationError("Authentication failed: user_id and password must be given together.")
        logger.debug("Logging in to %s as %s", auth_url, user_id)
        return login(user_id, password, auth_url=auth_url, session=session)

    env_token = os.environ.get(TOKEN_ENV_VAR)
    if env_token:
        return env_token

    if config is not None:
        if config.auth.token:
            return config.auth.token
        if config.auth.user_id and config.auth.password:
            logger.debug("Logging in to %s as %s (from %s)", auth_url, config.auth.user_id, config.path)
            return login(config.auth.user_id, config.auth.password, auth_url=auth_url, session=session)

    raise AuthenticationError(
        "Authentication failed: no token supplied. Pass a token or credentials, "
        f"set {TOKEN_ENV_VAR}, or add 'auth.token' to the config file."
    )


__all__ = ["TOKEN_ENV_VAR", "DEFAULT_AUTH_URL", "login", "resolve_token"]
