"""Request inspection helpers used in front of the HTTP handlers."""

from __future__ import annotations

import itertools
import logging
import threading
import time
from http import HTTPStatus
from typing import Mapping, Optional

from conflux.errors import AuthError

log = logging.getLogger(__name__)

_IP_HEADERS = ("x-forwarded-for", "x-real-ip", "x-client-ip", "cf-connecting-ip")

_PUBLIC_PATHS = (
    "/health",
    "/ready",
    "/_cluster/status",
    "/api/v1/fetch/configs",
)

_BEARER = "Bearer "

_counter = itertools.count()
_counter_lock = threading.Lock()


class Unauthorized(AuthError):
    """A request to a protected endpoint carried no acceptable credentials."""

    status = HTTPStatus.UNAUTHORIZED


def _lower_keys(headers: Mapping[str, str]) -> dict:
    return {str(name).lower(): value for name, value in headers.items()}


def extract_client_ip(headers: Mapping[str, str]) -> Optional[str]:
    """Client address from the usual proxy headers, first address wins."""
    lowered = _lower_keys(headers)
    for name in _IP_HEADERS:
        value = lowered.get(name)
        if value is None:
            continue
        ip = str(value).split(",", 1)[0].strip()
        if ip:
            return ip
    return None


def is_public_endpoint(path: str) -> bool:
    """Whether the path may be accessed without authentication."""
    return any(path == public or path.startswith(public + "/") for public in _PUBLIC_PATHS)


def generate_request_id() -> str:
    """A unique id made of the millisecond timestamp and a counter, both in hex."""
    timestamp = int(time.time() * 1000)
    with _counter_lock:
        counter = next(_counter)
    return f"{timestamp:x}-{counter:x}"


def check_authentication(headers: Mapping[str, str], path: str) -> Optional[str]:
    """Return the bearer credential, or None for an anonymous public request.

    Raises :class:`Unauthorized` when a protected path has no bearer credential.
    """
    auth = _lower_keys(headers).get("authorization")
    if isinstance(auth, str) and auth.startswith(_BEARER):
        log.debug("Authorization header found")
        return auth[len(_BEARER):]
    if is_public_endpoint(path):
        log.debug("Public endpoint accessed: %s", path)
        return None
    log.warning("Unauthorized request to: %s", path)
    raise Unauthorized(f"Unauthorized request to: {path}")