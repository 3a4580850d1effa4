"""HTTP session factory for instance REST APIs."""

from __future__ import annotations

import requests

from .auth_info import InstanceAuth

DEFAULT_TIMEOUT_SEC: float = 60.0


def build_session(auth: InstanceAuth) -> requests.Session:
    """Build a `requests.Session` carrying basic auth and JSON headers."""
    session = requests.Session()
    session.auth = (auth.username, auth.password)
    session.headers.update(
        {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
    )
    return session
