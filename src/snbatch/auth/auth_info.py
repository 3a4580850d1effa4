"""Instance credentials for snbatch (basic auth)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


def normalize_instance_url(raw: str, *, allow_insecure_http: bool = False) -> str:
    """
    Normalize an instance URL to `https://host[...]` without a trailing slash.

    Bare host names get `https://`. Plain `http://` is rejected unless
    explicitly allowed, since credentials would travel in cleartext.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError("instance URL must be a non-empty string")

    url = raw.strip().rstrip("/")
    if url.startswith("http://"):
        if not allow_insecure_http:
            raise ValueError(
                "HTTP URLs are not allowed: credentials would be sent in plaintext. "
                "Use https:// or allow insecure HTTP explicitly."
            )
        logger.warning("Using insecure HTTP connection to %s", url)
        return url
    if url.startswith("https://"):
        return url
    return f"https://{url}"


@dataclass(slots=True, frozen=True)
class InstanceAuth:
    """
    Authentication information for one instance.

    `base_url` is normalized on construction. The password is excluded from
    `repr`.
    """

    base_url: str
    username: str
    password: str = field(repr=False)
    allow_insecure_http: bool = False

    def __post_init__(self) -> None:
        for name in ("username", "password"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise ValueError(f"InstanceAuth.{name} must be a non-empty string")

        normalized = normalize_instance_url(
            self.base_url, allow_insecure_http=self.allow_insecure_http
        )
        object.__setattr__(self, "base_url", normalized)

    @property
    def instance_host(self) -> str:
        """Host name of the instance, e.g. dev.service-now.com."""
        return urlparse(self.base_url).hostname or self.base_url

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "InstanceAuth":
        """
        Read SNBATCH_INSTANCE / SNBATCH_USERNAME / SNBATCH_PASSWORD.

        SNBATCH_ALLOW_HTTP=1 permits a plain http:// instance URL.
        """
        source = os.environ if env is None else env
        missing = [
            key
            for key in ("SNBATCH_INSTANCE", "SNBATCH_USERNAME", "SNBATCH_PASSWORD")
            if not source.get(key)
        ]
        if missing:
            raise ValueError(f"Missing environment variables: {', '.join(missing)}")

        return cls(
            base_url=source["SNBATCH_INSTANCE"],
            username=source["SNBATCH_USERNAME"],
            password=source["SNBATCH_PASSWORD"],
            allow_insecure_http=source.get("SNBATCH_ALLOW_HTTP") == "1",
        )
