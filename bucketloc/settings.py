"""Client settings loaded from TOML and the environment."""
from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

DEFAULT_ENDPOINT = "https://s3.amazonaws.com"
DEFAULT_USER_AGENT = "bucketloc/0.1.0"
ACCESS_KEY_ENV = "BUCKETLOC_ACCESS_KEY"
SECRET_KEY_ENV = "BUCKETLOC_SECRET_KEY"


def load_settings(path: Path) -> Dict[str, Any]:
    """Read the TOML configuration file."""
    with path.open("rb") as handle:
        return tomllib.load(handle)


@dataclass(frozen=True, slots=True)
class ClientSettings:
    """Inputs needed to build a `StorageClient`."""

    endpoint: str = DEFAULT_ENDPOINT
    access_key: str = ""
    secret_key: str = ""
    signature_version: str = "v4"
    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: float = 30.0

    @property
    def anonymous(self) -> bool:
        return not (self.access_key and self.secret_key)

    @classmethod
    def from_mapping(
        cls,
        settings: Mapping[str, Any],
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ClientSettings":
        """Merge the `[client]` table with credentials from the environment."""
        env = os.environ if environ is None else environ
        client = settings.get("client", {})
        return cls(
            endpoint=client.get("endpoint", DEFAULT_ENDPOINT),
            access_key=env.get(ACCESS_KEY_ENV, ""),
            secret_key=env.get(SECRET_KEY_ENV, ""),
            signature_version=client.get("signature_version", "v4"),
            user_agent=client.get("user_agent", DEFAULT_USER_AGENT),
            timeout_seconds=float(client.get("timeout_seconds", 30.0)),
        )
