from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from dal.settings import DalSettings
from dal.util.env import SUPPORTED_PROVIDERS, normalize_provider

DEFAULT_PORTS: Dict[str, int] = {
    "postgres": 5432,
    "mysql": 3306,
}


@dataclass(frozen=True)
class ConnectionConfig:
    """Connection parameters for one registered database."""

    host: str
    database: str
    user: str
    password: Optional[str] = None
    provider: Optional[str] = None
    port: Optional[int] = None

    def __post_init__(self) -> None:
        """Normalize the provider alias (default ``DAL_DEFAULT_PROVIDER``) and validate fields."""
        provider = normalize_provider(self.provider or DalSettings.from_env().default_provider)
        if provider not in SUPPORTED_PROVIDERS:
            allowed = ", ".join(sorted(SUPPORTED_PROVIDERS))
            raise ValueError(f"Unsupported database provider '{self.provider}'. Allowed: {allowed}")
        object.__setattr__(self, "provider", provider)

        missing = [
            name
            for name, value in {"host": self.host, "database": self.database, "user": self.user}.items()
            if not value
        ]
        if missing:
            raise ValueError(f"Connection config missing required fields: {', '.join(missing)}")

    @property
    def resolved_port(self) -> int:
        """Explicit port, else the provider default."""
        return self.port or DEFAULT_PORTS[self.provider]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ConnectionConfig":
        """Build a config from a request body (``type`` is accepted for ``provider``)."""
        port = data.get("port")
        return cls(
            host=data.get("host") or "",
            database=data.get("database") or data.get("db_name") or "",
            user=data.get("user") or "",
            password=data.get("password"),
            provider=data.get("provider") or data.get("type"),
            port=int(port) if port not in (None, "") else None,
        )
