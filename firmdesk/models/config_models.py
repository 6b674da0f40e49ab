from __future__ import annotations

from dataclasses import dataclass

"""Config dataclasses for the firmdesk tools.

These are the typed form of `config/firmdesk.yml` after schema validation;
the loader in firmdesk/config/loader.py builds them.
"""


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class AppConfig:
    """Root configuration object."""
    backend: str  # "memory" or "postgres"
    database: DatabaseConfig
    timezone: str = "UTC"
    logs_directory: str = "./logs"
    partner_role: str = "Partner"
    mandatory_marker: str = "*"
