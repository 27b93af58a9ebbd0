"""
Connection parameters for the MySQL server.

ConnectionParams can be built from settings, a dict, or keyword overrides;
Database.set_params merges new values over the current ones.
"""

from typing import Any

from pydantic import BaseModel, Field

from dbquery.core.config import settings


class ConnectionParams(BaseModel):
    """Where and how to connect. Password is excluded from repr."""

    host: str = "localhost"
    port: int = Field(default=3306, gt=0, le=65535)
    user: str = "root"
    password: str = Field(default="", repr=False)
    database: str = ""
    charset: str | None = "utf8mb4"
    connect_timeout: int = Field(default=10, gt=0)

    @classmethod
    def from_settings(cls) -> "ConnectionParams":
        return cls(
            host=settings.MYSQL_HOST,
            port=settings.MYSQL_PORT,
            user=settings.MYSQL_USER,
            password=settings.MYSQL_PASSWORD,
            database=settings.MYSQL_DATABASE,
            charset=settings.MYSQL_CHARSET,
            connect_timeout=settings.EXTERNAL_DB_CONNECT_TIMEOUT,
        )

    def merged(self, **overrides: Any) -> "ConnectionParams":
        """Return a copy with *overrides* applied (validated)."""
        data = self.model_dump()
        data.update(overrides)
        return ConnectionParams.model_validate(data)
