import urllib.parse
from dataclasses import dataclass


@dataclass
class PostgresConfig:
    host: str
    port: int
    username: str
    password: str
    database: str = "postgres"  # Default database

    @property
    def connection_url(self) -> str:
        encoded_password = urllib.parse.quote_plus(self.password) if self.password else ''
        if not self.host:
            raise ValueError("Database host configuration is missing.")
        return f"postgresql+asyncpg://{self.username}:{encoded_password}@{self.host}:{self.port}/{self.database}"


@dataclass
class SqlConfig:
    url: str
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 10  # seconds
    pool_recycle: int = 3600
    echo: bool = False

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def is_memory(self) -> bool:
        return self.is_sqlite and ":memory:" in self.url
