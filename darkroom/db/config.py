"""Catalog configuration."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Catalog location and SQLite behaviour
    catalog_path: Path = Path.home() / "Pictures" / "darkroom.catalog"
    sql_echo: bool = False
    busy_timeout_ms: int = 5000

    # Batch import: items per write transaction
    import_batch_size: int = 100

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="DARKROOM_",
        extra="ignore",
    )

    @property
    def database_url(self) -> str:
        """Construct the SQLite URL for the catalog file."""
        return f"sqlite:///{Path(self.catalog_path).expanduser()}"


# Global settings instance
settings = Settings()
