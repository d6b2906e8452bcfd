from pathlib import Path
from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings

# .env lives at the project root (three levels above this file: backoffice/config.py → backend/ → root/)
_ENV_FILE = str(Path(__file__).parent.parent.parent / ".env")


class Settings(BaseSettings):
    # Database: prefer DATABASE_URL if set; otherwise build from POSTGRES_* vars
    database_url: str = Field(default="", alias="DATABASE_URL")
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "backoffice"
    postgres_user: str = "backoffice_user"
    postgres_password: str = ""
    db_ssl: bool = False

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 4000
    cors_origins: list[str] = ["*"]
    max_upload_mb: int = 50
    log_level: str = "INFO"

    # P&L simulation defaults (all overridable per request)
    simulation_tax_percent: float = 6.0
    default_card_pix_percent: float = 3.63
    default_fixed_cost: float = 2459.0

    def get_db_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    model_config = {
        "env_file": _ENV_FILE,
        "case_sensitive": False,
        "extra": "ignore",
        "populate_by_name": True,
    }


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
