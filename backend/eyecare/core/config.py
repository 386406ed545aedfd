from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Configuracoes globais do EyeCare.
    Le automaticamente variaveis do arquivo .env.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Projeto
    project_name: str = "EyeCare Records"
    api_v1_str: str = "/api/v1"
    debug: bool = False

    # Banco de dados local
    database_url: str = "sqlite:///./eyecare.db"

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # Servidor local (UI)
    host: str = "127.0.0.1"
    port: int = 8000
    allowed_origins: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "capacitor://localhost",
    ]

    # Backup / importacao
    export_version: str = "1.0"
    client_code_prefix: str = "EC"
    import_atomic: bool = True


@lru_cache
def get_settings() -> Settings:
    """Retorna a instancia de configuracoes globais (cacheada)."""
    return Settings()


settings = get_settings()
