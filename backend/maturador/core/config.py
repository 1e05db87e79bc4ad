# maturador/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from loguru import logger
from pathlib import Path
import warnings

def find_dotenv_path(filename: str = '.env', usecwd: bool = False) -> str | None:
    """Procura o arquivo .env subindo a partir deste módulo (ou do CWD)."""
    start_dir = Path.cwd() if usecwd else Path(__file__).resolve().parent
    current_dir = start_dir
    for _ in range(10):
        env_path = current_dir / filename
        if env_path.is_file():
            logger.debug(f"Found {filename} at: {env_path}")
            return str(env_path)
        parent_dir = current_dir.parent
        if parent_dir == current_dir:
            break
        current_dir = parent_dir
    if not usecwd:
        env_path_cwd = Path.cwd() / filename
        if env_path_cwd.is_file():
            logger.debug(f"Found {filename} at CWD: {env_path_cwd}")
            return str(env_path_cwd)
    logger.debug(f"{filename} not found in parent directories of {start_dir} or CWD.")
    return None

def dotenv_files() -> tuple[str, ...] | None:
    """.env primeiro, depois .env.local (que pode sobrescrever). None quando nenhum existe."""
    found = tuple(p for p in (find_dotenv_path('.env'), find_dotenv_path('.env.local')) if p)
    return found or None

class Settings(BaseSettings):
    PROJECT_NAME: str = "OX Maturador"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"
    FRONTEND_ORIGIN: str = "http://localhost:5173"

    # Database & Broker
    MONGODB_URI: str
    REDIS_URL: str = Field(default="redis://localhost:6379/0")
    CELERY_BROKER_URL: str | None = None
    CELERY_RESULT_BACKEND: str | None = None

    # Security
    SECRET_KEY: str # JWT
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 720
    API_KEY: str # Provisionamento de usuários (header X-API-Key)

    # Provedores externos (chaves ficam só no servidor)
    EVOLUTION_API_KEY: str | None = None
    EVOLUTION_HTTP_TIMEOUT: float = 15.0
    OPENAI_API_KEY: str | None = None
    ANTHROPIC_API_KEY: str | None = None
    GOOGLE_API_KEY: str | None = None
    PROVIDER_HTTP_TIMEOUT: float = 20.0

    # Maturador / Monitoramento
    MATURATION_TICK_SECONDS: int = Field(default=5, gt=0)
    MATURATION_ACTIVITY_PROBABILITY: float = Field(default=0.3, ge=0.0, le=1.0)
    MONITORING_HISTORY_LIMIT: int = Field(default=1000, gt=0)
    MONITORING_ONLINE_PROBABILITY: float = Field(default=0.8, ge=0.0, le=1.0)
    MONITORING_BLOCKED_PROBABILITY: float = Field(default=0.5, ge=0.0, le=1.0)

    model_config = SettingsConfigDict(
        env_file=dotenv_files(),
        env_file_encoding='utf-8',
        extra='ignore',
        case_sensitive=False,
    )

    @property
    def broker_url(self) -> str:
        return self.CELERY_BROKER_URL or self.REDIS_URL

    @property
    def result_backend(self) -> str:
        return self.CELERY_RESULT_BACKEND or self.REDIS_URL

@lru_cache()
def get_settings() -> Settings:
    """Carrega e valida as configurações da aplicação."""
    logger.info("Loading application settings...")
    env_files_found = dotenv_files()
    if env_files_found:
        logger.info(f"Loading environment variables from: {', '.join(env_files_found)}")
    else:
        logger.warning("No .env file found. Loading settings from system environment variables only.")

    try:
        settings_instance = Settings()

        required_vars = ['MONGODB_URI', 'SECRET_KEY', 'API_KEY']
        missing = [k for k in required_vars if not getattr(settings_instance, k, None)]
        if missing:
            logger.critical(f"Missing critical environment variables: {', '.join(missing)}")
            raise ValueError(f"Missing critical environment variables: {', '.join(missing)}")

        if settings_instance.SECRET_KEY == "!!!GENERATE_A_STRONG_SECRET_KEY_32_BYTES_HEX!!!":
            logger.warning("SECURITY WARNING: Using default SECRET_KEY. Generate a strong key (e.g., `openssl rand -hex 32`).")
            warnings.warn("SECURITY WARNING: Using default SECRET_KEY. Please generate and set a strong secret key!")

        # Chaves de provedores: apenas avisar
        provider_keys = ['EVOLUTION_API_KEY', 'OPENAI_API_KEY', 'ANTHROPIC_API_KEY', 'GOOGLE_API_KEY']
        missing_providers = [k for k in provider_keys if not getattr(settings_instance, k, None)]
        if missing_providers:
            logger.warning(f"Provider keys missing ({', '.join(missing_providers)}). Related integrations will report 'not configured'.")

        logger.info("Settings loaded and validated successfully.")
        return settings_instance
    except ValueError as val_err:
        logger.critical(f"CRITICAL ERROR in settings validation: {val_err}")
        raise SystemExit(f"Settings validation failed: {val_err}")

settings = get_settings()
