import os
from dataclasses import dataclass
from typing import Optional
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # API settings
    api_host: str = os.getenv("API_HOST", "127.0.0.1")
    api_port: int = int(os.getenv("API_PORT", "8000"))

    # Database settings
    database_file: Optional[str] = os.getenv("LIBRARY_DB_FILE")
    seed_file: str = os.getenv("LIBRARY_SEED_FILE", "library.json")

    # Pagination
    page_size: int = int(os.getenv("PAGE_SIZE", "10"))

    # Cloudflare Workers AI
    cloudflare_account_id: Optional[str] = os.getenv("CLOUDFLARE_ACCOUNT_ID")
    cloudflare_ai_token: Optional[str] = os.getenv("CLOUDFLARE_AI_TOKEN")
    cloudflare_ai_base_url: str = os.getenv(
        "CLOUDFLARE_AI_BASE_URL", "https://api.cloudflare.com/client/v4"
    )
    cloudflare_ai_model: str = os.getenv("CLOUDFLARE_AI_MODEL", "@cf/meta/llama-3-8b-instruct")
    ai_timeout: float = float(os.getenv("AI_TIMEOUT", "30"))
    enable_ai_features: bool = _env_flag("ENABLE_AI_FEATURES", "True")

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Library Books")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = _env_flag("DEBUG", "False")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


settings = Settings()
