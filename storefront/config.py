import os
from typing import List

from dotenv import load_dotenv

# Values already present in the environment win over the .env file
load_dotenv()


def parse_origins(value: str) -> List[str]:
    """Comma-separated origins -> list. Empty means allow everything."""
    if not value or not value.strip():
        return ["*"]
    return [v.strip() for v in value.split(",") if v.strip()]


class Settings:
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "local")

    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./storefront.db")

    # Admin and shopper sessions are JWTs carried in the `token` cookie
    JWT_SECRET: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24))
    AUTH_COOKIE_NAME: str = os.getenv("AUTH_COOKIE_NAME", "token")

    CORS_ORIGINS: List[str] = parse_origins(os.getenv("CORS_ORIGINS", ""))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()
