from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

INSECURE_SECRET = "change-me-in-production-for-jwt"

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./dashboard.db"
    env: str = "development"
    db_connect_retries: int = 3

    # HS256 signing key for session tokens
    secret_key: str = Field(
        default=INSECURE_SECRET,
        validation_alias=AliasChoices("JWT_SECRET", "SECRET_KEY"),
    )
    jwt_expiration_seconds: int = 86400

    auth_cookie_name: str = "token"
    auth_cookie_max_age: int = 30 * 24 * 60 * 60

    admin_email: str = "admin@lululemon.com"
    admin_password: str = "admin123"
    admin_name: str = "Admin User"
    seed_on_startup: bool = False

    log_level: str = "INFO"
    axiom_token: str | None = None
    axiom_dataset: str | None = None
    axiom_url: str = "https://api.axiom.co"
    axiom_org_id: str | None = None

    @property
    def is_production(self) -> bool:
        return self.env.strip().lower() in ("prod", "production")

settings = Settings()
