from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional

class Settings(BaseSettings):
    # Database
    database_url: Optional[str] = Field(default=None, alias='DATABASE_URL')
    db_user: str = Field(default='postgres', alias='DB_USER')
    db_host: str = Field(default='localhost', alias='DB_HOST')
    db_password: str = Field(default='postgres', alias='DB_PASSWORD')
    db_port: int = Field(default=5432, alias='DB_PORT')
    db_name: str = Field(default='bookify', alias='DB_NAME')
    db_pool_min_size: int = Field(default=5, alias='DB_POOL_MIN_SIZE')
    db_pool_max_size: int = Field(default=30, alias='DB_POOL_MAX_SIZE')

    # JWT Security
    jwt_secret_key: str = Field(default='change-me-bookify-development-secret', alias='JWT_SECRET_KEY')
    jwt_issuer: str = Field(default='Bookify', alias='JWT_ISSUER')
    jwt_audience: str = Field(default='Bookify-Client', alias='JWT_AUDIENCE')
    access_token_expire_minutes: int = Field(default=60, alias='ACCESS_TOKEN_EXPIRE_MINUTES')
    refresh_token_expire_days: int = Field(default=7, alias='REFRESH_TOKEN_EXPIRE_DAYS')
    refresh_cookie_max_age_days: int = Field(default=30, alias='REFRESH_COOKIE_MAX_AGE_DAYS')
    bcrypt_rounds: int = Field(default=12, alias='BCRYPT_ROUNDS')
    require_email_confirmation: bool = Field(default=True, alias='REQUIRE_EMAIL_CONFIRMATION')

    # AWS SES (emails)
    aws_access_key_id: Optional[str] = Field(default=None, alias='AWS_ACCESS_KEY_ID')
    aws_secret_access_key: Optional[str] = Field(default=None, alias='AWS_SECRET_ACCESS_KEY')
    aws_region: Optional[str] = Field(default='us-east-1', alias='AWS_REGION')
    aws_ses_from_email: Optional[str] = Field(default='no-reply@bookify.local', alias='AWS_SES_FROM_EMAIL')

    # S3-compatible object storage (images)
    storage_access_key_id: Optional[str] = Field(default=None, alias='STORAGE_ACCESS_KEY_ID')
    storage_secret_access_key: Optional[str] = Field(default=None, alias='STORAGE_SECRET_ACCESS_KEY')
    storage_endpoint: Optional[str] = Field(default=None, alias='STORAGE_ENDPOINT')
    storage_bucket: str = Field(default='bookify-assets', alias='STORAGE_BUCKET')
    storage_public_url: Optional[str] = Field(default=None, alias='STORAGE_PUBLIC_URL')
    default_image_url: str = Field(default='https://placehold.co/600x400?text=Bookify', alias='DEFAULT_IMAGE_URL')

    # Loyalty
    loyalty_earn_rate: float = Field(default=0.10, alias='LOYALTY_EARN_RATE')
    point_value: float = Field(default=0.01, alias='POINT_VALUE')

    # App settings
    app_env: str = Field(default="development", alias='APP_ENV')
    frontend_url: str = Field(default="http://localhost:5173", alias='FRONTEND_URL')

    # FastAPI specific
    port: int = Field(default=8000, alias='FASTAPI_PORT')
    host: str = Field(default="0.0.0.0", alias='FASTAPI_HOST')
    debug: bool = Field(default=False, alias='DEBUG')

    # CORS configuration
    cors_origins: str = Field(default="http://localhost:5173", alias='CORS_ORIGINS')

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def db_connection_params(self) -> dict:
        if self.database_url:
            return {"dsn": self.database_url}
        return {
            "host": self.db_host,
            "port": self.db_port,
            "user": self.db_user,
            "password": self.db_password,
            "database": self.db_name,
        }

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

settings = Settings()
