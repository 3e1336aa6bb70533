from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Used for new grades when the request does not set max_capacity_per_class
    default_class_capacity: int = Field(29, alias="DEFAULT_CLASS_CAPACITY")
    admission_prefix: str = Field("SEC", alias="ADMISSION_PREFIX")
    receipt_prefix: str = Field("SEC", alias="RECEIPT_PREFIX")
    static_url_prefix: str = Field("/uploads", alias="STATIC_URL_PREFIX")

    app_host: str = Field("0.0.0.0", alias="APP_HOST")
    app_port: int = Field(8000, alias="APP_PORT")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    cors_origins: str = Field("*", alias="CORS_ORIGINS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
