from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class BaseConfig(BaseSettings):
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class CompressionType(str, Enum):
    GZIP = "gz"
    BZIP2 = "bz2"
    ZIP = "zip"


class StoreBackend(str, Enum):
    MONGO = "mongo"
    MEMORY = "memory"


class AppSettings(BaseSettings):
    app_name: str = Field(
        default="VidTube",
        min_length=1,
        max_length=100,
        alias="APP_NAME",
    )
    app_port: int = Field(
        default=8000,
        ge=1,
        le=65535,
        alias="APP_PORT",
    )

    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_reload: bool = Field(default=False)
    api_prefix: str = Field(default="/api/v1", alias="API_PREFIX")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")
    app_log_level: LogLevel = Field(default=LogLevel.INFO)
    log_format: str = Field(default="{time:YYYY-MM-DD HH:mm:ss} | {level} | {message}")
    log_file: Optional[str] = Field(default="logs/app.log")
    log_rotation: str = Field(default="1 day")
    log_compression: CompressionType = Field(default=CompressionType.GZIP)

    model_config = BaseConfig.model_config


class StoreSettings(BaseSettings):
    store_backend: StoreBackend = Field(default=StoreBackend.MONGO, alias="STORE_BACKEND")
    mongodb_uri: str = Field(default="mongodb://localhost:27017", alias="MONGODB_URI")
    mongodb_db: str = Field(default="vidtube", min_length=1, alias="MONGODB_DB")
    store_timeout_ms: int = Field(default=5000, ge=1, alias="STORE_TIMEOUT_MS")

    model_config = BaseConfig.model_config


class JWTSettings(BaseSettings):
    access_token_secret: str = Field(..., min_length=32, alias="ACCESS_TOKEN_SECRET")
    refresh_token_secret: str = Field(..., min_length=32, alias="REFRESH_TOKEN_SECRET")
    algorithm: str = Field(default="HS256", alias="ALGORITHM")
    access_token_expire_minutes: int = Field(default=15, ge=1, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    refresh_token_expire_minutes: int = Field(default=60 * 24 * 10, ge=1, alias="REFRESH_TOKEN_EXPIRE_MINUTES")

    model_config = BaseConfig.model_config


class CookieSettings(BaseSettings):
    cookie_secure: bool = Field(default=True, alias="COOKIE_SECURE")
    cookie_samesite: Literal["lax", "strict", "none"] = Field(default="lax", alias="COOKIE_SAMESITE")

    model_config = BaseConfig.model_config


class PaginationSettings(BaseSettings):
    default_page: int = Field(default=1, ge=1, alias="DEFAULT_PAGE")
    default_limit: int = Field(default=10, ge=1, alias="DEFAULT_LIMIT")
    max_limit: int = Field(default=100, ge=1, alias="MAX_LIMIT")

    model_config = BaseConfig.model_config


class MediaSettings(BaseSettings):
    cloudinary_cloud_name: str = Field(default="", alias="CLOUDINARY_CLOUD_NAME")
    cloudinary_api_key: str = Field(default="", alias="CLOUDINARY_API_KEY")
    cloudinary_api_secret: str = Field(default="", alias="CLOUDINARY_API_SECRET")
    media_timeout_seconds: float = Field(default=60.0, gt=0, alias="MEDIA_TIMEOUT_SECONDS")

    @property
    def upload_url(self) -> str:
        return f"https://api.cloudinary.com/v1_1/{self.cloudinary_cloud_name}/auto/upload"

    def destroy_url(self, resource_type: str) -> str:
        return f"https://api.cloudinary.com/v1_1/{self.cloudinary_cloud_name}/{resource_type}/destroy"

    model_config = BaseConfig.model_config


class Settings(BaseModel):
    app: AppSettings
    store: StoreSettings
    jwt: JWTSettings
    cookies: CookieSettings
    pagination: PaginationSettings
    media: MediaSettings

    @classmethod
    def load(cls) -> "Settings":
        return cls(
            app=AppSettings(),
            store=StoreSettings(),
            jwt=JWTSettings(),
            cookies=CookieSettings(),
            pagination=PaginationSettings(),
            media=MediaSettings(),
        )
