from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_env: str = Field(default="dev", alias="APP_ENV")
    app_host: str = Field(default="0.0.0.0", alias="APP_HOST")
    app_port: int = Field(default=8000, alias="APP_PORT")
    cors_origins: str = Field(default="http://localhost:3000", alias="CORS_ORIGINS")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_structured: bool = Field(default=False, alias="LOG_STRUCTURED")

    database_url: str = Field(default="sqlite:///./reelfeed.db", alias="DATABASE_URL")

    # Empty REDIS_URL runs every job through the in-process fallback runner
    redis_url: str = Field(default="", alias="REDIS_URL")
    rq_queue_video: str = Field(default="video-process", alias="RQ_QUEUE_VIDEO")
    rq_queue_tagging: str = Field(default="tagging", alias="RQ_QUEUE_TAGGING")
    video_worker_concurrency: int = Field(default=2, alias="VIDEO_WORKER_CONCURRENCY")
    tagging_worker_concurrency: int = Field(default=5, alias="TAGGING_WORKER_CONCURRENCY")
    local_runner_concurrency: int = Field(default=2, alias="LOCAL_RUNNER_CONCURRENCY")

    jwt_secret: str = Field(default="dev-secret-change-in-production", alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")

    # S3-compatible object store (Cloudflare R2, MinIO, ...)
    storage_provider: str = Field(default="r2", alias="STORAGE_PROVIDER")
    storage_endpoint: str = Field(default="", alias="STORAGE_ENDPOINT")
    storage_access_key: str = Field(default="", alias="STORAGE_ACCESS_KEY")
    storage_secret_key: str = Field(default="", alias="STORAGE_SECRET_KEY")
    storage_bucket: str = Field(default="", alias="STORAGE_BUCKET")
    storage_region: str = Field(default="auto", alias="STORAGE_REGION")
    storage_secure: bool = Field(default=True, alias="STORAGE_SECURE")
    storage_public_url: str = Field(default="", alias="STORAGE_PUBLIC_URL")

    temp_dir: str | None = Field(default=None, alias="TEMP_DIR")
    source_fetch_timeout: int = Field(default=120, alias="SOURCE_FETCH_TIMEOUT")
    stale_upload_max_age_hours: int = Field(default=24, alias="STALE_UPLOAD_MAX_AGE_HOURS")

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True

    @property
    def storage_configured(self) -> bool:
        return all(
            (self.storage_endpoint, self.storage_access_key, self.storage_secret_key, self.storage_bucket)
        )

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


settings = Settings()
