from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIB = 1024 * 1024


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    s3_endpoint: str = ""
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""
    s3_bucket_name: str = ""
    s3_region: str = ""
    s3_use_ssl: bool = True
    s3_base_url: str = ""
    s3_key_prefix: str = ""
    s3_cache_control: str = ""
    key_prefix_format: str = ""

    presign_timeout_seconds: float = 10.0
    upload_timeout_seconds: float = 25.0
    presign_expires_seconds: int = 300

    scheduler_interval_ms: int = 2500

    multipart_threshold_bytes: int = 10 * MIB
    multipart_chunk_size_bytes: int = 5 * MIB
    multipart_max_concurrent_parts: int = 3
    multipart_max_retries: int = 3
    multipart_backoff_base_seconds: float = 1.0
    multipart_backoff_cap_seconds: float = 30.0

    max_upload_mb: int = 5
    enable_temp_local: bool = False
    temp_root: str = ".obs3/assets"
    payload_cache_capacity: int | None = None
    retry_via_queue: bool = False

    queue_backend: str = "json"
    queue_file_path: str = "ob-s3-data.json"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "ob_s3"
    db_username: str = "ob_s3"
    db_password: str = "secret"

    document_path: str = ""

    @field_validator("queue_backend")
    @classmethod
    def _check_queue_backend(cls, value: str) -> str:
        backend = value.lower()
        if backend not in {"json", "postgres"}:
            raise ValueError("queue_backend must be one of: json, postgres")
        return backend
