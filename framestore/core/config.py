"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Settings are built once per process (get_settings) and
passed explicitly into the storage factory and upload pipeline; core logic
never reads the environment on its own.
"""

from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

STORAGE_PROVIDERS = ("s3", "local", "openlist")
DUPLICATE_CHECK_MODES = ("skip", "warn", "block")

DEFAULT_MIME_WHITELIST = (
    "image/jpeg,image/png,image/webp,image/gif,image/bmp,image/tiff,"
    "image/heic,image/heif,video/quicktime,video/mp4"
)


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    Provider-specific required fields (bucket, root path, remote token) are
    checked by StorageFactory at startup so a misconfigured provider fails
    the process, not a request.
    """

    # App
    app_name: str = "framestore"
    app_version: str = "1.0.0"
    debug: bool = False
    allowed_origins: str = "http://localhost:3000"
    request_id_header: str = "X-Request-ID"
    rate_limit_enabled: bool = True

    # Session (issued elsewhere; verified here)
    secret_key: SecretStr = SecretStr("dev-secret-change-in-production")
    algorithm: str = "HS256"
    session_cookie_name: str = "framestore_session"

    # Database (photo records, fingerprint lookup)
    database_url: str = "sqlite+aiosqlite:///./data/framestore.db"
    database_echo: bool = False

    # Storage provider discriminant: s3 | local | openlist
    storage_provider: str = "s3"

    # S3-compatible object storage
    s3_endpoint: str | None = None
    s3_bucket: str | None = None
    s3_region: str = "auto"
    s3_access_key_id: str | None = None
    s3_secret_access_key: SecretStr | None = None
    s3_prefix: str = ""
    s3_cdn_url: str | None = None
    s3_force_path_style: bool = False
    s3_multipart_threshold: int = 16 * 1024 * 1024
    s3_multipart_chunk_size: int = 8 * 1024 * 1024

    # Local filesystem
    local_path: str = "./data/storage"
    local_base_url: str = "/storage"
    local_prefix: str = "photos/"

    # Remote file manager (OpenList / AList-style API)
    openlist_base_url: str | None = None
    openlist_root_path: str = ""
    openlist_token: SecretStr | None = None
    openlist_endpoint_upload: str = "/api/fs/put"
    openlist_endpoint_download: str = ""
    openlist_endpoint_list: str = "/api/fs/list"
    openlist_endpoint_delete: str = "/api/fs/remove"
    openlist_endpoint_meta: str = "/api/fs/get"
    openlist_path_field: str = "path"
    openlist_cdn_url: str | None = None
    openlist_timeout: float = 60.0

    # Upload policy
    upload_mime_whitelist_enabled: bool = True
    upload_mime_whitelist: str = DEFAULT_MIME_WHITELIST
    upload_duplicate_check_enabled: bool = True
    upload_duplicate_check_mode: str = "skip"
    max_upload_size: int = 128 * 1024 * 1024  # 128MiB
    # Bodies up to this size stay in memory; larger ones spill to a temp file.
    upload_spool_max_memory: int = 8 * 1024 * 1024
    # Serialize concurrent uploads to the same key inside this process.
    upload_serialize_same_key: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_provider_and_policy(self) -> "Settings":
        """Validate discriminants that select behavior for the whole process."""
        self.storage_provider = self.storage_provider.lower()
        if self.storage_provider not in STORAGE_PROVIDERS:
            raise ValueError(
                f"Invalid storage_provider '{self.storage_provider}'. "
                f"Must be one of: {', '.join(STORAGE_PROVIDERS)}"
            )
        self.upload_duplicate_check_mode = self.upload_duplicate_check_mode.lower()
        if self.upload_duplicate_check_mode not in DUPLICATE_CHECK_MODES:
            raise ValueError(
                f"Invalid upload_duplicate_check_mode '{self.upload_duplicate_check_mode}'. "
                f"Must be one of: {', '.join(DUPLICATE_CHECK_MODES)}"
            )
        if self.max_upload_size <= 0:
            raise ValueError("max_upload_size must be a positive number of bytes")
        if not self.secret_key.get_secret_value():
            raise ValueError(
                "SECRET_KEY is required to verify session tokens. "
                "Generate with: openssl rand -hex 32."
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    In tests, call get_settings.cache_clear() before overriding env vars so
    the next get_settings() uses the new values.
    """
    return Settings()
