from dataclasses import dataclass
from urllib.parse import quote, urlsplit

from ob_s3.config.exceptions import ConfigurationError
from ob_s3.config.settings import Settings

DEFAULT_REGION = "us-east-1"


def normalize_endpoint(endpoint: str) -> str:
    """Strip trailing slashes and reject endpoints that are not bare hosts.

    Raises:
        ConfigurationError: if the scheme is not http(s) or a path is present.
    """
    normalized = (endpoint or "").strip().rstrip("/")
    if not normalized.lower().startswith(("http://", "https://")):
        raise ConfigurationError("Invalid endpoint: must start with http(s)://")
    if urlsplit(normalized).path not in ("", "/"):
        raise ConfigurationError("Invalid endpoint: do not include bucket path in endpoint")
    return normalized


@dataclass(frozen=True)
class S3Profile:
    """Credentials and addressing for one S3-compatible bucket."""

    endpoint: str
    access_key_id: str
    secret_access_key: str
    bucket_name: str
    region: str = ""
    use_ssl: bool = True
    base_url: str = ""
    key_prefix: str = ""
    cache_control: str = ""

    REQUIRED_FIELDS = ("endpoint", "access_key_id", "secret_access_key", "bucket_name")

    @classmethod
    def from_settings(cls, settings: Settings) -> "S3Profile":
        return cls(
            endpoint=settings.s3_endpoint,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            bucket_name=settings.s3_bucket_name,
            region=settings.s3_region,
            use_ssl=settings.s3_use_ssl,
            base_url=settings.s3_base_url,
            key_prefix=settings.s3_key_prefix,
            cache_control=settings.s3_cache_control,
        )

    def validate(self) -> "S3Profile":
        """Fail fast when a required field is absent; return a normalized copy."""
        missing = [name for name in self.REQUIRED_FIELDS if not getattr(self, name).strip()]
        if missing:
            raise ConfigurationError(
                f"S3 settings incomplete: missing {', '.join(missing)}"
            )
        return S3Profile(
            endpoint=normalize_endpoint(self.endpoint),
            access_key_id=self.access_key_id.strip(),
            secret_access_key=self.secret_access_key.strip(),
            bucket_name=self.bucket_name.strip(),
            region=self.region.strip() or DEFAULT_REGION,
            use_ssl=self.use_ssl,
            base_url=self.base_url.strip(),
            key_prefix=self.key_prefix.strip().strip("/"),
            cache_control=self.cache_control.strip(),
        )


def build_public_url(profile: S3Profile, key: str) -> str:
    """Public URL for an uploaded key: base URL when set, else path-style endpoint URL."""
    quoted_key = quote(key.lstrip("/"), safe="/")
    if profile.base_url:
        return f"{profile.base_url.rstrip('/')}/{quoted_key}"
    return f"{profile.endpoint.rstrip('/')}/{profile.bucket_name}/{quoted_key}"
