from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from threading import Lock
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ob_s3.config.profile import S3Profile, build_public_url
from ob_s3.transport.exceptions import TransportNetworkError, UploadFailedError
from ob_s3.transport.models import UploadPart


def build_s3_client(profile: S3Profile) -> Any:
    """Path-style SigV4 client; works with R2, MinIO and AWS alike."""
    return boto3.client(
        "s3",
        endpoint_url=profile.endpoint,
        region_name=profile.region,
        aws_access_key_id=profile.access_key_id,
        aws_secret_access_key=profile.secret_access_key,
        use_ssl=profile.use_ssl,
        config=Config(signature_version="s3v4", s3={"addressing_style": "path"}),
    )


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    try:
        yield
    except ClientError as exc:
        status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)
        raise UploadFailedError(int(status or 0), f"{action}: {exc}") from exc
    except BotoCoreError as exc:
        raise TransportNetworkError(f"{action}: {exc}") from exc


class S3ControlPlane:
    """Presigning and multipart session verbs against the active profile's bucket.

    The profile is resolved and validated on every call, so missing
    credentials fail fast with ``ConfigurationError`` at upload time.
    """

    def __init__(
        self,
        profile_provider: Callable[[], S3Profile],
        client_factory: Callable[[S3Profile], Any] = build_s3_client,
    ) -> None:
        self._profile_provider = profile_provider
        self._client_factory = client_factory
        self._cached: tuple[S3Profile, Any] | None = None
        self._lock = Lock()

    def profile(self) -> S3Profile:
        return self._profile_provider().validate()

    def _client(self) -> tuple[Any, S3Profile]:
        profile = self.profile()
        with self._lock:
            if self._cached is None or self._cached[0] != profile:
                self._cached = (profile, self._client_factory(profile))
            return self._cached[1], profile

    def public_url(self, key: str) -> str:
        return build_public_url(self.profile(), key)

    def presign_put(self, key: str, content_type: str, expires_in: int) -> str:
        client, profile = self._client()
        params: dict[str, Any] = {
            "Bucket": profile.bucket_name,
            "Key": key,
            "ContentType": content_type or "application/octet-stream",
        }
        if profile.cache_control:
            params["CacheControl"] = profile.cache_control
        with _translate_errors("presign put_object"):
            return client.generate_presigned_url(
                ClientMethod="put_object", Params=params, ExpiresIn=expires_in
            )

    def create_multipart_upload(self, key: str, content_type: str) -> str:
        client, profile = self._client()
        params: dict[str, Any] = {
            "Bucket": profile.bucket_name,
            "Key": key,
            "ContentType": content_type or "application/octet-stream",
        }
        if profile.cache_control:
            params["CacheControl"] = profile.cache_control
        with _translate_errors("create_multipart_upload"):
            response = client.create_multipart_upload(**params)
        upload_id = response.get("UploadId")
        if not upload_id:
            raise UploadFailedError(0, "create_multipart_upload returned no UploadId")
        return upload_id

    def presign_upload_part(
        self, key: str, upload_id: str, part_number: int, expires_in: int
    ) -> str:
        client, profile = self._client()
        with _translate_errors(f"presign upload_part {part_number}"):
            return client.generate_presigned_url(
                ClientMethod="upload_part",
                Params={
                    "Bucket": profile.bucket_name,
                    "Key": key,
                    "UploadId": upload_id,
                    "PartNumber": part_number,
                },
                ExpiresIn=expires_in,
            )

    def complete_multipart_upload(
        self, key: str, upload_id: str, parts: Sequence[UploadPart]
    ) -> None:
        client, profile = self._client()
        ordered = sorted(parts, key=lambda part: part.part_number)
        with _translate_errors("complete_multipart_upload"):
            client.complete_multipart_upload(
                Bucket=profile.bucket_name,
                Key=key,
                UploadId=upload_id,
                MultipartUpload={
                    "Parts": [
                        {"PartNumber": part.part_number, "ETag": part.etag} for part in ordered
                    ]
                },
            )

    def abort_multipart_upload(self, key: str, upload_id: str) -> None:
        client, profile = self._client()
        with _translate_errors("abort_multipart_upload"):
            client.abort_multipart_upload(
                Bucket=profile.bucket_name, Key=key, UploadId=upload_id
            )
