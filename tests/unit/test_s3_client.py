from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from ob_s3.config.exceptions import ConfigurationError
from ob_s3.config.profile import S3Profile
from ob_s3.transport.exceptions import TransportNetworkError, UploadFailedError
from ob_s3.transport.models import UploadPart
from ob_s3.transport.s3_client import S3ControlPlane, build_s3_client


def _make_control_plane(
    profile: S3Profile, client: MagicMock
) -> tuple[S3ControlPlane, MagicMock]:
    factory = MagicMock(return_value=client)
    return S3ControlPlane(lambda: profile, client_factory=factory), factory


def _client_error(status: int) -> ClientError:
    return ClientError(
        {
            "Error": {"Code": "AccessDenied", "Message": "denied"},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        "CreateMultipartUpload",
    )


class TestBuildS3Client:
    def test_uses_path_style_sigv4(self, s3_profile: S3Profile) -> None:
        with patch("ob_s3.transport.s3_client.boto3.client") as mock_client:
            build_s3_client(s3_profile.validate())

        args, kwargs = mock_client.call_args
        assert args == ("s3",)
        assert kwargs["endpoint_url"] == "https://s3.example.com"
        assert kwargs["region_name"] == "us-east-1"
        assert kwargs["config"].signature_version == "s3v4"
        assert kwargs["config"].s3 == {"addressing_style": "path"}


class TestS3ControlPlaneProfile:
    def test_incomplete_profile_fails_fast(self, s3_client: MagicMock) -> None:
        profile = S3Profile(endpoint="", access_key_id="", secret_access_key="", bucket_name="")
        control_plane, factory = _make_control_plane(profile, s3_client)
        with pytest.raises(ConfigurationError, match="S3 settings incomplete"):
            control_plane.presign_put("k", "image/png", 300)
        factory.assert_not_called()

    def test_client_is_reused_for_same_profile(
        self, s3_profile: S3Profile, s3_client: MagicMock
    ) -> None:
        control_plane, factory = _make_control_plane(s3_profile, s3_client)
        control_plane.presign_put("a", "image/png", 300)
        control_plane.presign_put("b", "image/png", 300)
        factory.assert_called_once()

    def test_public_url(self, s3_profile: S3Profile, s3_client: MagicMock) -> None:
        control_plane, _ = _make_control_plane(s3_profile, s3_client)
        assert control_plane.public_url("a/b.png") == "https://s3.example.com/notes/a/b.png"


class TestPresign:
    def test_presign_put_params(self, s3_profile: S3Profile, s3_client: MagicMock) -> None:
        control_plane, _ = _make_control_plane(s3_profile, s3_client)
        url = control_plane.presign_put("a.png", "image/png", 300)

        assert url == "https://s3.example.com/notes/a.png?X-Amz-Signature=abc"
        s3_client.generate_presigned_url.assert_called_once_with(
            ClientMethod="put_object",
            Params={"Bucket": "notes", "Key": "a.png", "ContentType": "image/png"},
            ExpiresIn=300,
        )

    def test_presign_put_adds_cache_control(self, s3_client: MagicMock) -> None:
        profile = S3Profile(
            endpoint="https://s3.example.com",
            access_key_id="a",
            secret_access_key="b",
            bucket_name="notes",
            cache_control="max-age=31536000",
        )
        control_plane, _ = _make_control_plane(profile, s3_client)
        control_plane.presign_put("a.png", "", 60)

        params = s3_client.generate_presigned_url.call_args.kwargs["Params"]
        assert params["CacheControl"] == "max-age=31536000"
        assert params["ContentType"] == "application/octet-stream"

    def test_presign_upload_part(self, s3_profile: S3Profile, s3_client: MagicMock) -> None:
        control_plane, _ = _make_control_plane(s3_profile, s3_client)
        url = control_plane.presign_upload_part("big.bin", "mpu-1", 2, 3600)
        assert url.endswith("?partNumber=2&uploadId=mpu-1")


class TestMultipartVerbs:
    def test_create_returns_upload_id(
        self, s3_profile: S3Profile, s3_client: MagicMock
    ) -> None:
        control_plane, _ = _make_control_plane(s3_profile, s3_client)
        assert control_plane.create_multipart_upload("big.bin", "video/mp4") == "mpu-1"
        s3_client.create_multipart_upload.assert_called_once_with(
            Bucket="notes", Key="big.bin", ContentType="video/mp4"
        )

    def test_create_without_upload_id_fails(
        self, s3_profile: S3Profile, s3_client: MagicMock
    ) -> None:
        s3_client.create_multipart_upload.return_value = {}
        control_plane, _ = _make_control_plane(s3_profile, s3_client)
        with pytest.raises(UploadFailedError, match="no UploadId"):
            control_plane.create_multipart_upload("big.bin", "video/mp4")

    def test_complete_sorts_parts(self, s3_profile: S3Profile, s3_client: MagicMock) -> None:
        control_plane, _ = _make_control_plane(s3_profile, s3_client)
        parts = [
            UploadPart(part_number=2, start=5, end=10, size=5, etag='"b"'),
            UploadPart(part_number=1, start=0, end=5, size=5, etag='"a"'),
        ]
        control_plane.complete_multipart_upload("big.bin", "mpu-1", parts)

        s3_client.complete_multipart_upload.assert_called_once_with(
            Bucket="notes",
            Key="big.bin",
            UploadId="mpu-1",
            MultipartUpload={
                "Parts": [
                    {"PartNumber": 1, "ETag": '"a"'},
                    {"PartNumber": 2, "ETag": '"b"'},
                ]
            },
        )

    def test_abort(self, s3_profile: S3Profile, s3_client: MagicMock) -> None:
        control_plane, _ = _make_control_plane(s3_profile, s3_client)
        control_plane.abort_multipart_upload("big.bin", "mpu-1")
        s3_client.abort_multipart_upload.assert_called_once_with(
            Bucket="notes", Key="big.bin", UploadId="mpu-1"
        )


class TestErrorTranslation:
    def test_client_error_becomes_upload_failed(
        self, s3_profile: S3Profile, s3_client: MagicMock
    ) -> None:
        s3_client.create_multipart_upload.side_effect = _client_error(403)
        control_plane, _ = _make_control_plane(s3_profile, s3_client)
        with pytest.raises(UploadFailedError) as exc_info:
            control_plane.create_multipart_upload("big.bin", "video/mp4")
        assert exc_info.value.status == 403

    def test_botocore_error_becomes_network_error(
        self, s3_profile: S3Profile, s3_client: MagicMock
    ) -> None:
        s3_client.abort_multipart_upload.side_effect = EndpointConnectionError(
            endpoint_url="https://s3.example.com"
        )
        control_plane, _ = _make_control_plane(s3_profile, s3_client)
        with pytest.raises(TransportNetworkError, match="abort_multipart_upload"):
            control_plane.abort_multipart_upload("big.bin", "mpu-1")
