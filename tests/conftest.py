from typing import Any
from unittest.mock import MagicMock

import pytest

from ob_s3.config.profile import S3Profile

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


@pytest.fixture()
def sample_png_bytes() -> bytes:
    """A 2 KB payload starting with the PNG signature."""
    return PNG_SIGNATURE + bytes(2048 - len(PNG_SIGNATURE))


@pytest.fixture()
def s3_profile() -> S3Profile:
    return S3Profile(
        endpoint="https://s3.example.com",
        access_key_id="AKIAEXAMPLE",
        secret_access_key="secret",
        bucket_name="notes",
    )


@pytest.fixture()
def s3_client() -> MagicMock:
    """A boto3 S3 client double that presigns deterministic URLs."""

    def presign(**kwargs: Any) -> str:
        params = kwargs["Params"]
        if kwargs["ClientMethod"] == "upload_part":
            return (
                f"https://s3.example.com/notes/{params['Key']}"
                f"?partNumber={params['PartNumber']}&uploadId={params['UploadId']}"
            )
        return f"https://s3.example.com/notes/{params['Key']}?X-Amz-Signature=abc"

    client = MagicMock()
    client.generate_presigned_url.side_effect = presign
    client.create_multipart_upload.return_value = {"UploadId": "mpu-1"}
    return client
