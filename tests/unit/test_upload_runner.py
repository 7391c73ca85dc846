from unittest.mock import MagicMock

import pytest

from ob_s3.config.exceptions import ConfigurationError
from ob_s3.document.text_document import TextDocument
from ob_s3.payload.cache import PayloadCache
from ob_s3.payload.models import Payload
from ob_s3.placeholder.exceptions import PlaceholderNotFoundError
from ob_s3.placeholder.protocol import encode_failed, encode_uploading
from ob_s3.transport.dispatcher import UploadDispatcher
from ob_s3.transport.exceptions import UploadFailedError
from ob_s3.worker.upload_runner import UploadRunner

UPLOAD_ID = "abcDEF0123456789"
PREVIEW_REF = f"blob:ob-s3/{UPLOAD_ID}"
URL = f"https://cdn.example.com/{UPLOAD_ID}.png"


def _make_runner(
    **kwargs: object,
) -> tuple[UploadRunner, MagicMock, PayloadCache]:
    dispatcher = MagicMock(spec=UploadDispatcher)
    dispatcher.upload.return_value = URL
    cache = PayloadCache()
    runner = UploadRunner(dispatcher, cache, **kwargs)  # type: ignore[arg-type]
    return runner, dispatcher, cache


def _payload() -> Payload:
    return Payload(data=b"png", mime_type="image/png", filename="shot.png")


class TestUploadRunnerKeys:
    def test_key_is_derived_from_upload_id(self) -> None:
        runner, dispatcher, _ = _make_runner(key_prefix="attachments")
        runner.upload(UPLOAD_ID, _payload())
        dispatcher.upload.assert_called_once_with(
            f"attachments/{UPLOAD_ID}.png", "image/png", b"png"
        )

    def test_custom_key_policy(self) -> None:
        policy = MagicMock(return_value="custom/key.png")
        runner, _, _ = _make_runner(
            key_prefix="p", key_date_format="{yyyy}", key_policy=policy
        )
        assert runner.object_key(UPLOAD_ID, _payload()) == "custom/key.png"
        policy.assert_called_once_with("shot.png", "png", "p", UPLOAD_ID, "{yyyy}")


class TestUploadRunnerRun:
    def test_success_replaces_placeholder(self) -> None:
        runner, _, cache = _make_runner()
        cache.put(UPLOAD_ID, _payload())
        doc = TextDocument(f"a {encode_uploading(UPLOAD_ID, PREVIEW_REF)} b")

        outcome = runner.run(doc, UPLOAD_ID, _payload(), PREVIEW_REF)

        assert outcome.succeeded
        assert outcome.url == URL
        assert doc.text == f"a ![shot.png]({URL}) b"
        assert UPLOAD_ID not in cache

    def test_transport_failure_leaves_failed_placeholder(self) -> None:
        runner, dispatcher, cache = _make_runner()
        cache.put(UPLOAD_ID, _payload())
        dispatcher.upload.side_effect = UploadFailedError(503, "busy")
        doc = TextDocument(encode_uploading(UPLOAD_ID, PREVIEW_REF))

        outcome = runner.run(doc, UPLOAD_ID, _payload(), PREVIEW_REF)

        assert not outcome.succeeded
        assert isinstance(outcome.error, UploadFailedError)
        assert doc.text == encode_failed(UPLOAD_ID, PREVIEW_REF)
        assert UPLOAD_ID in cache

    def test_configuration_error_is_raised(self) -> None:
        runner, dispatcher, _ = _make_runner()
        dispatcher.upload.side_effect = ConfigurationError("S3 settings incomplete")
        doc = TextDocument(encode_uploading(UPLOAD_ID, PREVIEW_REF))

        with pytest.raises(ConfigurationError):
            runner.run(doc, UPLOAD_ID, _payload(), PREVIEW_REF)
        assert "status=failed" in doc.text


class TestUploadRunnerSettle:
    def test_missing_placeholder_raises_and_leaves_document(self) -> None:
        runner, _, cache = _make_runner()
        cache.put(UPLOAD_ID, _payload())
        doc = TextDocument("the placeholder was deleted")

        with pytest.raises(PlaceholderNotFoundError, match="not found"):
            runner.settle_success(doc, UPLOAD_ID, URL, _payload())

        assert doc.text == "the placeholder was deleted"
        assert UPLOAD_ID not in cache

    def test_non_image_becomes_link(self) -> None:
        runner, _, _ = _make_runner()
        doc = TextDocument(encode_failed(UPLOAD_ID))
        payload = Payload(data=b"%PDF", mime_type="application/pdf", filename="report.pdf")

        runner.settle_success(doc, UPLOAD_ID, "https://cdn/r.pdf", payload)

        assert doc.text == "[report.pdf](https://cdn/r.pdf)"
