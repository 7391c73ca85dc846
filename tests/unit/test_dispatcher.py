from pathlib import Path
from unittest.mock import MagicMock

import pytest

from ob_s3.transport.dispatcher import UploadDispatcher
from ob_s3.transport.exceptions import UploadTimeoutError
from ob_s3.transport.multipart import ChunkedTransport
from ob_s3.transport.part_sources import BytesPartSource, FilePartSource
from ob_s3.transport.simple import SimpleTransport


def _make_dispatcher(threshold: int = 8) -> tuple[UploadDispatcher, MagicMock, MagicMock]:
    simple = MagicMock(spec=SimpleTransport)
    simple.put_object.return_value = "https://cdn/simple"
    chunked = MagicMock(spec=ChunkedTransport)
    chunked.upload.return_value = "https://cdn/chunked"
    dispatcher = UploadDispatcher(
        simple,
        chunked,
        multipart_threshold_bytes=threshold,
        presign_timeout=0.2,
        upload_timeout=25.0,
    )
    return dispatcher, simple, chunked


class TestUploadDispatcherRouting:
    def test_threshold_is_exclusive(self) -> None:
        dispatcher, _, _ = _make_dispatcher(threshold=8)
        assert dispatcher.uses_multipart(8) is False
        assert dispatcher.uses_multipart(9) is True

    def test_small_payload_uses_single_put(self) -> None:
        dispatcher, simple, chunked = _make_dispatcher()

        url = dispatcher.upload("a.png", "image/png", b"small")

        assert url == "https://cdn/simple"
        simple.put_object.assert_called_once_with("a.png", "image/png", b"small", 1.0, 25.0)
        chunked.upload.assert_not_called()

    def test_large_payload_uses_multipart(self) -> None:
        dispatcher, simple, chunked = _make_dispatcher()
        progress = MagicMock()

        url = dispatcher.upload("big.bin", "video/mp4", b"0123456789", progress)

        assert url == "https://cdn/chunked"
        key, content_type, source, presign, upload, on_progress = chunked.upload.call_args.args
        assert (key, content_type, presign, upload) == ("big.bin", "video/mp4", 1.0, 25.0)
        assert isinstance(source, BytesPartSource)
        assert source.size() == 10
        assert on_progress is progress
        simple.put_object.assert_not_called()

    def test_failure_propagates(self) -> None:
        dispatcher, simple, _ = _make_dispatcher()
        simple.put_object.side_effect = UploadTimeoutError("slow")
        with pytest.raises(UploadTimeoutError):
            dispatcher.upload("a.png", "image/png", b"small")


class TestUploadDispatcherFiles:
    def test_small_file_is_read_whole(self, tmp_path: Path) -> None:
        path = tmp_path / "a.png"
        path.write_bytes(b"small")
        dispatcher, simple, _ = _make_dispatcher()

        dispatcher.upload_file("a.png", "image/png", path)

        assert simple.put_object.call_args.args[2] == b"small"

    def test_large_file_streams_parts(self, tmp_path: Path) -> None:
        path = tmp_path / "big.bin"
        path.write_bytes(b"0123456789")
        dispatcher, _, chunked = _make_dispatcher()

        assert dispatcher.upload_file("big.bin", "video/mp4", path) == "https://cdn/chunked"
        assert isinstance(chunked.upload.call_args.args[2], FilePartSource)
