from ob_s3.transport.dispatcher import UploadDispatcher
from ob_s3.transport.multipart import ChunkedTransport, MultipartSession
from ob_s3.transport.simple import SimpleTransport

__all__ = ["ChunkedTransport", "MultipartSession", "SimpleTransport", "UploadDispatcher"]
