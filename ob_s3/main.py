from pathlib import Path

from ob_s3.config.settings import Settings
from ob_s3.database.connection import close_pool, init_pool
from ob_s3.document.base import BaseDocument
from ob_s3.document.text_document import MarkdownFileDocument
from ob_s3.logging.logger import Log
from ob_s3.pipeline import build_pipeline


def main() -> None:
    """Entry point: load settings -> build pipeline -> drain the upload queue forever."""
    settings = Settings()
    Log.configure(settings.log_level)
    use_postgres = settings.queue_backend == "postgres"
    if use_postgres:
        init_pool(settings)

    document_path = Path(settings.document_path) if settings.document_path else None

    def active_document() -> BaseDocument | None:
        # Fresh read per tick.
        if document_path is None or not document_path.exists():
            return None
        return MarkdownFileDocument(document_path)

    try:
        pipeline = build_pipeline(settings, document_provider=active_document)
        pipeline.scheduler.run()
    finally:
        if use_postgres:
            close_pool()


if __name__ == "__main__":
    main()
