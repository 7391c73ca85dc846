from ob_s3.errors import ObS3Error


class PlaceholderNotFoundError(ObS3Error):
    """Raised when no placeholder for an upload id can be located in the document."""

    kind = "placeholder_not_found"
