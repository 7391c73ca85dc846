from ob_s3.errors import ObS3Error


class ConfigurationError(ObS3Error):
    """Raised when credentials or the endpoint are missing or invalid."""

    kind = "configuration"
