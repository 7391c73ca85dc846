from collections.abc import Callable

from ob_s3.config.settings import MIB

ConfirmOversize = Callable[[int, int], bool]


def within_limit_or_confirmed(
    size: int,
    max_upload_mb: int,
    confirm: ConfirmOversize | None = None,
) -> bool:
    """True when ``size`` fits the limit, or the caller confirms an oversized upload.

    ``confirm`` receives ``(size, limit_bytes)``; without one, oversized
    payloads are declined.
    """
    limit = max(1, int(max_upload_mb)) * MIB
    if size <= 0 or size <= limit:
        return True
    if confirm is None:
        return False
    return bool(confirm(size, limit))
