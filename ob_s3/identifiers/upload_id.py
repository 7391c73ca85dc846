import random
import re
import uuid

UPLOAD_ID_LENGTH = 16
UPLOAD_ID_PATTERN = re.compile(r"^[A-Za-z0-9]{16}$")


def _fallback_uuid4_hex() -> str:
    rnd = random.Random()
    return "".join(rnd.choice("0123456789abcdef") for _ in range(32))


def generate_upload_id() -> str:
    """Return a 16-char alphanumeric id: a random UUID without separators, truncated.

    ``uuid.uuid4`` draws from ``os.urandom``; when the OS has no secure source
    a pseudo-random hex string is used instead.
    """
    try:
        raw = uuid.uuid4().hex
    except NotImplementedError:
        raw = _fallback_uuid4_hex()
    return raw[:UPLOAD_ID_LENGTH]


def is_upload_id(value: str) -> bool:
    return bool(UPLOAD_ID_PATTERN.match(value or ""))
