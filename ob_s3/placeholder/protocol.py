"""Placeholder grammar: the single authoritative encoder and parser.

Two shapes live inside document text::

    uploading := "![" LABEL " ob-s3:id=" ID " status=uploading" "](" REF ")"
    failed    := "![" LABEL " ob-s3:id=" ID " status=failed" "](" REF ")" WS "[" RETRY "](#)"

    ID    := [A-Za-z0-9]{16}
    LABEL := any text without "]"   (metadata only, never parsed)
    REF   := any text without ")"   (preview ref; "#" or stale ref when failed)
    RETRY := any text without "]"

Only the ``id=`` and ``status=`` tokens form the contract; labels may change
freely. Nothing outside this module should match placeholder text.
"""

import re
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import Enum

from ob_s3.document.base import BaseDocument
from ob_s3.identifiers.mime import is_image

NAMESPACE = "ob-s3"
UPLOADING_LABEL = "Uploading"
FAILED_LABEL = "Upload failed"
RETRY_LABEL = "Retry"
EMPTY_REF = "#"

_HEAD = r"!\[[^\]]*?\b" + re.escape(NAMESPACE) + r":id=(?P<id>[A-Za-z0-9]{16})\s+status="

RE_UPLOADING = re.compile(_HEAD + r"uploading[^\]]*?\]\((?P<ref>[^)]*)\)")
RE_FAILED = re.compile(
    _HEAD + r"failed[^\]]*?\]\((?P<ref>[^)]*)\)\s*\[(?P<retry>[^\]]*?)\]\(#\)"
)

Replacer = Callable[[str], str | None]
"""Receives the matched placeholder text; returns new text, or None to skip it."""


class PlaceholderStatus(str, Enum):
    UPLOADING = "uploading"
    FAILED = "failed"


@dataclass(frozen=True)
class Placeholder:
    upload_id: str
    status: PlaceholderStatus
    ref: str
    retry_label: str | None = None


@dataclass(frozen=True)
class PlaceholderMatch:
    """A placeholder located in a document line; ``end`` is exclusive."""

    placeholder: Placeholder
    line: int
    start: int
    end: int
    text: str


def _check_ref(ref: str) -> str:
    if ")" in ref or "\n" in ref:
        raise ValueError(f"Placeholder ref must not contain ')' or newlines: {ref!r}")
    return ref


def encode_uploading(upload_id: str, preview_ref: str, label: str = UPLOADING_LABEL) -> str:
    return f"![{label} {NAMESPACE}:id={upload_id} status=uploading]({_check_ref(preview_ref)})"


def encode_failed(
    upload_id: str,
    stale_ref: str = EMPTY_REF,
    label: str = FAILED_LABEL,
    retry_label: str = RETRY_LABEL,
) -> str:
    ref = _check_ref(stale_ref)
    return f"![{label} {NAMESPACE}:id={upload_id} status=failed]({ref}) [{retry_label}](#)"


def render_final_reference(url: str, label: str, mime_type: str) -> str:
    """Markdown that replaces a placeholder once the upload succeeded."""
    safe_label = label.replace("[", "").replace("]", "")
    if is_image(mime_type):
        return f"![{safe_label}]({url})"
    return f"[{safe_label or 'file'}]({url})"


def _to_placeholder(match: re.Match[str], status: PlaceholderStatus) -> Placeholder:
    retry = match.group("retry") if status is PlaceholderStatus.FAILED else None
    return Placeholder(
        upload_id=match.group("id"),
        status=status,
        ref=match.group("ref"),
        retry_label=retry,
    )


def decode(text: str) -> Placeholder | None:
    """Parse the first placeholder found in ``text``."""
    matches = list(iter_line_matches(text, line=0))
    return matches[0].placeholder if matches else None


def iter_line_matches(text: str, line: int) -> Iterator[PlaceholderMatch]:
    """Yield placeholders on one line ordered by position."""
    found: list[PlaceholderMatch] = []
    for pattern, status in (
        (RE_UPLOADING, PlaceholderStatus.UPLOADING),
        (RE_FAILED, PlaceholderStatus.FAILED),
    ):
        for match in pattern.finditer(text):
            found.append(
                PlaceholderMatch(
                    placeholder=_to_placeholder(match, status),
                    line=line,
                    start=match.start(),
                    end=match.end(),
                    text=match.group(0),
                )
            )
    found.sort(key=lambda item: item.start)
    yield from found


def iter_document_matches(
    document: BaseDocument, upload_id: str | None = None
) -> Iterator[PlaceholderMatch]:
    for index in range(document.line_count()):
        line = document.get_line(index)
        if NAMESPACE not in line:
            continue
        for match in iter_line_matches(line, index):
            if upload_id is None or match.placeholder.upload_id == upload_id:
                yield match


def find(document: BaseDocument, upload_id: str) -> PlaceholderMatch | None:
    """Return the first placeholder for ``upload_id``, or None."""
    return next(iter_document_matches(document, upload_id), None)


def find_and_replace(document: BaseDocument, upload_id: str, replacer: Replacer) -> bool:
    """Replace the first placeholder for ``upload_id`` the replacer accepts.

    Occurrences for which ``replacer`` returns None (or its input unchanged)
    are left alone and scanning continues. Returns True when one line was
    rewritten; unrelated text is never touched.
    """
    for index in range(document.line_count()):
        line = document.get_line(index)
        if NAMESPACE not in line:
            continue
        for match in iter_line_matches(line, index):
            if match.placeholder.upload_id != upload_id:
                continue
            replacement = replacer(match.text)
            if replacement is None or replacement == match.text:
                continue
            document.set_line(index, line[: match.start] + replacement + line[match.end :])
            return True
    return False


def replace_in_text(text: str, upload_id: str, replacement: str) -> str:
    """Pure-text variant of ``find_and_replace`` with a fixed replacement."""
    lines = text.split("\n")
    for index, line in enumerate(lines):
        for match in iter_line_matches(line, index):
            if match.placeholder.upload_id == upload_id:
                lines[index] = line[: match.start] + replacement + line[match.end :]
                return "\n".join(lines)
    return text
