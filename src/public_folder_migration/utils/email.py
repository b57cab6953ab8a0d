"""MIME header helpers used when labelling archived items."""

from __future__ import annotations

from email import policy
from email.header import decode_header, make_header
from email.parser import BytesParser


def _decode_header_value(value: str) -> str:
    """Decode RFC 2047-encoded header values.

    Args:
        value: Raw header value.

    Returns:
        Best-effort decoded value.
    """
    try:
        return str(make_header(decode_header(value)))
    except Exception:
        return value


def mime_subject(raw_mime: bytes) -> str | None:
    """Return the decoded ``Subject`` header of a MIME message.

    Only the header block is parsed; calendar, contact and task items exported
    from Exchange are MIME too (``text/calendar``, ``text/vcard``), so the same
    parser applies to all item kinds.

    Args:
        raw_mime: Raw MIME bytes.

    Returns:
        The decoded subject, or None if the header is missing.
    """
    msg = BytesParser(policy=policy.compat32).parsebytes(raw_mime, headersonly=True)
    subj_raw = msg.get("Subject")
    if subj_raw is None:
        return None
    return " ".join(_decode_header_value(str(subj_raw)).split())
