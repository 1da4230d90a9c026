"""
Canonical form for AFOS bulletin text.

The fingerprint of a bulletin is computed over this canonical form, so the
function must be deterministic and idempotent: transport artifacts such as
CRLF line endings, SOH/ETX markers or trailing blanks must never show up as
a content change.
"""

import re

_LINE_ENDINGS = re.compile(r"\r\n?")
# ASCII control characters except tab (\x09) and line feed (\x0a)
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")
_TRAILING_BLANKS = re.compile(r"[ \t]+\n")
_BLANK_RUNS = re.compile(r"\n{3,}")


def normalize_bulletin_text(raw: str) -> str:
    """
    Clean raw upstream text into its canonical form.

    Args:
        raw: Text as received from the feed

    Returns:
        Text with LF line endings, no control characters other than tab and
        LF, no trailing blanks on any line, at most two consecutive newlines,
        and exactly one trailing newline
    """
    out = _LINE_ENDINGS.sub("\n", raw)
    out = _CONTROL_CHARS.sub("", out)
    out = _TRAILING_BLANKS.sub("\n", out)
    out = _BLANK_RUNS.sub("\n\n", out)
    return out.rstrip() + "\n"
