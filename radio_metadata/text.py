from typing import Iterable

TITLE_LIMIT = 256


def find_following(lines: Iterable[str], key: str, ignore_case: bool = False) -> str | None:
    """Return the text after `key` in the first line containing it.

    Works on any sequence of line-like strings: HTTP header lines,
    `;`-separated ICY fields, ... The result is not trimmed.
    """
    needle = key.lower() if ignore_case else key
    for line in lines:
        haystack = line.lower() if ignore_case else line
        pos = haystack.find(needle)
        if pos != -1:
            return line[pos + len(key):]
    return None


def truncate_title(title: str, limit: int = TITLE_LIMIT) -> str:
    return title[:limit]


def clean_title(value: str) -> str:
    return truncate_title(value.strip("'"))

# ---------------------------------------------------------
# Decode text (PL-safe)
# ---------------------------------------------------------

def decode_text(data) -> str:
    if data is None:
        return ""

    if isinstance(data, str):
        raw = data.encode("latin1", errors="replace")
    else:
        raw = bytes(data)

    for enc in ("utf-8", "iso-8859-2", "windows-1250", "latin1"):
        try:
            return raw.decode(enc)
        except UnicodeError:
            continue

    return raw.decode("utf-8", errors="replace")
