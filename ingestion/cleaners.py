import re
import unicodedata


def normalize_text(s: str) -> str:
    """Collapse whitespace runs to one space, newline runs to one newline, and trim."""
    s = unicodedata.normalize("NFKC", s)
    s = re.sub(r"[^\S\n]+", " ", s)
    s = re.sub(r"\s*\n\s*", "\n", s)
    return s.strip()


def collapse_spaces(s: str | None) -> str:
    """Single-line form for catalog titles and abstracts."""
    if not s:
        return ""
    return re.sub(r"\s+", " ", s).strip()


def to_year(raw: object) -> str:
    """Reduce a date-ish value ("2021-03-04", 2021, "2021") to a 4-digit year."""
    if raw is None:
        return "Unknown"
    m = re.search(r"\b(\d{4})\b", str(raw))
    return m.group(1) if m else "Unknown"
