"""Note-name sanitizing."""

import re

# Characters a vault note name may not contain
INVALID_NOTE_CHARS = '\\/:*?"<>|'

_INVALID_RE = re.compile(r'[\\/:*?"<>|]')


def sanitize_note_name(name: str) -> str:
    """Strip filesystem-invalid characters from a note name.

    A title made entirely of invalid characters sanitizes to an empty
    string; callers decide the fallback.

    Args:
        name: Raw note name (usually a page title)

    Returns:
        Sanitized name, trimmed of surrounding whitespace
    """
    return _INVALID_RE.sub("", name).strip()


def finalize_note_name(name: str, fallback: str = "") -> str:
    """Sanitize a rendered note name for the vault writer.

    Drops a trailing ``.md`` suffix (the writer adds it) and collapses
    internal newlines, which rendered templates can introduce.

    Args:
        name: Rendered note name
        fallback: Name used when nothing survives sanitizing

    Returns:
        Note name with no path separators and no ``.md`` suffix
    """
    name = re.sub(r"\s*\n\s*", " ", name)
    name = sanitize_note_name(name)
    if name.lower().endswith(".md"):
        name = name[:-3].rstrip()
    if not name:
        name = sanitize_note_name(fallback)
    return name or "Untitled"
