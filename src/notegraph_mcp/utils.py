"""Utility functions for the Notegraph MCP server."""
from typing import Iterable, List, Optional


def escape_like_pattern(value: str) -> str:
    """Escape SQL LIKE wildcards to treat them as literals.

    Prevents SQL LIKE pattern injection where user input containing
    '%' or '_' could match unintended patterns.

    Args:
        value: User input string that may contain LIKE wildcards

    Returns:
        String with '%', '_', and '\\' escaped for safe use in LIKE clauses

    Example:
        >>> escape_like_pattern("100% complete")
        '100\\% complete'
        >>> escape_like_pattern("[[12|")
        '[[12|'
    """
    escape_table = str.maketrans(
        {
            "\\": "\\\\",  # Escape backslash first
            "%": "\\%",
            "_": "\\_",
        }
    )
    return value.translate(escape_table)


def parse_tag_list(tags: Optional[str]) -> List[str]:
    """Split a comma-separated tag string, dropping blanks and duplicates.

    Order of first appearance is preserved.
    """
    if not tags:
        return []
    return dedupe_tags(t.strip() for t in tags.split(","))


def dedupe_tags(tags: Iterable[str]) -> List[str]:
    """Return tags without blanks or repeats, keeping first-seen order."""
    seen = set()
    result = []
    for tag in tags:
        if tag and tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result
