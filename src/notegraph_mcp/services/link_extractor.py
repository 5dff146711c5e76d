"""Extraction of inline note references from note bodies.

A reference is written ``[[<id>|<label>]]`` where ``<id>`` is a base-10
positive integer and ``<label>`` is non-empty text without ``]``. This
syntax is part of the stored note content, so it must not change.

Extraction is a pure function of the body text and does not validate
targets; callers decide which targets resolve.
"""
import logging
import re
from typing import Iterator, Optional, Tuple

from notegraph_mcp.exceptions import MalformedReferenceError
from notegraph_mcp.models.schema import LinkReference

logger = logging.getLogger(__name__)

# Ids are stored as signed 64-bit integers.
MAX_NOTE_ID = 2**63 - 1

# [0-9] rather than \d: \d would also accept non-ASCII digits.
LINK_PATTERN = re.compile(r"\[\[([0-9]+)\|([^\]]+)\]\]")


def parse_target_id(token: str) -> int:
    """Parse the id part of a reference.

    Raises:
        MalformedReferenceError: If the token is not a usable note id.
    """
    try:
        target_id = int(token, 10)
    except ValueError as e:
        raise MalformedReferenceError(token, "not a base-10 integer") from e
    if target_id <= 0:
        raise MalformedReferenceError(token, "id must be positive")
    if target_id > MAX_NOTE_ID:
        raise MalformedReferenceError(token, "id out of range")
    return target_id


def extract_references(body: Optional[str]) -> Iterator[LinkReference]:
    """Yield every reference in ``body``, left to right.

    Matches never overlap. An occurrence with an unusable id is skipped
    and the scan continues. Each call starts a fresh scan, so the result
    can be re-obtained at any time and calls are safe to run concurrently.

    Args:
        body: Note body; None or empty yields nothing.
    """
    if not body:
        return
    for match in LINK_PATTERN.finditer(body):
        try:
            target_id = parse_target_id(match.group(1))
        except MalformedReferenceError as e:
            logger.debug(f"Skipping reference at offset {match.start()}: {e.message}")
            continue
        yield LinkReference(target_id=target_id, label=match.group(2))


def reference_prefix(note_id: int) -> str:
    """Literal text a canonical reference to ``note_id`` starts with."""
    return f"[[{note_id}|"


# Ids may be written with leading zeros ([[007|x]] targets 7).
ZERO_PADDED_PREFIX = "[[0"


def candidate_prefixes(note_id: int) -> Tuple[str, ...]:
    """Literal fragments at least one of which occurs in any body that
    references ``note_id``.

    Used to narrow candidates in storage before running the extractor.
    """
    return (reference_prefix(note_id), ZERO_PADDED_PREFIX)


def references_target(body: Optional[str], note_id: int) -> bool:
    """Check whether ``body`` contains at least one reference to ``note_id``."""
    return any(ref.target_id == note_id for ref in extract_references(body))
