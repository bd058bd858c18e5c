"""Version tag selection for registry tag lists.

Only tags of the exact form ``vMAJOR.MINOR`` are considered; everything else
(``latest``, ``v1.2.3``, ``v1.2-rc1``) is ignored.
"""

import re
from typing import Optional, Sequence, Tuple

from errors import NoMatchError

VERSION_PATTERN = re.compile(r'v([0-9]+)\.([0-9]+)')


def parse_version(tag: str) -> Optional[Tuple[int, int]]:
    """Return (major, minor) for a ``vX.Y`` tag, or None."""
    match = VERSION_PATTERN.fullmatch(tag)
    if not match:
        return None
    return int(match.group(1)), int(match.group(2))


def select_latest(tags: Sequence[str]) -> str:
    """Return the tag with the highest (major, minor).

    Comparison is numeric, so v10.0 beats v9.99. Among equal versions the
    first one seen is kept.
    """
    best_tag = None
    best_version = None

    for tag in tags:
        version = parse_version(tag)
        if version is None:
            continue
        if best_version is None or version > best_version:
            best_tag, best_version = tag, version

    if best_tag is None:
        raise NoMatchError(
            f"None of {len(tags)} tags match {VERSION_PATTERN.pattern}"
        )
    return best_tag
