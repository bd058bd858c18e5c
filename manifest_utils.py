"""Image reference extraction from docker-compose manifests.

Finds the service line whose image tag is templated with a named variable,
e.g. ``image: linuxserver/calibre:${IMAGE_TAG}``, and returns the
namespace/repository part.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from errors import FormatError, NotFoundError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

# alnum run, optionally followed by (single separator + alnum run) repeats
_TOKEN = r'[a-z0-9]+(?:[._-][a-z0-9]+)*'

EXPECTED_SHAPE = 'image: <namespace>/<repository>:${%s}'


@dataclass(frozen=True)
class ManifestReference:
    """Namespace/repository pair taken from one manifest line."""
    namespace: str
    repository: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.repository}"


def image_pattern(tag_variable: str) -> re.Pattern:
    """Compile the line pattern for an image templated with ``tag_variable``.

    Only the ``image`` keyword is case-insensitive. The value may be wrapped
    in matching single or double quotes.
    """
    return re.compile(
        r'^\s*(?i:image)\s*:\s*'
        r'(?P<quote>["\']?)'
        r'(?P<ref>' + _TOKEN + '/' + _TOKEN + r')'
        r':\$\{' + re.escape(tag_variable) + r'\}'
        r'(?P=quote)\s*$'
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def read_manifest(path: Path) -> List[str]:
    """Read a manifest file into lines."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read().splitlines()
    except FileNotFoundError as e:
        raise NotFoundError(f"Manifest file {path} not found") from e


def extract_repository(manifest_lines: Sequence[str], tag_variable: str) -> ManifestReference:
    """Return the image reference declared with ``${tag_variable}`` as its tag.

    When several lines match with different references the first one wins
    and a warning lists every candidate.
    """
    pattern = image_pattern(tag_variable)

    candidates = []
    for line in manifest_lines:
        match = pattern.match(line)
        if match:
            candidates.append(match.group('ref'))

    if not candidates:
        raise NotFoundError(
            f"No line of the form '{EXPECTED_SHAPE % tag_variable}' found "
            f"for variable {tag_variable}"
        )

    distinct = list(dict.fromkeys(candidates))
    if len(distinct) > 1:
        logger.warning(
            "Multiple images use ${%s}: %s. Using %s",
            tag_variable, ', '.join(distinct), distinct[0]
        )

    parts = candidates[0].split('/')
    if len(parts) != 2 or not all(parts):
        raise FormatError(f"Image reference '{candidates[0]}' is not <namespace>/<repository>")

    return ManifestReference(namespace=parts[0], repository=parts[1])
