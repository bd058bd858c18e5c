"""Single-key environment file used to hand the pinned tag to compose."""

from pathlib import Path
from typing import Optional


def write_env_file(path: Path, tag_variable: str, tag: str) -> None:
    """Overwrite ``path`` with the single line ``{tag_variable}={tag}``."""
    path = Path(path)
    temp_file = path.with_name(path.name + '.tmp')
    with open(temp_file, 'w', encoding='ascii', newline='\n') as f:
        f.write(f"{tag_variable}={tag}\n")

    # Atomic rename
    temp_file.replace(path)


def read_env_value(path: Path, tag_variable: str) -> Optional[str]:
    """Return the value previously written for ``tag_variable``, if any."""
    path = Path(path)
    if not path.exists():
        return None

    with open(path, 'r', encoding='utf-8', errors='replace') as f:
        for line in f:
            key, sep, value = line.strip().partition('=')
            if sep and key.strip() == tag_variable:
                return value.strip()
    return None
