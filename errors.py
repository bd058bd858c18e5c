"""Error types raised while resolving and pinning an image tag.

Every error is fatal for a run; main() turns them into a non-zero exit.
"""


class TagPinError(Exception):
    """Base class for all tagpin failures."""


class NotFoundError(TagPinError):
    """Manifest file missing, or no line declares the templated image."""


class FormatError(TagPinError):
    """Captured image reference does not split into namespace/repository."""


class RegistryError(TagPinError):
    """Tag listing failed: transport error, bad status, bad body or too many pages."""


class NoMatchError(TagPinError):
    """No registry tag matches the vMAJOR.MINOR version pattern."""
