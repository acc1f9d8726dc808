class QuadWarpError(Exception):
    """Base class for errors raised by the quad warp tool."""


class DegenerateMappingError(QuadWarpError):
    """Raised when a quad pair has no usable projective mapping."""


class InvalidPointsError(QuadWarpError):
    """Raised when a stored or supplied points structure is partial or malformed."""


class MediaLoadError(QuadWarpError):
    """Raised when an image or video cannot be opened."""


class ConfigError(QuadWarpError):
    """Raised when a configuration file cannot be read."""
