class InvalidModeError(Exception):
    """Raised when a summary mode other than ``means`` or ``contrasts`` is requested."""
    pass


class ShapeError(Exception):
    """
    Raised when a draws matrix is malformed.

    A valid draws matrix is two-dimensional, has at least one row (sample),
    and has exactly one column per coefficient of the design.
    """
    pass


class DesignError(Exception):
    """Raised when a factorial design is structurally invalid."""
    pass


class ConfigError(Exception):
    """Raised when an analysis configuration value is missing or out of range."""
    pass
