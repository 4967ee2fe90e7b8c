"""ProjectAttach - attach a batch of selected projects to an account."""

__version__ = "0.1.0"


def get_version() -> str:
    """Return the installed ProjectAttach version."""
    return __version__
