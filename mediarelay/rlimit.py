"""Raising the limit on open file descriptors."""

from __future__ import annotations

try:
    import resource
except ImportError:  # not available on Windows
    resource = None

TARGET_OPEN_FILES = 999999


def raise_limit() -> int | None:
    """Raise the soft limit on open files; return the new soft limit.

    Returns None where the platform has no such limit. Raises OSError when
    the limit cannot be raised.
    """
    if resource is None:
        return None

    _, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    try:
        resource.setrlimit(resource.RLIMIT_NOFILE, (TARGET_OPEN_FILES, hard))
    except ValueError as exc:
        raise OSError(str(exc)) from exc

    soft, _ = resource.getrlimit(resource.RLIMIT_NOFILE)
    return soft