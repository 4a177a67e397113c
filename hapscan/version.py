"""Version and build information."""

import subprocess

__version__ = "1.0.0"

__all__ = ["__version__", "get_git_commit"]


def get_git_commit() -> str:
    """Return short git commit hash if available, else 'unknown'."""
    try:
        res = subprocess.run(
            ["git", "rev-parse", "--short", "HEAD"],
            check=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
        )
    except (OSError, subprocess.CalledProcessError):
        return "unknown"
    return res.stdout.strip() or "unknown"
