"""Configuration and drive context discovery.

A drive context is a local directory that contains a ``.gd`` directory.
Everything below it is mirrored against the root of the remote drive, and
the access token used to talk to the API is stored inside ``.gd``.
"""

import json
import logging
import os
import shutil
import signal
import sys
from pathlib import Path
from typing import Any, Optional, Union

from .exceptions import GdConfigError, GdContextError

logger = logging.getLogger(__name__)

GD_DIR_NAME = ".gd"
CREDENTIALS_FILE_NAME = "credentials.json"

DEFAULT_API_URL = "https://www.googleapis.com"
DEFAULT_PAGE_SIZE = 100


class Config:
    """Process-wide settings read from the environment."""

    @property
    def api_url(self) -> str:
        """Base URL of the drive API."""
        return os.environ.get("GD_API_URL", DEFAULT_API_URL).rstrip("/")

    @property
    def env_access_token(self) -> Optional[str]:
        """Access token supplied via ``GD_ACCESS_TOKEN`` (if any)."""
        token = os.environ.get("GD_ACCESS_TOKEN", "").strip()
        return token or None

    @property
    def page_size(self) -> int:
        """Number of entries requested per listing page."""
        value = os.environ.get("GD_PAGE_SIZE")
        if not value:
            return DEFAULT_PAGE_SIZE
        try:
            size = int(value)
        except ValueError as e:
            raise GdConfigError(f"GD_PAGE_SIZE must be an integer: {value}") from e
        if size < 1:
            raise GdConfigError(f"GD_PAGE_SIZE must be positive: {value}")
        return size


config = Config()


class Context:
    """A local directory tree bound to the remote drive."""

    def __init__(self, abs_path: Union[str, Path]):
        """Initialize context.

        Args:
            abs_path: Directory that contains the ``.gd`` directory
        """
        self.abs_path = Path(abs_path).resolve()

    def __repr__(self) -> str:
        return f"Context({str(self.abs_path)!r})"

    @property
    def gd_path(self) -> Path:
        return self.abs_path / GD_DIR_NAME

    @property
    def credentials_path(self) -> Path:
        return self.gd_path / CREDENTIALS_FILE_NAME

    def abs_path_of(self, rel_path: str) -> Path:
        """Absolute local path of a context-relative path."""
        rel_path = rel_path.strip("/")
        if not rel_path:
            return self.abs_path
        return self.abs_path / rel_path

    def rel_path_of(self, path: Union[str, Path]) -> str:
        """Context-relative (forward-slash) path of a local path.

        Raises:
            GdContextError: If the path lies outside the context
        """
        abs_path = Path(path).resolve()
        try:
            rel = abs_path.relative_to(self.abs_path).as_posix()
        except ValueError as e:
            raise GdContextError(
                f"{abs_path} is outside of the drive context {self.abs_path}"
            ) from e
        return "" if rel == "." else rel

    def _read_credentials(self) -> dict[str, Any]:
        if not self.credentials_path.exists():
            return {}
        try:
            with open(self.credentials_path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read credentials: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    @property
    def access_token(self) -> Optional[str]:
        """Access token from ``GD_ACCESS_TOKEN`` or the credentials file."""
        env_token = config.env_access_token
        if env_token:
            return env_token
        return self._read_credentials().get("access_token") or None

    def is_configured(self) -> bool:
        return self.access_token is not None

    def save_access_token(self, token: str) -> Path:
        """Store the access token in the credentials file.

        Returns:
            Path of the credentials file
        """
        self.gd_path.mkdir(parents=True, exist_ok=True)
        data = self._read_credentials()
        data["access_token"] = token
        with open(self.credentials_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        try:
            os.chmod(self.credentials_path, 0o600)
        except OSError:
            logger.debug("Could not restrict permissions on credentials file")
        logger.debug(f"Saved access token to {self.credentials_path}")
        return self.credentials_path


def initialize(path: Union[str, Path]) -> tuple[Path, bool, Context]:
    """Create (or reuse) a drive context rooted at ``path``.

    Args:
        path: Directory to turn into a drive context

    Returns:
        Tuple of (gd_path, first_init, context). ``first_init`` is True when
        the ``.gd`` directory did not exist before this call.
    """
    root = Path(path).resolve()
    if root.exists() and not root.is_dir():
        raise GdContextError(f"Not a directory: {root}")

    context = Context(root)
    first_init = not context.gd_path.exists()
    try:
        context.gd_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise GdContextError(f"Cannot create {context.gd_path}: {e}") from e

    logger.debug(f"Initialized context at {root} (first_init={first_init})")
    return context.gd_path, first_init, context


def discover(path: Union[str, Path]) -> Context:
    """Find the drive context enclosing ``path``.

    Walks up from ``path`` (or its parent when it is a file) to the first
    directory containing ``.gd``.

    Raises:
        GdContextError: If no enclosing context exists
    """
    current = Path(path).resolve()
    if current.exists() and not current.is_dir():
        current = current.parent

    for candidate in [current, *current.parents]:
        if (candidate / GD_DIR_NAME).is_dir():
            logger.debug(f"Discovered context at {candidate}")
            return Context(candidate)

    raise GdContextError(
        f"No drive context found at or above {current}; run 'gd init' first"
    )


class InitCleanup:
    """Interrupt handler installed while ``gd init`` runs.

    If the ``.gd`` directory was created by this run and the process is
    interrupted, the half-initialised directory is removed before exiting.
    """

    def __init__(self, gd_path: Path, first_init: bool):
        self.gd_path = gd_path
        self.first_init = first_init
        self._previous: dict[int, Any] = {}

    def handle(self, signum: int, frame: Any) -> None:
        logger.debug(f"Received signal {signum} during init")
        self.cleanup()
        sys.exit(1)

    def cleanup(self) -> None:
        if self.first_init and self.gd_path.exists():
            shutil.rmtree(self.gd_path, ignore_errors=True)
            logger.debug(f"Removed {self.gd_path}")

    def install(self) -> "InitCleanup":
        for signum in (signal.SIGINT, signal.SIGTERM):
            self._previous[signum] = signal.signal(signum, self.handle)
        return self

    def uninstall(self) -> None:
        for signum, previous in self._previous.items():
            signal.signal(signum, previous)
        self._previous.clear()

    def __enter__(self) -> "InitCleanup":
        return self.install()

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        self.uninstall()
