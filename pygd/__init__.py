"""pygd - keep a local directory tree in sync with a remote drive."""

__version__ = "0.1.0"

from .api import DriveClient
from .exceptions import (
    GdAPIError,
    GdAuthenticationError,
    GdConfigError,
    GdContextError,
    GdDownloadError,
    GdError,
    GdInvalidResponseError,
    GdNetworkError,
    GdNotFoundError,
    GdPermissionError,
    GdRateLimitError,
    GdUploadError,
)

__all__ = [
    "__version__",
    "DriveClient",
    "GdError",
    "GdAPIError",
    "GdAuthenticationError",
    "GdConfigError",
    "GdContextError",
    "GdDownloadError",
    "GdInvalidResponseError",
    "GdNetworkError",
    "GdNotFoundError",
    "GdPermissionError",
    "GdRateLimitError",
    "GdUploadError",
]
