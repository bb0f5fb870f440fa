"""Exception hierarchy for pygd."""


class GdError(Exception):
    """Base exception for all pygd errors."""


class GdConfigError(GdError):
    """Configuration is missing or invalid (e.g. no access token)."""


class GdContextError(GdError):
    """No drive context (.gd directory) could be found or created."""


class GdAPIError(GdError):
    """The remote drive API returned an error."""


class GdAuthenticationError(GdAPIError):
    """Access token is invalid or expired."""


class GdPermissionError(GdAPIError):
    """The authenticated user may not access the resource."""


class GdNotFoundError(GdAPIError):
    """The requested remote resource does not exist."""


class GdRateLimitError(GdAPIError):
    """The API rate limit was exceeded."""


class GdNetworkError(GdAPIError):
    """The request did not reach the API."""


class GdInvalidResponseError(GdAPIError):
    """The API answered with something that is not the expected JSON."""


class GdDownloadError(GdAPIError):
    """Downloading or exporting remote content failed."""


class GdUploadError(GdAPIError):
    """Uploading local content failed."""
