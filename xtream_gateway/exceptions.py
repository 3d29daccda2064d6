"""
Error taxonomy for the Xtream compatibility layer.

The action API (player_api.php) reports failures inside a ``user_info``
envelope; the path-style endpoints (/live, /movie, /xmltv.php, ...) use real
HTTP status codes with a plain-text body.
"""


class XtreamError(Exception):
    """Base class for errors raised by the gateway."""

    status_code = 500
    message = "Server error"

    def __init__(self, message: str = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class AuthenticationFailure(XtreamError):
    """Missing/invalid credentials, inactive account or no entitlement."""

    status_code = 401
    message = "Invalid credentials"


class StreamNotFound(XtreamError):
    """Requested stream id does not map to any catalog entry."""

    status_code = 404
    message = "Stream not found"


class PlaybackNotImplemented(XtreamError):
    """Playback type the catalog does not model yet (VOD, series, timeshift)."""

    status_code = 501
    message = "Not implemented"


class BackendFailure(XtreamError):
    """The catalog/account store is unreachable or a query failed."""

    status_code = 500
    message = "Server error"
