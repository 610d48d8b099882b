"""
Translate Google API failures into the taskcal error taxonomy.
"""

import logging

import httplib2
from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError

from taskcal.errors import NotFoundError, RemoteError

logger = logging.getLogger(__name__)

API_DISABLED_HINT = (
    "The Google API is not enabled for this project. "
    "Enable it in the Google Cloud Console and refresh."
)
PERMISSION_HINT = "Access requires additional permissions. Re-authorize and refresh."

# Failures raised before an HTTP status exists: token refresh, DNS, sockets
TRANSPORT_ERRORS = (GoogleAuthError, httplib2.HttpLib2Error, OSError)


def _error_text(error: HttpError) -> str:
    content = error.content
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")
    return f"{error} {content or ''}"


def translate_http_error(error: HttpError, action: str) -> RemoteError:
    """
    Map an HttpError to NotFoundError or a RemoteError with a reason.

    Args:
        error: The Google client error
        action: What was being attempted, used in the message

    Returns:
        The exception to raise (not raised here)
    """
    status = getattr(error.resp, "status", None)
    text = _error_text(error)

    if status in (404, 410):
        return NotFoundError(f"{action}: not found")

    if "API has not been used" in text or "is disabled" in text:
        return RemoteError(f"{action}: API disabled", reason="api_disabled", hint=API_DISABLED_HINT)

    if status == 403 or "Insufficient Permission" in text:
        return RemoteError(f"{action}: permission denied", reason="permission", hint=PERMISSION_HINT)

    logger.error(f"{action} failed with status {status}: {text[:200]}")
    return RemoteError(f"{action} failed: {error}", reason="unavailable")


def translate_transport_error(error: Exception, action: str) -> RemoteError:
    """
    Map a failure below the HTTP status level to a RemoteError.

    Credential refresh failures (google.auth) become `permission`; network
    failures (httplib2, sockets) become `unavailable`.
    """
    if isinstance(error, GoogleAuthError):
        logger.error(f"{action} failed to authorize: {error}")
        return RemoteError(f"{action}: authorization failed", reason="permission", hint=PERMISSION_HINT)

    logger.error(f"{action} failed: {error}")
    return RemoteError(f"{action} failed: {error}", reason="unavailable")
