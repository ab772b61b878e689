"""Azure Resource Manager error handling.

``AzureResponseError`` is raised by the HTTP layer for any ARM response with
an error status. ``convert_response_error`` maps it (and anything else the
transport raises) onto the provisioner's status-coded exceptions.
"""

from typing import Optional

import grpc
from oslo_log import log as logging

from .. import exceptions

LOG = logging.getLogger(__name__)

QUOTA_EXCEEDED_MESSAGE = (
    "Operation results in exceeding quota limits of resource type AmlFilesystem"
)
RESOURCE_NOT_FOUND_CODE = "ResourceNotFound"


class AzureResponseError(Exception):
    """ARM returned an error status."""

    def __init__(
        self,
        status_code: int,
        error_code: str = "",
        message: str = "",
        method: str = "",
        url: str = "",
    ):
        self.status_code = status_code
        self.error_code = error_code
        self.error_message = message
        self.method = method
        self.url = url
        super().__init__(self._format())

    def _format(self) -> str:
        text = "HTTP %d" % self.status_code
        if self.method or self.url:
            text = "%s %s: %s" % (self.method, self.url, text)
        if self.error_code:
            text += " (%s)" % self.error_code
        if self.error_message:
            text += ": %s" % self.error_message
        return text

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404 or self.error_code == RESOURCE_NOT_FOUND_CODE


def _code_for_status(exc: AzureResponseError) -> grpc.StatusCode:
    status = exc.status_code
    if 400 <= status < 500:
        if status == 400:
            return grpc.StatusCode.INVALID_ARGUMENT
        if status == 409:
            if QUOTA_EXCEEDED_MESSAGE in str(exc) or QUOTA_EXCEEDED_MESSAGE in exc.error_code:
                return grpc.StatusCode.RESOURCE_EXHAUSTED
            return grpc.StatusCode.INVALID_ARGUMENT
        if status == 404:
            return grpc.StatusCode.NOT_FOUND
        if status == 403:
            return grpc.StatusCode.PERMISSION_DENIED
        if status == 401:
            return grpc.StatusCode.UNAUTHENTICATED
        if status == 429:
            return grpc.StatusCode.UNAVAILABLE
        return grpc.StatusCode.INVALID_ARGUMENT
    if status >= 500:
        if status == 500:
            return grpc.StatusCode.INTERNAL
        if status in (502, 503):
            return grpc.StatusCode.UNAVAILABLE
        if status == 504:
            return grpc.StatusCode.DEADLINE_EXCEEDED
        # Unknown rather than Internal so the caller retries
        return grpc.StatusCode.UNKNOWN
    return grpc.StatusCode.UNKNOWN


def convert_response_error(
    exc: Optional[BaseException],
) -> Optional[exceptions.LustreProvisionerException]:
    """Translate a transport failure into a status-coded exception.

    Args:
        exc: Exception raised by a remote call, or None

    Returns:
        None for None, the same object for errors that already carry a
        status code, otherwise a new LustreProvisionerException
    """
    if exc is None:
        return None

    if isinstance(exc, exceptions.LustreProvisionerException):
        LOG.debug("Error already carries status code %s: %s", exc.code, exc)
        return exc

    if not isinstance(exc, AzureResponseError):
        LOG.error("Error is not a response error: %s", exc)
        converted = exceptions.Unknown(details="error occurred calling API: %s" % exc)
    else:
        code = _code_for_status(exc)
        LOG.warning("Converted HTTP %d response error to %s: %s", exc.status_code, code, exc)
        converted = exceptions.from_code(code, "error occurred calling API: %s" % exc)

    converted.__cause__ = exc
    return converted
