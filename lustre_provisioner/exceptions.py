"""Lustre Provisioner Exceptions.

Every exception carries a ``grpc.StatusCode`` in ``code`` so the plugin
protocol layer can return it to the orchestrator without inspecting types.
"""

import grpc


class LustreProvisionerException(Exception):
    """Base exception for provisioning errors."""

    message = "An unknown exception occurred."
    code = grpc.StatusCode.UNKNOWN

    def __init__(self, message=None, **kwargs):
        """Initialize exception with optional custom message."""
        self.kwargs = kwargs
        if message:
            self.message = message
        super(LustreProvisionerException, self).__init__(self.message % kwargs)


class InvalidArgument(LustreProvisionerException):
    """Malformed, missing or conflicting input."""

    message = "%(details)s"
    code = grpc.StatusCode.INVALID_ARGUMENT


class InvalidParameter(InvalidArgument):
    """A CreateVolume parameter failed validation."""

    message = "CreateVolume Parameter %(parameter)s %(details)s"


class InvalidVolumeId(InvalidArgument):
    """Volume identifier could not be decoded."""

    message = "Invalid volume ID %(volume_id)r: %(details)s"


class UnknownSku(InvalidArgument):
    """Requested SKU is not in the capacity table."""

    message = "CreateVolume Parameter sku-name must be one of: %(valid_skus)s"


class Aborted(LustreProvisionerException):
    """Operation aborted because of a concurrent operation."""

    message = "%(details)s"
    code = grpc.StatusCode.ABORTED


class OperationAlreadyExists(Aborted):
    """Another operation holds the lock for this volume."""

    message = "An operation with the given Volume ID %(volume_id)s already exists"


class ResourceExhausted(LustreProvisionerException):
    """Capacity, subnet space or quota exhausted."""

    message = "%(details)s"
    code = grpc.StatusCode.RESOURCE_EXHAUSTED


class CapacityExceeded(ResourceExhausted):
    """Rounded capacity is above what the SKU allows."""

    message = "Requested capacity %(capacity)d exceeds maximum capacity %(maximum)d for SKU %(sku)s"


class InsufficientSubnetCapacity(ResourceExhausted):
    """Subnet does not have enough free addresses for the filesystem."""

    message = (
        "cannot create AMLFS cluster %(name)s in subnet %(subnet_id)s, "
        "not enough IP addresses available"
    )


class NotFound(LustreProvisionerException):
    """Remote object does not exist."""

    message = "%(details)s"
    code = grpc.StatusCode.NOT_FOUND


class PermissionDenied(LustreProvisionerException):
    """Remote authorization failure."""

    message = "%(details)s"
    code = grpc.StatusCode.PERMISSION_DENIED


class Unauthenticated(LustreProvisionerException):
    """Remote authentication failure."""

    message = "%(details)s"
    code = grpc.StatusCode.UNAUTHENTICATED


class FailedPrecondition(LustreProvisionerException):
    """System is not in a state required for the operation."""

    message = "%(details)s"
    code = grpc.StatusCode.FAILED_PRECONDITION


class SubnetNotFound(FailedPrecondition):
    """Subnet is absent from the virtual network usage listing."""

    message = "subnet %(subnet_id)s not found in vnet %(vnet_name)s, resource group %(resource_group)s"


class DeadlineExceeded(LustreProvisionerException):
    """Caller deadline expired or remote gateway timed out."""

    message = "%(details)s"
    code = grpc.StatusCode.DEADLINE_EXCEEDED


class Unavailable(LustreProvisionerException):
    """Remote service overloaded or transiently failing."""

    message = "%(details)s"
    code = grpc.StatusCode.UNAVAILABLE


class Internal(LustreProvisionerException):
    """Internal error."""

    message = "%(details)s"
    code = grpc.StatusCode.INTERNAL


class ClientNotConfigured(Internal):
    """A required remote client was not configured.

    Raised before any network call when the provisioner runs without
    credentials (for example in mock dynamic provisioning mode).
    """

    message = "%(client)s client is nil"


class Unknown(LustreProvisionerException):
    """Unclassified remote failure.

    Deliberately not Internal so that generic retry policies still apply.
    """

    message = "%(details)s"
    code = grpc.StatusCode.UNKNOWN


_EXCEPTIONS_BY_CODE = {
    grpc.StatusCode.INVALID_ARGUMENT: InvalidArgument,
    grpc.StatusCode.ABORTED: Aborted,
    grpc.StatusCode.RESOURCE_EXHAUSTED: ResourceExhausted,
    grpc.StatusCode.NOT_FOUND: NotFound,
    grpc.StatusCode.PERMISSION_DENIED: PermissionDenied,
    grpc.StatusCode.UNAUTHENTICATED: Unauthenticated,
    grpc.StatusCode.FAILED_PRECONDITION: FailedPrecondition,
    grpc.StatusCode.DEADLINE_EXCEEDED: DeadlineExceeded,
    grpc.StatusCode.UNAVAILABLE: Unavailable,
    grpc.StatusCode.INTERNAL: Internal,
    grpc.StatusCode.UNKNOWN: Unknown,
}


def from_code(code, details):
    """Build the generic exception for a status code.

    Args:
        code: grpc.StatusCode of the error
        details: Human readable message

    Returns:
        LustreProvisionerException subclass instance carrying ``code``
    """
    exc_class = _EXCEPTIONS_BY_CODE.get(code, Unknown)
    return exc_class(details=details)


def wrap_error(exc, prefix):
    """Add context to a taxonomy error without changing its code.

    Unknown errors are returned with their original message so that the
    remote failure text stays intact for retry diagnostics.
    """
    if exc.code == grpc.StatusCode.UNKNOWN:
        wrapped = Unknown(details=str(exc))
    else:
        wrapped = from_code(exc.code, f"{prefix}: {exc}")
    wrapped.__cause__ = exc
    return wrapped
