"""Storage class parameter parsing and validation.

Turns the free-form ``CreateVolume`` parameter map into a
ProvisioningRequest. Keys are matched case-insensitively; values are
validated before anything is sent to the control plane.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from oslo_log import log as logging

from .azure.models import MaintenanceDayOfWeek, SquashMode
from .exceptions import InvalidArgument, InvalidParameter
from .volume_id import (
    VOLUME_CONTEXT_AML_FILESYSTEM_NAME,
    VOLUME_CONTEXT_FS_NAME,
    VOLUME_CONTEXT_MGS_IP_ADDRESS,
    VOLUME_CONTEXT_RESOURCE_GROUP_NAME,
    VOLUME_CONTEXT_SUB_DIR,
)

LOG = logging.getLogger(__name__)

VOLUME_CONTEXT_LOCATION = "location"
VOLUME_CONTEXT_VNET_RESOURCE_GROUP = "vnet-resource-group"
VOLUME_CONTEXT_VNET_NAME = "vnet-name"
VOLUME_CONTEXT_SUBNET_NAME = "subnet-name"
VOLUME_CONTEXT_MAINTENANCE_DAY_OF_WEEK = "maintenance-day-of-week"
VOLUME_CONTEXT_TIME_OF_DAY_UTC = "time-of-day-utc"
VOLUME_CONTEXT_SKU_NAME = "sku-name"
VOLUME_CONTEXT_ZONES = "zones"
VOLUME_CONTEXT_TAGS = "tags"
VOLUME_CONTEXT_IDENTITIES = "identities"
VOLUME_CONTEXT_ROOT_SQUASH_MODE = "root-squash-mode"
VOLUME_CONTEXT_ROOT_SQUASH_NID_LISTS = "root-squash-nid-lists"
VOLUME_CONTEXT_ROOT_SQUASH_UID = "root-squash-uid"
VOLUME_CONTEXT_ROOT_SQUASH_GID = "root-squash-gid"

# Keys injected by the external provisioner, mapped to the placeholder each
# one fills in the filesystem name
PVC_NAME_KEY = "csi.storage.k8s.io/pvc/name"
PVC_NAMESPACE_KEY = "csi.storage.k8s.io/pvc/namespace"
PV_NAME_KEY = "csi.storage.k8s.io/pv/name"
NAME_PLACEHOLDERS = {
    PVC_NAME_KEY: "${pvc.metadata.name}",
    PVC_NAMESPACE_KEY: "${pvc.metadata.namespace}",
    PV_NAME_KEY: "${pv.metadata.name}",
}

AML_FILESYSTEM_NAME_MAX_LENGTH = 80
AML_FILESYSTEM_NAME_PREFIX = "pvc-amlfs-"
MAX_SQUASH_ID = 4294967295

TIME_OF_DAY_REGEX = re.compile(r"([01]?[0-9]|2[0-3]):[0-5][0-9]")
AML_FILESYSTEM_NAME_REGEX = re.compile(r"[a-zA-Z0-9][a-zA-Z0-9_-]{0,78}[a-zA-Z0-9]")
ROOT_SQUASH_NID_REGEX = re.compile(r"[0-9.,;\[\]@tcp*-]+")
INVALID_NAME_CHARS_REGEX = re.compile(r"[^a-zA-Z0-9_-]+")
SQUASH_ID_REGEX = re.compile(r"[0-9]+")


@dataclass
class SubnetProperties:
    """Subnet the filesystem is placed in."""

    vnet_resource_group: str = ""
    vnet_name: str = ""
    subnet_name: str = ""
    subnet_id: str = ""

    def is_complete(self) -> bool:
        return all(
            (self.vnet_resource_group, self.vnet_name, self.subnet_name, self.subnet_id)
        )


@dataclass
class RootSquashSettings:
    squash_mode: SquashMode
    no_squash_nid_lists: str = ""
    squash_uid: int = 0
    squash_gid: int = 0


@dataclass
class ProvisioningRequest:
    """Validated description of the filesystem a CreateVolume asks for."""

    resource_group_name: str = ""
    aml_filesystem_name: str = ""
    location: str = ""
    tags: Dict[str, str] = field(default_factory=dict)
    identities: List[str] = field(default_factory=list)
    subnet_info: SubnetProperties = field(default_factory=SubnetProperties)
    maintenance_day_of_week: Optional[MaintenanceDayOfWeek] = None
    time_of_day_utc: str = ""
    sku_name: str = ""
    zones: List[str] = field(default_factory=list)
    root_squash_settings: Optional[RootSquashSettings] = None
    storage_capacity_tib: float = 0.0
    is_dynamic: bool = True


def convert_tags_to_map(tags: str) -> Dict[str, str]:
    """Parse ``key1=value1,key2=value2`` into a dict.

    Raises:
        InvalidArgument: An entry has no ``=`` or an empty key
    """
    result: Dict[str, str] = {}
    if not tags:
        return result

    for pair in tags.split(","):
        parts = pair.split("=")
        if len(parts) != 2 or not parts[0].strip():
            raise InvalidArgument(
                details=(
                    "CreateVolume Tags '%s' are invalid, the format should be: "
                    "'key1=value1,key2=value2'" % tags
                )
            )
        result[parts[0].strip()] = parts[1].strip()
    return result


def parse_squash_id(parameter: str, value: str) -> int:
    parsed = int(value) if SQUASH_ID_REGEX.fullmatch(value) else 0
    if parsed < 1 or parsed > MAX_SQUASH_ID:
        raise InvalidParameter(
            parameter=parameter,
            details="value must be number between 1 and %d, was: %s" % (MAX_SQUASH_ID, value),
        )
    return parsed


def _split_list(value: str) -> List[str]:
    return [item for item in value.split(",") if item]


def _require_dynamic(parameter: str, value) -> None:
    if not value:
        raise InvalidParameter(
            parameter=parameter, details="must be provided for dynamically provisioned AMLFS"
        )


def parse_provisioning_request(params: Dict[str, str]) -> ProvisioningRequest:
    """Validate CreateVolume parameters.

    A parameter map carrying ``mgs-ip-address`` describes an existing
    (static) filesystem; without it a filesystem is provisioned dynamically
    and the maintenance window, SKU, zones and filesystem name are required.

    Args:
        params: Storage class parameters

    Returns:
        ProvisioningRequest

    Raises:
        InvalidArgument: Unknown keys, malformed values, or a required
            dynamic parameter is missing
    """
    request = ProvisioningRequest()
    subnet_info = request.subnet_info
    aml_filesystem_name = ""
    squash_mode: Optional[SquashMode] = None
    no_squash_nid_lists = ""
    squash_uid = 0
    squash_gid = 0
    replacements: Dict[str, str] = {}
    invalid_parameters: List[str] = []

    LOG.debug("Parsing CreateVolume parameters: %s", params)

    for name, value in params.items():
        key = name.lower()
        if key == VOLUME_CONTEXT_RESOURCE_GROUP_NAME:
            request.resource_group_name = value
        elif key == VOLUME_CONTEXT_MGS_IP_ADDRESS:
            request.is_dynamic = False
        elif key == VOLUME_CONTEXT_AML_FILESYSTEM_NAME:
            aml_filesystem_name = value
        elif key == VOLUME_CONTEXT_LOCATION:
            request.location = value
        elif key == VOLUME_CONTEXT_VNET_NAME:
            subnet_info.vnet_name = value
        elif key == VOLUME_CONTEXT_VNET_RESOURCE_GROUP:
            subnet_info.vnet_resource_group = value
        elif key == VOLUME_CONTEXT_SUBNET_NAME:
            subnet_info.subnet_name = value
        elif key == VOLUME_CONTEXT_MAINTENANCE_DAY_OF_WEEK:
            try:
                request.maintenance_day_of_week = MaintenanceDayOfWeek(value)
            except ValueError:
                raise InvalidParameter(
                    parameter=VOLUME_CONTEXT_MAINTENANCE_DAY_OF_WEEK,
                    details="must be one of: %s" % [day.value for day in MaintenanceDayOfWeek],
                )
        elif key == VOLUME_CONTEXT_TIME_OF_DAY_UTC:
            if not TIME_OF_DAY_REGEX.fullmatch(value):
                raise InvalidParameter(
                    parameter=VOLUME_CONTEXT_TIME_OF_DAY_UTC,
                    details="must be in the form HH:MM, was: '%s'" % value,
                )
            request.time_of_day_utc = value
        elif key == VOLUME_CONTEXT_SKU_NAME:
            request.sku_name = value
        elif key == VOLUME_CONTEXT_ZONES:
            request.zones = _split_list(value)
        elif key == VOLUME_CONTEXT_TAGS:
            request.tags = convert_tags_to_map(value)
        elif key == VOLUME_CONTEXT_IDENTITIES:
            request.identities = _split_list(value)
        elif key == VOLUME_CONTEXT_ROOT_SQUASH_MODE:
            try:
                squash_mode = SquashMode(value)
            except ValueError:
                raise InvalidParameter(
                    parameter=VOLUME_CONTEXT_ROOT_SQUASH_MODE,
                    details="must be one of: %s" % [mode.value for mode in SquashMode],
                )
        elif key == VOLUME_CONTEXT_ROOT_SQUASH_NID_LISTS:
            if not ROOT_SQUASH_NID_REGEX.fullmatch(value):
                raise InvalidParameter(
                    parameter=VOLUME_CONTEXT_ROOT_SQUASH_NID_LISTS,
                    details=(
                        "must be in the form '10.0.2.4@tcp;10.0.2.[6-8]@tcp;10.0.2.10@tcp', "
                        "was: %s" % value
                    ),
                )
            no_squash_nid_lists = value
        elif key == VOLUME_CONTEXT_ROOT_SQUASH_UID:
            squash_uid = parse_squash_id(VOLUME_CONTEXT_ROOT_SQUASH_UID, value)
        elif key == VOLUME_CONTEXT_ROOT_SQUASH_GID:
            squash_gid = parse_squash_id(VOLUME_CONTEXT_ROOT_SQUASH_GID, value)
        elif key in NAME_PLACEHOLDERS:
            replacements[NAME_PLACEHOLDERS[key]] = value
        elif key in (VOLUME_CONTEXT_FS_NAME, VOLUME_CONTEXT_SUB_DIR):
            # Consumed when building the volume ID
            continue
        else:
            invalid_parameters.append("%s = %s" % (name, value))

    if invalid_parameters:
        raise InvalidArgument(
            details="Invalid parameter(s) {%s} in storage class" % ", ".join(invalid_parameters)
        )

    if not request.is_dynamic:
        if aml_filesystem_name:
            raise InvalidParameter(
                parameter=VOLUME_CONTEXT_AML_FILESYSTEM_NAME,
                details="must not be provided when using a static AMLFS ('%s' present)"
                % VOLUME_CONTEXT_MGS_IP_ADDRESS,
            )
        return request

    _require_dynamic(VOLUME_CONTEXT_AML_FILESYSTEM_NAME, aml_filesystem_name)
    _require_dynamic(VOLUME_CONTEXT_MAINTENANCE_DAY_OF_WEEK, request.maintenance_day_of_week)
    _require_dynamic(VOLUME_CONTEXT_SKU_NAME, request.sku_name)
    _require_dynamic(VOLUME_CONTEXT_TIME_OF_DAY_UTC, request.time_of_day_utc)
    _require_dynamic(VOLUME_CONTEXT_ZONES, request.zones)

    if squash_mode is not None:
        if squash_mode != SquashMode.NONE and not (
            no_squash_nid_lists and squash_uid and squash_gid
        ):
            raise InvalidArgument(
                details=(
                    "invalid root squash info, must have valid %s, %s, and %s when %s is "
                    "set to %s or %s"
                    % (
                        VOLUME_CONTEXT_ROOT_SQUASH_NID_LISTS,
                        VOLUME_CONTEXT_ROOT_SQUASH_UID,
                        VOLUME_CONTEXT_ROOT_SQUASH_GID,
                        VOLUME_CONTEXT_ROOT_SQUASH_MODE,
                        SquashMode.ROOT_ONLY.value,
                        SquashMode.ALL.value,
                    )
                )
            )
        request.root_squash_settings = RootSquashSettings(
            squash_mode=squash_mode,
            no_squash_nid_lists=no_squash_nid_lists,
            squash_uid=squash_uid,
            squash_gid=squash_gid,
        )

    for placeholder, replacement in replacements.items():
        aml_filesystem_name = aml_filesystem_name.replace(placeholder, replacement)
    request.aml_filesystem_name = aml_filesystem_name.strip()

    return request


def get_valid_aml_filesystem_name(aml_filesystem_name: str, volume_name: str) -> str:
    """Return a filesystem name the control plane will accept.

    A valid requested name is kept (truncated to the maximum length).
    Otherwise a name is derived from the volume name.
    """
    valid_name = aml_filesystem_name[:AML_FILESYSTEM_NAME_MAX_LENGTH]
    if AML_FILESYSTEM_NAME_REGEX.fullmatch(valid_name):
        return valid_name

    valid_name = INVALID_NAME_CHARS_REGEX.sub("", AML_FILESYSTEM_NAME_PREFIX + volume_name)
    valid_name = valid_name[:AML_FILESYSTEM_NAME_MAX_LENGTH].rstrip("-_")
    LOG.warning(
        "The requested AMLFS name %r is invalid, regenerated as %r",
        aml_filesystem_name,
        valid_name,
    )
    return valid_name
