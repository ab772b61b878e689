"""Volume identifier codec.

A volume ID carries everything needed to locate and later tear down a volume::

    <name>#<fs-name>#<mgs-ip-address>#<sub-dir>#<amlfilesystem-name>#<resource-group-name>

The first three segments are mandatory, the remaining three may be empty.
"""

from dataclasses import dataclass
from typing import Dict

from .exceptions import InvalidArgument, InvalidVolumeId

SEPARATOR = "#"
VOLUME_ID_TEMPLATE = SEPARATOR.join(["%s"] * 6)

# Volume context keys that feed the identifier
VOLUME_CONTEXT_MGS_IP_ADDRESS = "mgs-ip-address"
VOLUME_CONTEXT_FS_NAME = "fs-name"
VOLUME_CONTEXT_SUB_DIR = "sub-dir"
VOLUME_CONTEXT_AML_FILESYSTEM_NAME = "amlfilesystem-name"
VOLUME_CONTEXT_RESOURCE_GROUP_NAME = "resource-group-name"


@dataclass(frozen=True)
class LustreVolume:
    """Fields decoded from a volume ID."""

    name: str
    id: str
    azure_lustre_name: str
    mgs_ip_address: str
    sub_dir: str = ""
    aml_filesystem_name: str = ""
    resource_group_name: str = ""

    @property
    def is_dynamic(self) -> bool:
        """True when the filesystem was created by this provisioner."""
        return bool(self.aml_filesystem_name)


def encode_volume_id(
    name: str,
    fs_name: str,
    mgs_ip_address: str,
    sub_dir: str = "",
    aml_filesystem_name: str = "",
    resource_group_name: str = "",
) -> str:
    """Join volume fields into a volume ID.

    Slashes around the export name and sub-directory are trimmed.
    """
    return VOLUME_ID_TEMPLATE % (
        name,
        fs_name.strip("/"),
        mgs_ip_address,
        sub_dir.strip("/"),
        aml_filesystem_name,
        resource_group_name,
    )


def decode_volume_id(volume_id: str) -> LustreVolume:
    """Split a volume ID back into its fields.

    Args:
        volume_id: Identifier produced by encode_volume_id

    Returns:
        LustreVolume

    Raises:
        InvalidVolumeId: Fewer than three segments, or a dynamically created
            filesystem name without its resource group
    """
    segments = volume_id.split(SEPARATOR)
    if len(segments) < 3:
        raise InvalidVolumeId(
            volume_id=volume_id,
            details="could not split volume ID into lustre name and ip address",
        )

    # Missing optional segments default to empty
    segments += [""] * (6 - len(segments))

    volume = LustreVolume(
        name=segments[0],
        id=volume_id,
        azure_lustre_name=segments[1].strip("/"),
        mgs_ip_address=segments[2],
        sub_dir=segments[3].strip("/"),
        aml_filesystem_name=segments[4],
        resource_group_name=segments[5],
    )

    if volume.aml_filesystem_name and not volume.resource_group_name:
        raise InvalidVolumeId(
            volume_id=volume_id,
            details="dynamically created aml filesystem name is set but associated resource group is not",
        )

    return volume


def create_volume_id_from_params(name: str, params: Dict[str, str]) -> str:
    """Build a volume ID from a volume context map.

    Keys are matched case-insensitively.

    Raises:
        InvalidArgument: fs-name missing, or sub-dir present but empty
    """
    mgs_ip_address = ""
    azure_lustre_name = ""
    aml_filesystem_name = ""
    resource_group_name = ""
    sub_dir = ""

    for key, value in params.items():
        key = key.lower()
        if key == VOLUME_CONTEXT_MGS_IP_ADDRESS:
            mgs_ip_address = value
        elif key == VOLUME_CONTEXT_FS_NAME:
            azure_lustre_name = value
        elif key == VOLUME_CONTEXT_AML_FILESYSTEM_NAME:
            aml_filesystem_name = value
        elif key == VOLUME_CONTEXT_RESOURCE_GROUP_NAME:
            resource_group_name = value
        elif key == VOLUME_CONTEXT_SUB_DIR:
            sub_dir = value.strip("/")
            if not sub_dir:
                raise InvalidArgument(
                    details="CreateVolume Parameter sub-dir must not be empty if provided"
                )

    azure_lustre_name = azure_lustre_name.strip("/")
    if not azure_lustre_name:
        raise InvalidArgument(details="CreateVolume Parameter fs-name must be provided")

    return encode_volume_id(
        name,
        azure_lustre_name,
        mgs_ip_address,
        sub_dir,
        aml_filesystem_name,
        resource_group_name,
    )
