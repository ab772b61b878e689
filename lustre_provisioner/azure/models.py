"""Pydantic models for Azure Resource Manager requests and responses.

Field names follow Python conventions; aliases carry the ARM JSON names.
Response models ignore unknown fields so API additions do not break parsing.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ArmModel(BaseModel):
    """Base model for ARM payloads."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict:
        """Serialize using ARM field names, omitting unset values."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class MaintenanceDayOfWeek(str, Enum):
    """Maintenance window day values accepted by the AMLFS API."""

    MONDAY = "Monday"
    TUESDAY = "Tuesday"
    WEDNESDAY = "Wednesday"
    THURSDAY = "Thursday"
    FRIDAY = "Friday"
    SATURDAY = "Saturday"
    SUNDAY = "Sunday"


class SquashMode(str, Enum):
    """Root squash modes accepted by the AMLFS API."""

    NONE = "None"
    ROOT_ONLY = "RootOnly"
    ALL = "All"


USER_ASSIGNED_IDENTITY_TYPE = "UserAssigned"


class SkuName(ArmModel):
    name: str


class MaintenanceWindow(ArmModel):
    day_of_week: MaintenanceDayOfWeek = Field(..., alias="dayOfWeek")
    time_of_day_utc: str = Field(..., alias="timeOfDayUTC")


class RootSquashSettingsBody(ArmModel):
    mode: SquashMode
    no_squash_nid_lists: Optional[str] = Field(None, alias="noSquashNidLists")
    squash_uid: Optional[int] = Field(None, alias="squashUID")
    squash_gid: Optional[int] = Field(None, alias="squashGID")


class ClientInfo(ArmModel):
    mgs_address: Optional[str] = Field(None, alias="mgsAddress")


class AmlFilesystemProperties(ArmModel):
    filesystem_subnet: Optional[str] = Field(None, alias="filesystemSubnet")
    maintenance_window: Optional[MaintenanceWindow] = Field(None, alias="maintenanceWindow")
    storage_capacity_tib: Optional[float] = Field(None, alias="storageCapacityTiB")
    root_squash_settings: Optional[RootSquashSettingsBody] = Field(
        None, alias="rootSquashSettings"
    )
    provisioning_state: Optional[str] = Field(None, alias="provisioningState")
    client_info: Optional[ClientInfo] = Field(None, alias="clientInfo")


class UserAssignedIdentityValue(ArmModel):
    principal_id: Optional[str] = Field(None, alias="principalId")
    client_id: Optional[str] = Field(None, alias="clientId")


class AmlFilesystemIdentity(ArmModel):
    type: str = USER_ASSIGNED_IDENTITY_TYPE
    user_assigned_identities: Dict[str, UserAssignedIdentityValue] = Field(
        default_factory=dict, alias="userAssignedIdentities"
    )


class AmlFilesystem(ArmModel):
    """AMLFS resource, used both as the create body and the GET result."""

    id: Optional[str] = None
    name: Optional[str] = None
    location: Optional[str] = None
    tags: Optional[Dict[str, str]] = None
    zones: Optional[List[str]] = None
    sku: Optional[SkuName] = None
    identity: Optional[AmlFilesystemIdentity] = None
    properties: Optional[AmlFilesystemProperties] = None

    @property
    def mgs_address(self) -> Optional[str]:
        if self.properties and self.properties.client_info:
            return self.properties.client_info.mgs_address
        return None


class RequiredAmlFilesystemSubnetsSizeInfo(ArmModel):
    sku: SkuName
    storage_capacity_tib: float = Field(..., alias="storageCapacityTiB")


class RequiredAmlFilesystemSubnetsSize(ArmModel):
    filesystem_subnet_size: int = Field(..., alias="filesystemSubnetSize")


class ResourceSkuCapability(ArmModel):
    name: str
    value: str


class ResourceSku(ArmModel):
    resource_type: str = Field(..., alias="resourceType")
    name: Optional[str] = None
    locations: List[str] = Field(default_factory=list)
    capabilities: List[ResourceSkuCapability] = Field(default_factory=list)


class VirtualNetworkUsage(ArmModel):
    id: str
    current_value: float = Field(..., alias="currentValue")
    limit: float
