"""Dynamic provisioning of AMLFS clusters.

Create is a create-or-update: an existing filesystem of the same name is
updated in place and skips subnet admission, which makes a retried create
idempotent. Both create and delete submit one long-running operation and
poll it to completion.
"""

from typing import Dict, List, Optional

from oslo_log import log as logging

from .admission import SubnetAdmissionController
from .azure.errors import convert_response_error
from .azure.models import (
    USER_ASSIGNED_IDENTITY_TYPE,
    AmlFilesystem,
    AmlFilesystemIdentity,
    AmlFilesystemProperties,
    MaintenanceWindow,
    RootSquashSettingsBody,
    SkuName,
    SquashMode,
    UserAssignedIdentityValue,
)
from .context import RequestContext
from .exceptions import (
    ClientNotConfigured,
    Internal,
    InsufficientSubnetCapacity,
    InvalidArgument,
)
from .parameters import ProvisioningRequest
from .sku import SkuCapacityTable, SkuValue

LOG = logging.getLogger(__name__)

DEFAULT_POLL_FREQUENCY = 60.0


def build_aml_filesystem(request: ProvisioningRequest) -> AmlFilesystem:
    """Build the create-or-update body for a provisioning request."""
    root_squash = None
    settings = request.root_squash_settings
    if settings is not None:
        if settings.squash_mode == SquashMode.NONE:
            root_squash = RootSquashSettingsBody(mode=settings.squash_mode)
        else:
            root_squash = RootSquashSettingsBody(
                mode=settings.squash_mode,
                no_squash_nid_lists=settings.no_squash_nid_lists,
                squash_uid=settings.squash_uid,
                squash_gid=settings.squash_gid,
            )

    identity = None
    if request.identities:
        identity = AmlFilesystemIdentity(
            type=USER_ASSIGNED_IDENTITY_TYPE,
            user_assigned_identities={
                identity_id: UserAssignedIdentityValue() for identity_id in request.identities
            },
        )

    return AmlFilesystem(
        location=request.location,
        tags=dict(request.tags),
        zones=list(request.zones),
        sku=SkuName(name=request.sku_name),
        identity=identity,
        properties=AmlFilesystemProperties(
            filesystem_subnet=request.subnet_info.subnet_id,
            maintenance_window=MaintenanceWindow(
                day_of_week=request.maintenance_day_of_week,
                time_of_day_utc=request.time_of_day_utc,
            ),
            storage_capacity_tib=request.storage_capacity_tib,
            root_squash_settings=root_squash,
        ),
    )


def configuration_drift(existing: AmlFilesystem, requested: AmlFilesystem) -> List[str]:
    """Describe differences between a filesystem and a new request for it.

    Only fields the request sets are compared.
    """
    differences = []

    def compare(label, current, wanted):
        if wanted is not None and current != wanted:
            differences.append("%s: %r -> %r" % (label, current, wanted))

    existing_props = existing.properties or AmlFilesystemProperties()
    requested_props = requested.properties or AmlFilesystemProperties()
    compare("location", (existing.location or "").lower(), (requested.location or "").lower())
    compare(
        "sku",
        existing.sku.name if existing.sku else None,
        requested.sku.name if requested.sku else None,
    )
    compare(
        "storageCapacityTiB",
        existing_props.storage_capacity_tib,
        requested_props.storage_capacity_tib,
    )
    compare(
        "filesystemSubnet",
        (existing_props.filesystem_subnet or "").lower(),
        (requested_props.filesystem_subnet or "").lower(),
    )
    compare("zones", sorted(existing.zones or []), sorted(requested.zones or []))
    return differences


class DynamicProvisioner:
    """Creates and deletes AMLFS clusters through the injected clients.

    Any client may be None (mock mode); operations that need a missing client
    raise ClientNotConfigured before any remote call.
    """

    def __init__(
        self,
        filesystems=None,
        sizing=None,
        usages=None,
        skus=None,
        poll_frequency: float = DEFAULT_POLL_FREQUENCY,
        sku_table: Optional[SkuCapacityTable] = None,
    ):
        self.filesystems = filesystems
        self.admission = SubnetAdmissionController(sizing=sizing, usages=usages)
        self.sku_table = sku_table or SkuCapacityTable(catalog=skus)
        self.poll_frequency = poll_frequency

    def _require_filesystems(self):
        if self.filesystems is None:
            raise ClientNotConfigured(client="aml filesystem")
        return self.filesystems

    def get_aml_filesystem(
        self, ctx: RequestContext, resource_group_name: str, aml_filesystem_name: str
    ) -> Optional[AmlFilesystem]:
        """Return the filesystem, or None when it does not exist."""
        filesystems = self._require_filesystems()
        try:
            return filesystems.get(ctx, resource_group_name, aml_filesystem_name)
        except Exception as e:
            LOG.warning("Error when retrieving AMLFS %s: %s", aml_filesystem_name, e)
            raise convert_response_error(e)

    def cluster_exists(
        self, ctx: RequestContext, resource_group_name: str, aml_filesystem_name: str
    ) -> bool:
        existing = self.get_aml_filesystem(ctx, resource_group_name, aml_filesystem_name)
        if existing is None:
            LOG.debug("AMLFS %s not found", aml_filesystem_name)
            return False
        return True

    def create_aml_filesystem(self, ctx: RequestContext, request: ProvisioningRequest) -> str:
        """Create or update the filesystem and wait for it.

        Args:
            ctx: Request context
            request: Completed provisioning request

        Returns:
            MGS IP address of the filesystem

        Raises:
            ClientNotConfigured: No filesystem client
            InvalidArgument: Incomplete subnet info
            InsufficientSubnetCapacity: New filesystem does not fit its subnet
            LustreProvisionerException: Translated remote failure
        """
        filesystems = self._require_filesystems()
        if not request.subnet_info.is_complete():
            raise InvalidArgument(
                details=(
                    "invalid subnet info, must have valid subnet ID, subnet name, "
                    "vnet name, and vnet resource group"
                )
            )

        name = request.aml_filesystem_name
        aml_filesystem = build_aml_filesystem(request)

        existing = self.get_aml_filesystem(ctx, request.resource_group_name, name)
        if existing is None:
            if not self.admission.check_subnet_capacity(
                ctx,
                request.subnet_info,
                request.sku_name,
                request.storage_capacity_tib,
            ):
                raise InsufficientSubnetCapacity(
                    name=name, subnet_id=request.subnet_info.subnet_id
                )
        else:
            LOG.info("AMLFS cluster %s already exists, will attempt update request", name)
            drift = configuration_drift(existing, aml_filesystem)
            if drift:
                LOG.warning(
                    "Existing AMLFS cluster %s differs from the request, the update "
                    "may be rejected or partially applied: %s",
                    name,
                    "; ".join(drift),
                )

        try:
            operation = filesystems.begin_create_or_update(
                ctx, request.resource_group_name, name, aml_filesystem
            )
        except Exception as e:
            LOG.warning("Failed to submit create of AMLFS %s: %s", name, e)
            raise convert_response_error(e)

        try:
            result = operation.poll_until_done(ctx, self.poll_frequency)
        except Exception as e:
            raise convert_response_error(e)

        mgs_address = result.mgs_address if result is not None else None
        if not mgs_address:
            raise Internal(details="AMLFS %s was provisioned without an MGS address" % name)

        LOG.info("AMLFS cluster %s is ready, MGS address %s", name, mgs_address)
        return mgs_address

    def delete_aml_filesystem(
        self, ctx: RequestContext, resource_group_name: str, aml_filesystem_name: str
    ) -> None:
        """Delete the filesystem and wait for the deletion to finish."""
        filesystems = self._require_filesystems()
        try:
            operation = filesystems.begin_delete(ctx, resource_group_name, aml_filesystem_name)
        except Exception as e:
            LOG.warning("Failed to submit delete of AMLFS %s: %s", aml_filesystem_name, e)
            raise convert_response_error(e)

        try:
            operation.poll_until_done(ctx, self.poll_frequency)
        except Exception as e:
            raise convert_response_error(e)

        LOG.info(
            "AMLFS cluster %s in resource group %s is deleted",
            aml_filesystem_name,
            resource_group_name,
        )

    def get_sku_values_for_location(
        self, ctx: RequestContext, location: str
    ) -> Dict[str, SkuValue]:
        return self.sku_table.get_sku_values_for_location(ctx, location)
