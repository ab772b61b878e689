"""In-memory collaborators.

Used by the test suite and by the CLI's ``--fake`` mode to exercise the
provisioning workflow without a control plane. Failures are injected per
filesystem name or SKU through the ``*_errors`` dictionaries.
"""

import threading
from typing import Dict, Iterator, List, Optional, Tuple

from ..context import RequestContext
from ..poller import LongRunningOperation, PollOutcome
from .base import (
    FilesystemStore,
    SkuCatalogProvider,
    SubnetSizingProvider,
    SubnetUsageProvider,
)
from .errors import AzureResponseError
from .models import (
    AmlFilesystem,
    AmlFilesystemProperties,
    ClientInfo,
    ResourceSku,
    ResourceSkuCapability,
    VirtualNetworkUsage,
)

DEFAULT_FAKE_MGS_ADDRESS = "127.0.0.3"
DEFAULT_FAKE_REQUIRED_SUBNET_SIZE = 24
DEFAULT_FAKE_SKU = "fake-sku"


class FakeFilesystemStore(FilesystemStore):
    """AMLFS resources kept in a dict keyed by (resource group, name)."""

    def __init__(self, mgs_address: str = DEFAULT_FAKE_MGS_ADDRESS, polls_until_done: int = 1):
        self.mgs_address = mgs_address
        self.polls_until_done = polls_until_done
        self.filesystems: Dict[Tuple[str, str], AmlFilesystem] = {}
        self.get_errors: Dict[str, Exception] = {}
        self.create_errors: Dict[str, Exception] = {}
        self.create_poll_errors: Dict[str, Exception] = {}
        self.delete_errors: Dict[str, Exception] = {}
        self.delete_poll_errors: Dict[str, Exception] = {}
        self.create_requests: List[Tuple[str, str, AmlFilesystem]] = []
        self.delete_requests: List[Tuple[str, str]] = []
        self._lock = threading.Lock()

    def get(
        self, ctx: RequestContext, resource_group_name: str, aml_filesystem_name: str
    ) -> Optional[AmlFilesystem]:
        ctx.check()
        if aml_filesystem_name in self.get_errors:
            raise self.get_errors[aml_filesystem_name]
        with self._lock:
            return self.filesystems.get((resource_group_name, aml_filesystem_name))

    def _poll_after(self, description, error, on_done):
        remaining = {"polls": self.polls_until_done}

        def poll_once(ctx: RequestContext) -> PollOutcome:
            ctx.check()
            remaining["polls"] -= 1
            if remaining["polls"] > 0:
                return PollOutcome(False)
            if error is not None:
                raise error
            return PollOutcome(True, on_done())

        return LongRunningOperation(poll_once, description)

    def begin_create_or_update(
        self,
        ctx: RequestContext,
        resource_group_name: str,
        aml_filesystem_name: str,
        aml_filesystem: AmlFilesystem,
    ) -> LongRunningOperation:
        ctx.check()
        if aml_filesystem_name in self.create_errors:
            raise self.create_errors[aml_filesystem_name]
        self.create_requests.append((resource_group_name, aml_filesystem_name, aml_filesystem))

        def on_done() -> AmlFilesystem:
            properties = (aml_filesystem.properties or AmlFilesystemProperties()).model_copy(
                update={
                    "client_info": ClientInfo(mgs_address=self.mgs_address),
                    "provisioning_state": "Succeeded",
                }
            )
            created = aml_filesystem.model_copy(
                update={"name": aml_filesystem_name, "properties": properties}
            )
            with self._lock:
                self.filesystems[(resource_group_name, aml_filesystem_name)] = created
            return created

        return self._poll_after(
            "create of AMLFS %s" % aml_filesystem_name,
            self.create_poll_errors.get(aml_filesystem_name),
            on_done,
        )

    def begin_delete(
        self, ctx: RequestContext, resource_group_name: str, aml_filesystem_name: str
    ) -> LongRunningOperation:
        ctx.check()
        if aml_filesystem_name in self.delete_errors:
            raise self.delete_errors[aml_filesystem_name]
        self.delete_requests.append((resource_group_name, aml_filesystem_name))

        def on_done() -> None:
            with self._lock:
                self.filesystems.pop((resource_group_name, aml_filesystem_name), None)

        return self._poll_after(
            "delete of AMLFS %s" % aml_filesystem_name,
            self.delete_poll_errors.get(aml_filesystem_name),
            on_done,
        )


class FakeSubnetSizing(SubnetSizingProvider):
    """Returns a fixed subnet size; unknown SKUs get an HTTP 400."""

    def __init__(self, required: int = DEFAULT_FAKE_REQUIRED_SUBNET_SIZE, valid_skus=None):
        self.required = required
        self.valid_skus = valid_skus
        self.requests: List[Tuple[str, float]] = []

    def required_address_count(
        self, ctx: RequestContext, sku_name: str, storage_capacity_tib: float
    ) -> int:
        ctx.check()
        self.requests.append((sku_name, storage_capacity_tib))
        if self.valid_skus is not None and sku_name not in self.valid_skus:
            raise AzureResponseError(
                400, error_code="InvalidParameter", message="Invalid SKU name %s" % sku_name
            )
        return self.required


class FakeSubnetUsage(SubnetUsageProvider):
    """Usage pages keyed by (vnet resource group, vnet name)."""

    def __init__(self):
        self.pages: Dict[Tuple[str, str], List[List[VirtualNetworkUsage]]] = {}
        self.error: Optional[Exception] = None

    def add_subnet(
        self,
        vnet_resource_group: str,
        vnet_name: str,
        subnet_id: str,
        current_value: float,
        limit: float,
        new_page: bool = False,
    ) -> None:
        pages = self.pages.setdefault((vnet_resource_group, vnet_name), [])
        if new_page or not pages:
            pages.append([])
        pages[-1].append(
            VirtualNetworkUsage(id=subnet_id, current_value=current_value, limit=limit)
        )

    def list_usage_pages(
        self, ctx: RequestContext, vnet_resource_group: str, vnet_name: str
    ) -> Iterator[List[VirtualNetworkUsage]]:
        ctx.check()
        if self.error is not None:
            raise self.error
        for page in self.pages.get((vnet_resource_group, vnet_name), []):
            yield list(page)


class FakeSkuCatalog(SkuCatalogProvider):
    """Fixed list of SKU pages."""

    def __init__(self, pages: Optional[List[List[ResourceSku]]] = None):
        self.pages = pages if pages is not None else []
        self.error: Optional[Exception] = None
        self.list_calls = 0

    def list_sku_pages(self, ctx: RequestContext) -> Iterator[List[ResourceSku]]:
        self.list_calls += 1
        if self.error is not None:
            raise self.error
        for page in self.pages:
            yield list(page)


def make_resource_sku(
    name: str,
    locations: List[str],
    increment: str = "4",
    maximum: str = "128",
    resource_type: str = "amlFilesystems",
) -> ResourceSku:
    """Build a catalog entry with the two capacity capabilities."""
    return ResourceSku(
        resource_type=resource_type,
        name=name,
        locations=locations,
        capabilities=[
            ResourceSkuCapability(name="OSS capacity increment (TiB)", value=increment),
            ResourceSkuCapability(name="default maximum capacity (TiB)", value=maximum),
        ],
    )
