"""Collaborator interfaces consumed by the dynamic provisioner.

Two implementations exist: the live ARM clients in ``storagecache`` and
``network``, and the in-memory fakes in ``fake``. The provisioner receives
them at construction time; a missing collaborator is reported as
ClientNotConfigured instead of attempting a network call.
"""

from abc import ABC, abstractmethod
from typing import Iterator, List, Optional

from ..context import RequestContext
from ..poller import LongRunningOperation
from .models import AmlFilesystem, ResourceSku, VirtualNetworkUsage


class FilesystemStore(ABC):
    """AMLFS resource operations."""

    @abstractmethod
    def get(
        self, ctx: RequestContext, resource_group_name: str, aml_filesystem_name: str
    ) -> Optional[AmlFilesystem]:
        """Get an AMLFS resource.

        Returns:
            The resource, or None when it does not exist

        Raises:
            AzureResponseError: Any other API failure
        """
        pass

    @abstractmethod
    def begin_create_or_update(
        self,
        ctx: RequestContext,
        resource_group_name: str,
        aml_filesystem_name: str,
        aml_filesystem: AmlFilesystem,
    ) -> LongRunningOperation:
        """Submit a create-or-update request.

        Returns:
            Operation whose result is the provisioned AmlFilesystem
        """
        pass

    @abstractmethod
    def begin_delete(
        self, ctx: RequestContext, resource_group_name: str, aml_filesystem_name: str
    ) -> LongRunningOperation:
        """Submit a delete request."""
        pass


class SubnetSizingProvider(ABC):
    """Computes how many subnet addresses a filesystem needs."""

    @abstractmethod
    def required_address_count(
        self, ctx: RequestContext, sku_name: str, storage_capacity_tib: float
    ) -> int:
        pass


class SubnetUsageProvider(ABC):
    """Lists address usage of the subnets in a virtual network."""

    @abstractmethod
    def list_usage_pages(
        self, ctx: RequestContext, vnet_resource_group: str, vnet_name: str
    ) -> Iterator[List[VirtualNetworkUsage]]:
        """Yield usage entries one page at a time."""
        pass


class SkuCatalogProvider(ABC):
    """Lists AMLFS SKUs and their per-location capabilities."""

    @abstractmethod
    def list_sku_pages(self, ctx: RequestContext) -> Iterator[List[ResourceSku]]:
        """Yield SKUs one page at a time."""
        pass
