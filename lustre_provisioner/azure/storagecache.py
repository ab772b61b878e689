"""Microsoft.StorageCache clients: AMLFS resources, subnet sizing and SKUs."""

from typing import Iterator, List, Optional

from oslo_log import log as logging

from ..context import RequestContext
from ..poller import LongRunningOperation
from .base import FilesystemStore, SkuCatalogProvider, SubnetSizingProvider
from .client import ArmClient
from .errors import AzureResponseError
from .models import (
    AmlFilesystem,
    RequiredAmlFilesystemSubnetsSize,
    RequiredAmlFilesystemSubnetsSizeInfo,
    ResourceSku,
    SkuName,
)

LOG = logging.getLogger(__name__)

STORAGE_CACHE_API_VERSION = "2024-03-01"

AML_FILESYSTEM_PATH = (
    "/subscriptions/%s/resourceGroups/%s/providers/Microsoft.StorageCache/amlFilesystems/%s"
)
REQUIRED_SUBNET_SIZE_PATH = (
    "/subscriptions/%s/providers/Microsoft.StorageCache/getRequiredAmlFSSubnetsSize"
)
SKUS_PATH = "/subscriptions/%s/providers/Microsoft.StorageCache/skus"


class AmlFilesystemsClient(FilesystemStore):
    """AMLFS resource operations over ARM."""

    def __init__(self, arm_client: ArmClient):
        self.arm_client = arm_client

    def _path(self, resource_group_name: str, aml_filesystem_name: str) -> str:
        return AML_FILESYSTEM_PATH % (
            self.arm_client.subscription_id,
            resource_group_name,
            aml_filesystem_name,
        )

    def _params(self):
        return {"api-version": STORAGE_CACHE_API_VERSION}

    def get(
        self, ctx: RequestContext, resource_group_name: str, aml_filesystem_name: str
    ) -> Optional[AmlFilesystem]:
        try:
            body = self.arm_client.request_json(
                ctx, "GET", self._path(resource_group_name, aml_filesystem_name), params=self._params()
            )
        except AzureResponseError as e:
            if e.is_not_found:
                LOG.debug(
                    "AMLFS %s not found in resource group %s",
                    aml_filesystem_name,
                    resource_group_name,
                )
                return None
            raise
        return AmlFilesystem.model_validate(body)

    def begin_create_or_update(
        self,
        ctx: RequestContext,
        resource_group_name: str,
        aml_filesystem_name: str,
        aml_filesystem: AmlFilesystem,
    ) -> LongRunningOperation:
        path = self._path(resource_group_name, aml_filesystem_name)

        def final_result(poll_ctx: RequestContext) -> AmlFilesystem:
            body = self.arm_client.request_json(poll_ctx, "GET", path, params=self._params())
            return AmlFilesystem.model_validate(body)

        return self.arm_client.begin(
            ctx,
            "PUT",
            path,
            self._params(),
            json_data=aml_filesystem.to_wire(),
            final_result=final_result,
            description="create of AMLFS %s" % aml_filesystem_name,
        )

    def begin_delete(
        self, ctx: RequestContext, resource_group_name: str, aml_filesystem_name: str
    ) -> LongRunningOperation:
        return self.arm_client.begin(
            ctx,
            "DELETE",
            self._path(resource_group_name, aml_filesystem_name),
            self._params(),
            description="delete of AMLFS %s" % aml_filesystem_name,
        )


class StorageCacheManagementClient(SubnetSizingProvider):
    """Subscription-level StorageCache operations."""

    def __init__(self, arm_client: ArmClient):
        self.arm_client = arm_client

    def required_address_count(
        self, ctx: RequestContext, sku_name: str, storage_capacity_tib: float
    ) -> int:
        info = RequiredAmlFilesystemSubnetsSizeInfo(
            sku=SkuName(name=sku_name), storage_capacity_tib=storage_capacity_tib
        )
        body = self.arm_client.request_json(
            ctx,
            "POST",
            REQUIRED_SUBNET_SIZE_PATH % self.arm_client.subscription_id,
            json_data=info.to_wire(),
            params={"api-version": STORAGE_CACHE_API_VERSION},
        )
        return RequiredAmlFilesystemSubnetsSize.model_validate(body).filesystem_subnet_size


class SkusClient(SkuCatalogProvider):
    """StorageCache SKU catalog."""

    def __init__(self, arm_client: ArmClient):
        self.arm_client = arm_client

    def list_sku_pages(self, ctx: RequestContext) -> Iterator[List[ResourceSku]]:
        for page in self.arm_client.list_pages(
            ctx,
            SKUS_PATH % self.arm_client.subscription_id,
            params={"api-version": STORAGE_CACHE_API_VERSION},
        ):
            yield [ResourceSku.model_validate(item) for item in page]
