"""
Pytest configuration and fixtures.
"""

from unittest.mock import Mock

import pytest

from lustre_provisioner.azure.fake import (
    FakeFilesystemStore,
    FakeSkuCatalog,
    FakeSubnetSizing,
    FakeSubnetUsage,
    make_resource_sku,
)
from lustre_provisioner.cloud_config import CloudConfig
from lustre_provisioner.context import RequestContext
from lustre_provisioner.controller import LustreControllerService
from lustre_provisioner.locks import VolumeLocks
from lustre_provisioner.parameters import SubnetProperties
from lustre_provisioner.provisioner import DynamicProvisioner
from lustre_provisioner.sku import SkuCapacityTable

SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000001"
RESOURCE_GROUP = "test-rg"
LOCATION = "fakelocation"
VNET_RESOURCE_GROUP = "test-vnet-rg"
VNET_NAME = "test-vnet"
SUBNET_NAME = "test-subnet"
SUBNET_ID = (
    "/subscriptions/%s/resourceGroups/%s/providers/Microsoft.Network/virtualNetworks/%s/subnets/%s"
    % (SUBSCRIPTION_ID, VNET_RESOURCE_GROUP, VNET_NAME, SUBNET_NAME)
)
MGS_ADDRESS = "127.0.0.3"
FAKE_SKU = "fake-sku"
REQUIRED_SUBNET_SIZE = 24
SUBNET_USED = 10
SUBNET_LIMIT = 256


@pytest.fixture
def mock_controller_config():
    """Create a mock oslo.config-like configuration object for the controller."""
    config = Mock()
    config.azurelustre_cloud_config_path = "/nonexistent/azure.json"
    config.azurelustre_arm_endpoint = "https://management.example.test"
    config.azurelustre_api_timeout = 30
    config.azurelustre_api_retry_count = 3
    config.azurelustre_verify_ssl = False
    config.azurelustre_api_ca_bundle = None
    config.azurelustre_api_token = "test-token"
    config.azurelustre_poll_frequency = 0.001
    config.azurelustre_sku_cache_ttl = 300
    config.azurelustre_enable_mock_dynamic_provisioning = False
    return config


@pytest.fixture
def cloud_config():
    return CloudConfig(
        subscription_id=SUBSCRIPTION_ID,
        resource_group=RESOURCE_GROUP,
        location=LOCATION,
        vnet_name=VNET_NAME,
        vnet_resource_group=VNET_RESOURCE_GROUP,
        subnet_name=SUBNET_NAME,
    )


@pytest.fixture
def request_ctx():
    return RequestContext()


@pytest.fixture
def subnet_info():
    return SubnetProperties(
        vnet_resource_group=VNET_RESOURCE_GROUP,
        vnet_name=VNET_NAME,
        subnet_name=SUBNET_NAME,
        subnet_id=SUBNET_ID,
    )


@pytest.fixture
def fake_filesystems():
    return FakeFilesystemStore(mgs_address=MGS_ADDRESS)


@pytest.fixture
def fake_sizing():
    return FakeSubnetSizing(required=REQUIRED_SUBNET_SIZE, valid_skus={FAKE_SKU})


@pytest.fixture
def fake_usages():
    usages = FakeSubnetUsage()
    usages.add_subnet(VNET_RESOURCE_GROUP, VNET_NAME, "/other/subnet", current_value=0, limit=16)
    usages.add_subnet(
        VNET_RESOURCE_GROUP,
        VNET_NAME,
        SUBNET_ID,
        current_value=SUBNET_USED,
        limit=SUBNET_LIMIT,
        new_page=True,
    )
    return usages


@pytest.fixture
def fake_skus():
    return FakeSkuCatalog(pages=[[make_resource_sku(FAKE_SKU, [LOCATION])]])


@pytest.fixture
def provisioner(fake_filesystems, fake_sizing, fake_usages, fake_skus):
    return DynamicProvisioner(
        filesystems=fake_filesystems,
        sizing=fake_sizing,
        usages=fake_usages,
        poll_frequency=0.001,
        sku_table=SkuCapacityTable(catalog=fake_skus),
    )


@pytest.fixture
def controller(mock_controller_config, provisioner, cloud_config):
    service = LustreControllerService(
        mock_controller_config,
        provisioner=provisioner,
        volume_locks=VolumeLocks(),
        cloud_config=cloud_config,
    )
    service.do_setup()
    return service


@pytest.fixture
def dynamic_parameters():
    """Storage class parameters for a dynamically provisioned volume."""
    return {
        "amlfilesystem-name": "amlfs-${pvc.metadata.name}",
        "csi.storage.k8s.io/pvc/name": "myclaim",
        "maintenance-day-of-week": "Monday",
        "time-of-day-utc": "12:00",
        "sku-name": FAKE_SKU,
        "zones": "1",
    }
