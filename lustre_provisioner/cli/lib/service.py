"""
Controller construction for CLI commands.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from oslo_config import cfg
from oslo_log import log as logging

from lustre_provisioner import configuration
from lustre_provisioner.azure.fake import (
    FakeFilesystemStore,
    FakeSkuCatalog,
    FakeSubnetSizing,
    FakeSubnetUsage,
)
from lustre_provisioner.cloud_config import CloudConfig, load_cloud_config
from lustre_provisioner.context import RequestContext
from lustre_provisioner.controller import LustreControllerService
from lustre_provisioner.parameters import SubnetProperties
from lustre_provisioner.provisioner import DynamicProvisioner
from lustre_provisioner.sku import SkuCapacityTable

PROJECT = "lustre-provisioner"

FAKE_CLOUD_CONFIG = CloudConfig(
    subscription_id="00000000-0000-0000-0000-000000000000",
    resource_group="fake-resource-group",
    location="fakelocation",
    vnet_name="fake-vnet",
    subnet_name="fake-subnet",
)
FAKE_SUBNET_LIMIT = 256
FAKE_SUBNET_USED = 10


@dataclass
class CliState:
    """Global options shared by all commands."""

    config_files: List[str] = field(default_factory=list)
    debug: bool = False
    fake: bool = False
    timeout: Optional[float] = None


def load_configuration(state: CliState) -> cfg.ConfigOpts:
    """Parse config files and set up logging."""
    conf = cfg.ConfigOpts()
    configuration.register_opts(conf)
    logging.register_options(conf)
    conf(args=[], project=PROJECT, default_config_files=state.config_files)
    if state.debug:
        conf.set_override("debug", True)
    logging.setup(conf, PROJECT)
    return conf


def build_fake_controller(group) -> LustreControllerService:
    """Controller backed by in-memory collaborators.

    The cloud config file is used when present; its default subnet is seeded
    with free addresses so dynamic creates succeed.
    """
    cloud = load_cloud_config(group.azurelustre_cloud_config_path) or FAKE_CLOUD_CONFIG
    usages = FakeSubnetUsage()
    provisioner = DynamicProvisioner(
        filesystems=FakeFilesystemStore(),
        sizing=FakeSubnetSizing(),
        usages=usages,
        poll_frequency=group.azurelustre_poll_frequency,
        sku_table=SkuCapacityTable(catalog=FakeSkuCatalog()),
    )
    controller = LustreControllerService(group, provisioner=provisioner, cloud_config=cloud)

    default_subnet = controller.populate_subnet_properties(SubnetProperties())
    usages.add_subnet(
        default_subnet.vnet_resource_group,
        default_subnet.vnet_name,
        default_subnet.subnet_id,
        current_value=FAKE_SUBNET_USED,
        limit=FAKE_SUBNET_LIMIT,
    )
    return controller


def build_controller(state: CliState) -> LustreControllerService:
    """Build and set up the controller for a CLI command."""
    conf = load_configuration(state)
    group = conf[configuration.CONF_GROUP]
    if state.fake:
        controller = build_fake_controller(group)
    else:
        controller = LustreControllerService(group)
    controller.do_setup()
    return controller


def request_context(state: CliState) -> RequestContext:
    return RequestContext(timeout=state.timeout)
