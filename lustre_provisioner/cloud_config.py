"""Cloud config file loader.

The cloud config is the JSON document the cluster provisions for cloud
integrations (``/etc/kubernetes/azure.json`` on AKS). Only the fields used to
default dynamic provisioning parameters are read.
"""

import json
from dataclasses import dataclass
from typing import Optional

from oslo_log import log as logging

from .exceptions import FailedPrecondition

LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class CloudConfig:
    subscription_id: str = ""
    resource_group: str = ""
    location: str = ""
    vnet_name: str = ""
    vnet_resource_group: str = ""
    subnet_name: str = ""
    network_resource_subscription_id: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> "CloudConfig":
        return cls(
            subscription_id=data.get("subscriptionId", ""),
            resource_group=data.get("resourceGroup", ""),
            location=data.get("location", ""),
            vnet_name=data.get("vnetName", ""),
            vnet_resource_group=data.get("vnetResourceGroup", ""),
            subnet_name=data.get("subnetName", ""),
            network_resource_subscription_id=data.get("networkResourceSubscriptionID", ""),
        )


def load_cloud_config(path: str) -> Optional[CloudConfig]:
    """Read the cloud config file.

    Returns:
        CloudConfig, or None when the file does not exist

    Raises:
        FailedPrecondition: The file exists but is not a JSON object
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
    except FileNotFoundError:
        LOG.info("Cloud config file %s not found", path)
        return None
    except (OSError, ValueError) as e:
        raise FailedPrecondition(details="failed to read cloud config %s: %s" % (path, e))

    if not isinstance(data, dict):
        raise FailedPrecondition(details="cloud config %s is not a JSON object" % path)

    return CloudConfig.from_dict(data)
