"""Configuration options for the Lustre provisioner."""

from oslo_config import cfg

# Configuration group name
CONF_GROUP = "azurelustre"

DEFAULT_CLOUD_CONFIG_PATH = "/etc/kubernetes/azure.json"


def _get_lustre_provisioner_opts():
    return [
        cfg.StrOpt(
            "azurelustre_cloud_config_path",
            default=DEFAULT_CLOUD_CONFIG_PATH,
            help="Path of the cloud config JSON file with subscription, resource group and network defaults",
        ),
        cfg.StrOpt(
            "azurelustre_arm_endpoint",
            default="https://management.azure.com",
            help="Azure Resource Manager endpoint URL",
        ),
        cfg.IntOpt(
            "azurelustre_api_timeout",
            default=30,
            min=1,
            max=300,
            help="API request timeout in seconds",
        ),
        cfg.IntOpt(
            "azurelustre_api_retry_count",
            default=3,
            min=0,
            max=10,
            help="Number of retries for failed GET requests. Mutations are never retried",
        ),
        cfg.BoolOpt(
            "azurelustre_verify_ssl",
            default=True,
            help="Verify SSL certificates for API requests",
        ),
        cfg.StrOpt(
            "azurelustre_api_ca_bundle",
            default=None,
            help="Path to CA bundle file for SSL verification (optional)",
        ),
        cfg.StrOpt(
            "azurelustre_api_token",
            default=None,
            secret=True,
            help="Bearer token for Azure Resource Manager requests",
        ),
        cfg.FloatOpt(
            "azurelustre_poll_frequency",
            default=60.0,
            min=0.001,
            help="Seconds between polls of a long-running create or delete operation",
        ),
        cfg.IntOpt(
            "azurelustre_sku_cache_ttl",
            default=300,
            min=0,
            help="Seconds to cache the SKU values of a location (0 disables caching)",
        ),
        cfg.BoolOpt(
            "azurelustre_enable_mock_dynamic_provisioning",
            default=False,
            help=(
                "Run without a cloud config. Static volumes keep working; "
                "dynamic provisioning fails with an internal error"
            ),
        ),
    ]


def register_opts(conf, group=None):
    """Register Lustre provisioner configuration options.

    Args:
        conf: oslo_config.cfg.ConfigOpts instance
        group: Configuration group name (default: CONF_GROUP)
    """
    if group is None:
        group = CONF_GROUP
    conf.register_opts(_get_lustre_provisioner_opts(), group=group)


def list_opts():
    """Return a list of options for oslo-config-generator.

    Returns:
        List of (group_name, options) tuples
    """
    return [
        (CONF_GROUP, _get_lustre_provisioner_opts()),
    ]


def get_lustre_provisioner_opts():
    """Get Lustre provisioner configuration options (public API)."""
    return _get_lustre_provisioner_opts()
