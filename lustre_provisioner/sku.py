"""AMLFS SKU capacity table.

Each SKU has a capacity increment and a maximum, both in TiB. Requested
capacities are rounded up to a whole number of increments and checked
against the maximum.
"""

import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from oslo_log import log as logging

from .context import RequestContext
from .exceptions import CapacityExceeded, UnknownSku

LOG = logging.getLogger(__name__)

TIB = 1024 ** 4
INT64_MAX = 2 ** 63 - 1

DEFAULT_SIZE_BYTES = 4 * TIB
DEFAULT_INCREMENT_BYTES = 4 * TIB

AMLFS_SKU_RESOURCE_TYPE = "amlFilesystems"
AMLFS_SKU_CAPACITY_INCREMENT_NAME = "OSS capacity increment (TiB)"
AMLFS_SKU_CAPACITY_MAXIMUM_NAME = "default maximum capacity (TiB)"


@dataclass(frozen=True)
class SkuValue:
    """Capacity increment and maximum of one SKU, in TiB."""

    increment_tib: int
    maximum_tib: int


DEFAULT_SKU_VALUES: Dict[str, SkuValue] = {
    "AMLFS-Durable-Premium-40": SkuValue(increment_tib=48, maximum_tib=768),
    "AMLFS-Durable-Premium-125": SkuValue(increment_tib=16, maximum_tib=128),
    "AMLFS-Durable-Premium-250": SkuValue(increment_tib=8, maximum_tib=128),
    "AMLFS-Durable-Premium-500": SkuValue(increment_tib=4, maximum_tib=128),
}


def round_up_to_increment(
    capacity_bytes: int, sku_name: str, sku_values: Dict[str, SkuValue]
) -> int:
    """Round a requested capacity up to the SKU's increment.

    Args:
        capacity_bytes: Requested capacity; 0 selects the default size
        sku_name: SKU name, or "" to use the default increment with no maximum
        sku_values: SKU table to look the name up in

    Returns:
        Rounded capacity in bytes

    Raises:
        UnknownSku: sku_name is non-empty and not in sku_values
        CapacityExceeded: Rounded capacity is above the SKU maximum or does
            not fit in a signed 64-bit integer
    """
    if capacity_bytes == 0:
        capacity_bytes = DEFAULT_SIZE_BYTES

    increment_bytes = DEFAULT_INCREMENT_BYTES
    maximum_bytes = 0
    sku_value = sku_values.get(sku_name)
    if sku_value is None:
        if sku_name:
            raise UnknownSku(valid_skus=", ".join(sorted(sku_values)))
    else:
        increment_bytes = sku_value.increment_tib * TIB
        maximum_bytes = sku_value.maximum_tib * TIB

    rounded = -(-capacity_bytes // increment_bytes) * increment_bytes

    if rounded > INT64_MAX or (maximum_bytes > 0 and rounded > maximum_bytes):
        raise CapacityExceeded(
            capacity=rounded,
            maximum=maximum_bytes if maximum_bytes > 0 else INT64_MAX,
            sku=sku_name,
        )
    return rounded


class SkuCapacityTable:
    """SKU values per location, read through from the SKU catalog.

    Lookups never fail: without a catalog, or when the catalog errors or has
    nothing usable for the location, the built-in defaults are returned.
    Successful lookups are cached per location for ``cache_ttl`` seconds.
    """

    def __init__(
        self,
        catalog=None,
        defaults: Optional[Dict[str, SkuValue]] = None,
        cache_ttl: float = 300,
        clock=time.monotonic,
    ):
        self.catalog = catalog
        self.defaults = dict(defaults if defaults is not None else DEFAULT_SKU_VALUES)
        self.cache_ttl = cache_ttl
        self._clock = clock
        self._cache: Dict[str, Tuple[Dict[str, SkuValue], float]] = {}
        self._cache_lock = threading.Lock()

    def get_sku_values_for_location(
        self, ctx: RequestContext, location: str
    ) -> Dict[str, SkuValue]:
        """Return the SKU table to use for ``location``."""
        if self.catalog is None:
            LOG.warning("SKU catalog client is not configured, using defaults")
            return dict(self.defaults)

        cache_key = location.lower()
        with self._cache_lock:
            cached = self._cache.get(cache_key)
            if cached is not None:
                values, cache_time = cached
                if self._clock() - cache_time < self.cache_ttl:
                    LOG.debug("Using cached SKU values for location %s", location)
                    return dict(values)

        values = self._load_from_catalog(ctx, location)
        if values is None:
            return dict(self.defaults)

        with self._cache_lock:
            self._cache[cache_key] = (values, self._clock())
        return dict(values)

    def _load_from_catalog(
        self, ctx: RequestContext, location: str
    ) -> Optional[Dict[str, SkuValue]]:
        amlfs_skus = []
        try:
            for page in self.catalog.list_sku_pages(ctx):
                amlfs_skus.extend(
                    sku for sku in page if sku.resource_type == AMLFS_SKU_RESOURCE_TYPE
                )
        except Exception as e:
            LOG.warning(
                "Error getting SKUs for location %s, using defaults: %s", location, e
            )
            return None

        if not amlfs_skus:
            LOG.warning("No AMLFS SKUs found, using defaults")
            return None

        skus_for_location = [
            sku
            for sku in amlfs_skus
            if any(sku_location.lower() == location.lower() for sku_location in sku.locations)
        ]
        if not skus_for_location:
            LOG.warning("Found no AMLFS SKUs for location %s, using defaults", location)
            return None

        values: Dict[str, SkuValue] = {}
        for sku in skus_for_location:
            increment_tib = 0
            maximum_tib = 0
            for capability in sku.capabilities:
                if capability.name not in (
                    AMLFS_SKU_CAPACITY_INCREMENT_NAME,
                    AMLFS_SKU_CAPACITY_MAXIMUM_NAME,
                ):
                    continue
                try:
                    parsed = int(capability.value, 10)
                except ValueError:
                    LOG.warning(
                        "Failed to parse capability %s value %r of SKU %s",
                        capability.name,
                        capability.value,
                        sku.name,
                    )
                    continue
                if capability.name == AMLFS_SKU_CAPACITY_INCREMENT_NAME:
                    increment_tib = parsed
                else:
                    maximum_tib = parsed

            if increment_tib and maximum_tib and sku.name:
                values[sku.name] = SkuValue(
                    increment_tib=increment_tib, maximum_tib=maximum_tib
                )
                LOG.debug(
                    "Adding SKU value %s for location %s: %s",
                    sku.name,
                    location,
                    values[sku.name],
                )

        if not values:
            LOG.warning("Found no usable AMLFS SKUs for location %s, using defaults", location)
            return None

        LOG.info("Found SKU values for location %s: %s", location, values)
        return values
