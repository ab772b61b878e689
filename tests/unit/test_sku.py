"""
Unit tests for SKU capacity rounding and the per-location SKU table.
"""

from unittest.mock import Mock

import grpc
import pytest

from lustre_provisioner.azure.errors import AzureResponseError
from lustre_provisioner.azure.fake import FakeSkuCatalog, make_resource_sku
from lustre_provisioner.exceptions import CapacityExceeded, InvalidArgument, UnknownSku
from lustre_provisioner.sku import (
    DEFAULT_SIZE_BYTES,
    DEFAULT_SKU_VALUES,
    INT64_MAX,
    TIB,
    SkuCapacityTable,
    SkuValue,
    round_up_to_increment,
)

LOCATION = "fakelocation"

SKU_VALUES = {
    "Standard": SkuValue(increment_tib=4, maximum_tib=40),
    "Premium": SkuValue(increment_tib=8, maximum_tib=80),
}


@pytest.mark.unit
class TestRoundUpToIncrement:
    def test_zero_uses_default_size(self):
        assert round_up_to_increment(0, "", SKU_VALUES) == DEFAULT_SIZE_BYTES

    def test_one_below_increment(self):
        assert round_up_to_increment(4 * TIB - 1, "Standard", SKU_VALUES) == 4 * TIB

    def test_exact_increment(self):
        assert round_up_to_increment(4 * TIB, "Standard", SKU_VALUES) == 4 * TIB

    def test_one_above_increment(self):
        assert round_up_to_increment(4 * TIB + 1, "Standard", SKU_VALUES) == 8 * TIB

    def test_premium_increment(self):
        assert round_up_to_increment(8 * TIB - 1, "Premium", SKU_VALUES) == 8 * TIB

    def test_at_maximum(self):
        assert round_up_to_increment(40 * TIB, "Standard", SKU_VALUES) == 40 * TIB

    def test_exceeds_maximum(self):
        with pytest.raises(CapacityExceeded) as exc_info:
            round_up_to_increment(44 * TIB, "Standard", SKU_VALUES)
        assert exc_info.value.code == grpc.StatusCode.RESOURCE_EXHAUSTED

    def test_int64_max_overflows(self):
        with pytest.raises(CapacityExceeded):
            round_up_to_increment(INT64_MAX, "Premium", SKU_VALUES)

    def test_int64_max_without_sku_overflows(self):
        with pytest.raises(CapacityExceeded):
            round_up_to_increment(INT64_MAX, "", SKU_VALUES)

    def test_empty_sku_has_no_maximum(self):
        assert round_up_to_increment(1000 * TIB + 1, "", SKU_VALUES) == 1004 * TIB

    def test_unknown_sku_lists_known_skus(self):
        with pytest.raises(UnknownSku) as exc_info:
            round_up_to_increment(4 * TIB, "InvalidSKU", SKU_VALUES)
        assert isinstance(exc_info.value, InvalidArgument)
        assert "Premium, Standard" in str(exc_info.value)

    def test_default_table(self):
        assert round_up_to_increment(1, "AMLFS-Durable-Premium-40", DEFAULT_SKU_VALUES) == 48 * TIB

    @pytest.mark.parametrize(
        "capacity, sku",
        [(0, ""), (1, "Standard"), (4 * TIB + 1, "Standard"), (17 * TIB, "Premium"), (5 * TIB, "")],
    )
    def test_rounding_is_idempotent(self, capacity, sku):
        rounded = round_up_to_increment(capacity, sku, SKU_VALUES)
        assert round_up_to_increment(rounded, sku, SKU_VALUES) == rounded


@pytest.mark.unit
class TestSkuCapacityTable:
    def test_values_for_location(self, request_ctx):
        table = SkuCapacityTable(catalog=FakeSkuCatalog([[make_resource_sku("fake-sku", [LOCATION])]]))
        values = table.get_sku_values_for_location(request_ctx, LOCATION)
        assert values == {"fake-sku": SkuValue(increment_tib=4, maximum_tib=128)}

    def test_location_match_is_case_insensitive(self, request_ctx):
        table = SkuCapacityTable(catalog=FakeSkuCatalog([[make_resource_sku("fake-sku", ["EastUS"])]]))
        assert "fake-sku" in table.get_sku_values_for_location(request_ctx, "eastus")

    def test_no_catalog_returns_defaults(self, request_ctx):
        table = SkuCapacityTable(catalog=None)
        values = table.get_sku_values_for_location(request_ctx, LOCATION)
        assert values == DEFAULT_SKU_VALUES
        assert len(values) == 4

    def test_catalog_error_returns_defaults(self, request_ctx):
        catalog = FakeSkuCatalog()
        catalog.error = AzureResponseError(500, message="boom")
        table = SkuCapacityTable(catalog=catalog)
        assert table.get_sku_values_for_location(request_ctx, LOCATION) == DEFAULT_SKU_VALUES

    def test_no_amlfs_skus_returns_defaults(self, request_ctx):
        sku = make_resource_sku("cache-sku", [LOCATION], resource_type="caches")
        table = SkuCapacityTable(catalog=FakeSkuCatalog([[sku]]))
        assert table.get_sku_values_for_location(request_ctx, LOCATION) == DEFAULT_SKU_VALUES

    def test_no_skus_for_location_returns_defaults(self, request_ctx):
        sku = make_resource_sku("fake-sku", ["otherlocation"])
        table = SkuCapacityTable(catalog=FakeSkuCatalog([[sku]]))
        assert table.get_sku_values_for_location(request_ctx, LOCATION) == DEFAULT_SKU_VALUES

    def test_invalid_increment_is_skipped(self, request_ctx):
        sku = make_resource_sku("fake-sku", [LOCATION], increment="invalid")
        table = SkuCapacityTable(catalog=FakeSkuCatalog([[sku]]))
        values = table.get_sku_values_for_location(request_ctx, LOCATION)
        assert values == DEFAULT_SKU_VALUES
        assert "fake-sku" not in values

    def test_invalid_maximum_is_skipped(self, request_ctx):
        bad = make_resource_sku("bad-sku", [LOCATION], maximum="invalid")
        good = make_resource_sku("good-sku", [LOCATION], increment="8", maximum="64")
        table = SkuCapacityTable(catalog=FakeSkuCatalog([[bad], [good]]))
        values = table.get_sku_values_for_location(request_ctx, LOCATION)
        assert values == {"good-sku": SkuValue(increment_tib=8, maximum_tib=64)}

    def test_results_are_cached(self, request_ctx):
        catalog = FakeSkuCatalog([[make_resource_sku("fake-sku", [LOCATION])]])
        table = SkuCapacityTable(catalog=catalog, cache_ttl=300)
        table.get_sku_values_for_location(request_ctx, LOCATION)
        table.get_sku_values_for_location(request_ctx, LOCATION.upper())
        assert catalog.list_calls == 1

    def test_cache_expires(self, request_ctx):
        clock = Mock(side_effect=[0.0, 301.0, 301.0])
        catalog = FakeSkuCatalog([[make_resource_sku("fake-sku", [LOCATION])]])
        table = SkuCapacityTable(catalog=catalog, cache_ttl=300, clock=clock)
        table.get_sku_values_for_location(request_ctx, LOCATION)
        table.get_sku_values_for_location(request_ctx, LOCATION)
        assert catalog.list_calls == 2

    def test_defaults_are_not_cached(self, request_ctx):
        catalog = FakeSkuCatalog()
        catalog.error = AzureResponseError(503)
        table = SkuCapacityTable(catalog=catalog)
        table.get_sku_values_for_location(request_ctx, LOCATION)
        catalog.error = None
        catalog.pages = [[make_resource_sku("fake-sku", [LOCATION])]]
        assert "fake-sku" in table.get_sku_values_for_location(request_ctx, LOCATION)

    def test_returned_dict_is_a_copy(self, request_ctx):
        table = SkuCapacityTable(catalog=None)
        values = table.get_sku_values_for_location(request_ctx, LOCATION)
        values.clear()
        assert table.get_sku_values_for_location(request_ctx, LOCATION) == DEFAULT_SKU_VALUES
