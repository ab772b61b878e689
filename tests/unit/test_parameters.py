"""
Unit tests for storage class parameter parsing.
"""

import pytest

from lustre_provisioner.azure.models import MaintenanceDayOfWeek, SquashMode
from lustre_provisioner.exceptions import InvalidArgument, InvalidParameter
from lustre_provisioner.parameters import (
    SubnetProperties,
    convert_tags_to_map,
    get_valid_aml_filesystem_name,
    parse_provisioning_request,
    parse_squash_id,
)


@pytest.fixture
def params():
    return {
        "amlfilesystem-name": "amlfs-${pvc.metadata.namespace}-${pvc.metadata.name}",
        "csi.storage.k8s.io/pvc/name": "myclaim",
        "csi.storage.k8s.io/pvc/namespace": "default",
        "maintenance-day-of-week": "Monday",
        "time-of-day-utc": "12:00",
        "sku-name": "AMLFS-Durable-Premium-125",
        "zones": "1",
    }


@pytest.mark.unit
class TestConvertTagsToMap:
    def test_empty(self):
        assert convert_tags_to_map("") == {}

    def test_pairs(self):
        assert convert_tags_to_map("key1=value1, key2 = value2") == {
            "key1": "value1",
            "key2": "value2",
        }

    def test_empty_value(self):
        assert convert_tags_to_map("key=") == {"key": ""}

    def test_missing_equals(self):
        with pytest.raises(InvalidArgument, match="the format should be"):
            convert_tags_to_map("key1")

    def test_too_many_equals(self):
        with pytest.raises(InvalidArgument):
            convert_tags_to_map("key1=value1=value2")

    def test_empty_key(self):
        with pytest.raises(InvalidArgument):
            convert_tags_to_map("=value")


@pytest.mark.unit
class TestParseSquashId:
    def test_valid(self):
        assert parse_squash_id("root-squash-uid", "1000") == 1000

    def test_maximum(self):
        assert parse_squash_id("root-squash-uid", "4294967295") == 4294967295

    @pytest.mark.parametrize(
        "value", ["0", "-1", "4294967296", "abc", "", "1_000", " 7 ", "+5", "7\n"]
    )
    def test_invalid(self, value):
        with pytest.raises(InvalidParameter, match="root-squash-gid"):
            parse_squash_id("root-squash-gid", value)


@pytest.mark.unit
class TestParseProvisioningRequest:
    def test_dynamic_request(self, params):
        request = parse_provisioning_request(params)
        assert request.is_dynamic is True
        assert request.aml_filesystem_name == "amlfs-default-myclaim"
        assert request.maintenance_day_of_week == MaintenanceDayOfWeek.MONDAY
        assert request.time_of_day_utc == "12:00"
        assert request.sku_name == "AMLFS-Durable-Premium-125"
        assert request.zones == ["1"]
        assert request.root_squash_settings is None

    def test_keys_are_case_insensitive(self, params):
        params["SKU-Name"] = params.pop("sku-name")
        request = parse_provisioning_request(params)
        assert request.sku_name == "AMLFS-Durable-Premium-125"

    def test_optional_fields(self, params):
        params.update(
            {
                "resource-group-name": "rg",
                "location": "eastus",
                "vnet-resource-group": "vnet-rg",
                "vnet-name": "vnet",
                "subnet-name": "subnet",
                "tags": "a=b",
                "identities": "id1,id2",
                "zones": "1,2",
            }
        )
        request = parse_provisioning_request(params)
        assert request.resource_group_name == "rg"
        assert request.location == "eastus"
        assert request.subnet_info == SubnetProperties(
            vnet_resource_group="vnet-rg", vnet_name="vnet", subnet_name="subnet"
        )
        assert request.tags == {"a": "b"}
        assert request.identities == ["id1", "id2"]
        assert request.zones == ["1", "2"]

    def test_pv_name_placeholder(self, params):
        params["amlfilesystem-name"] = "fs-${pv.metadata.name}"
        params["csi.storage.k8s.io/pv/name"] = "pv-1"
        assert parse_provisioning_request(params).aml_filesystem_name == "fs-pv-1"

    def test_unknown_parameter(self, params):
        params["bogus"] = "value"
        with pytest.raises(InvalidArgument) as exc_info:
            parse_provisioning_request(params)
        assert str(exc_info.value) == "Invalid parameter(s) {bogus = value} in storage class"

    def test_all_unknown_parameters_are_listed(self, params):
        params["bogus"] = "value"
        params["Another-Bogus"] = "x"
        with pytest.raises(InvalidArgument) as exc_info:
            parse_provisioning_request(params)
        assert str(exc_info.value) == (
            "Invalid parameter(s) {bogus = value, Another-Bogus = x} in storage class"
        )

    def test_fs_name_and_sub_dir_are_accepted(self, params):
        params["fs-name"] = "lustrefs"
        params["sub-dir"] = "data"
        parse_provisioning_request(params)

    @pytest.mark.parametrize(
        "missing",
        ["amlfilesystem-name", "maintenance-day-of-week", "time-of-day-utc", "sku-name", "zones"],
    )
    def test_missing_dynamic_parameter(self, params, missing):
        del params[missing]
        with pytest.raises(InvalidParameter) as exc_info:
            parse_provisioning_request(params)
        assert str(exc_info.value) == (
            "CreateVolume Parameter %s must be provided for dynamically provisioned AMLFS"
            % missing
        )

    def test_empty_zones(self, params):
        params["zones"] = ""
        with pytest.raises(InvalidParameter, match="zones"):
            parse_provisioning_request(params)

    def test_invalid_day_of_week(self, params):
        params["maintenance-day-of-week"] = "Funday"
        with pytest.raises(InvalidParameter, match="maintenance-day-of-week"):
            parse_provisioning_request(params)

    @pytest.mark.parametrize("value", ["24:00", "12:60", "noon", "1200", "12:00\n"])
    def test_invalid_time_of_day(self, params, value):
        params["time-of-day-utc"] = value
        with pytest.raises(InvalidParameter, match="time-of-day-utc"):
            parse_provisioning_request(params)

    def test_single_digit_hour(self, params):
        params["time-of-day-utc"] = "7:30"
        assert parse_provisioning_request(params).time_of_day_utc == "7:30"

    def test_invalid_tags(self, params):
        params["tags"] = "nope"
        with pytest.raises(InvalidArgument, match="Tags 'nope' are invalid"):
            parse_provisioning_request(params)

    def test_static_request(self):
        request = parse_provisioning_request(
            {"mgs-ip-address": "1.2.3.4", "fs-name": "lustrefs", "sub-dir": "data"}
        )
        assert request.is_dynamic is False

    def test_static_request_ignores_dynamic_requirements(self):
        request = parse_provisioning_request({"MGS-IP-Address": "1.2.3.4", "sku-name": "sku"})
        assert request.is_dynamic is False
        assert request.sku_name == "sku"

    def test_static_request_rejects_filesystem_name(self):
        with pytest.raises(InvalidParameter, match="must not be provided when using a static AMLFS"):
            parse_provisioning_request({"mgs-ip-address": "1.2.3.4", "amlfilesystem-name": "fs"})

    def test_root_squash_none(self, params):
        params["root-squash-mode"] = "None"
        request = parse_provisioning_request(params)
        assert request.root_squash_settings.squash_mode == SquashMode.NONE

    def test_root_squash_all(self, params):
        params.update(
            {
                "root-squash-mode": "All",
                "root-squash-nid-lists": "10.0.2.4@tcp;10.0.2.[6-8]@tcp",
                "root-squash-uid": "1000",
                "root-squash-gid": "2000",
            }
        )
        settings = parse_provisioning_request(params).root_squash_settings
        assert settings.squash_mode == SquashMode.ALL
        assert settings.no_squash_nid_lists == "10.0.2.4@tcp;10.0.2.[6-8]@tcp"
        assert settings.squash_uid == 1000
        assert settings.squash_gid == 2000

    def test_root_squash_incomplete(self, params):
        params.update({"root-squash-mode": "RootOnly", "root-squash-uid": "1000"})
        with pytest.raises(InvalidArgument, match="invalid root squash info"):
            parse_provisioning_request(params)

    def test_invalid_root_squash_mode(self, params):
        params["root-squash-mode"] = "Everything"
        with pytest.raises(InvalidParameter, match="root-squash-mode"):
            parse_provisioning_request(params)

    def test_invalid_nid_lists(self, params):
        params["root-squash-nid-lists"] = "10.0.2.4 tcp"
        with pytest.raises(InvalidParameter, match="root-squash-nid-lists"):
            parse_provisioning_request(params)

    def test_nid_lists_with_trailing_newline(self, params):
        params["root-squash-nid-lists"] = "10.0.0.1@tcp\n"
        with pytest.raises(InvalidParameter, match="root-squash-nid-lists"):
            parse_provisioning_request(params)


@pytest.mark.unit
class TestGetValidAmlFilesystemName:
    def test_valid_name_is_kept(self):
        assert get_valid_aml_filesystem_name("fs-myclaim", "pvc-1234") == "fs-myclaim"

    def test_single_character_falls_back(self):
        assert get_valid_aml_filesystem_name("a", "vol") == "pvc-amlfs-vol"

    def test_empty_name_falls_back(self):
        assert get_valid_aml_filesystem_name("", "pvc-1234") == "pvc-amlfs-pvc-1234"

    def test_invalid_characters_fall_back(self):
        assert get_valid_aml_filesystem_name("bad name!", "vol.1") == "pvc-amlfs-vol1"

    def test_trailing_separator_falls_back(self):
        assert get_valid_aml_filesystem_name("name-", "vol") == "pvc-amlfs-vol"

    def test_trailing_newline_falls_back(self):
        assert get_valid_aml_filesystem_name("fs-myclaim\n", "vol") == "pvc-amlfs-vol"

    def test_long_name_is_truncated(self):
        name = "a" * 100
        assert get_valid_aml_filesystem_name(name, "vol") == "a" * 80

    def test_fallback_is_truncated_and_trimmed(self):
        volume_name = "b" * 69 + "-" + "c" * 20
        result = get_valid_aml_filesystem_name("", volume_name)
        assert result == "pvc-amlfs-" + "b" * 69
        assert len(result) <= 80
