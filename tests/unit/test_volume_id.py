"""
Unit tests for the volume ID codec.
"""

import grpc
import pytest

from lustre_provisioner.exceptions import InvalidArgument, InvalidVolumeId
from lustre_provisioner.volume_id import (
    create_volume_id_from_params,
    decode_volume_id,
    encode_volume_id,
)


@pytest.mark.unit
class TestEncodeVolumeId:
    def test_static_volume(self):
        assert encode_volume_id("vol", "lustrefs", "1.2.3.4") == "vol#lustrefs#1.2.3.4###"

    def test_all_fields(self):
        volume_id = encode_volume_id("vol", "/lustrefs/", "1.2.3.4", "/a/b/", "amlfs", "rg")
        assert volume_id == "vol#lustrefs#1.2.3.4#a/b#amlfs#rg"


@pytest.mark.unit
class TestDecodeVolumeId:
    def test_three_segments(self):
        volume = decode_volume_id("vol#fs#1.2.3.4")
        assert volume.name == "vol"
        assert volume.azure_lustre_name == "fs"
        assert volume.mgs_ip_address == "1.2.3.4"
        assert volume.sub_dir == ""
        assert volume.aml_filesystem_name == ""
        assert volume.resource_group_name == ""
        assert volume.is_dynamic is False

    def test_single_segment_fails(self):
        with pytest.raises(InvalidVolumeId) as exc_info:
            decode_volume_id("vol")
        assert exc_info.value.code == grpc.StatusCode.INVALID_ARGUMENT

    def test_two_segments_fails(self):
        with pytest.raises(InvalidVolumeId):
            decode_volume_id("vol#fs")

    def test_trailing_empty_segments(self):
        volume = decode_volume_id("vol#fs#1.2.3.4###")
        assert volume.sub_dir == ""
        assert volume.aml_filesystem_name == ""

    def test_trims_slashes(self):
        volume = decode_volume_id("vol#/fs/#1.2.3.4#/sub/dir/")
        assert volume.azure_lustre_name == "fs"
        assert volume.sub_dir == "sub/dir"

    def test_dynamic_volume(self):
        volume = decode_volume_id("vol#lustrefs#1.2.3.4##amlfs-1#rg-1")
        assert volume.is_dynamic is True
        assert volume.aml_filesystem_name == "amlfs-1"
        assert volume.resource_group_name == "rg-1"
        assert volume.id == "vol#lustrefs#1.2.3.4##amlfs-1#rg-1"

    def test_filesystem_name_without_resource_group_fails(self):
        with pytest.raises(InvalidVolumeId, match="resource group"):
            decode_volume_id("vol#lustrefs#1.2.3.4##amlfs-1#")

    def test_encode_decode_preserves_fields(self):
        volume = decode_volume_id(
            encode_volume_id("vol", "fs", "10.0.0.1", "data", "amlfs", "rg")
        )
        assert (volume.name, volume.azure_lustre_name, volume.mgs_ip_address) == (
            "vol",
            "fs",
            "10.0.0.1",
        )
        assert (volume.sub_dir, volume.aml_filesystem_name, volume.resource_group_name) == (
            "data",
            "amlfs",
            "rg",
        )


@pytest.mark.unit
class TestCreateVolumeIdFromParams:
    def test_static_params(self):
        volume_id = create_volume_id_from_params(
            "vol", {"MGS-IP-Address": "1.2.3.4", "fs-name": "/lustrefs", "sub-dir": "/data/"}
        )
        assert volume_id == "vol#lustrefs#1.2.3.4#data##"

    def test_missing_fs_name(self):
        with pytest.raises(InvalidArgument, match="fs-name must be provided"):
            create_volume_id_from_params("vol", {"mgs-ip-address": "1.2.3.4"})

    def test_fs_name_only_slashes(self):
        with pytest.raises(InvalidArgument, match="fs-name must be provided"):
            create_volume_id_from_params("vol", {"mgs-ip-address": "1.2.3.4", "fs-name": "//"})

    def test_empty_sub_dir(self):
        with pytest.raises(InvalidArgument, match="sub-dir must not be empty"):
            create_volume_id_from_params(
                "vol", {"mgs-ip-address": "1.2.3.4", "fs-name": "fs", "sub-dir": "/"}
            )

    def test_dynamic_params(self):
        volume_id = create_volume_id_from_params(
            "vol",
            {
                "mgs-ip-address": "1.2.3.4",
                "fs-name": "lustrefs",
                "amlfilesystem-name": "amlfs",
                "resource-group-name": "rg",
                "sku-name": "ignored",
            },
        )
        assert volume_id == "vol#lustrefs#1.2.3.4##amlfs#rg"
