"""
Unit tests for per-volume operation locks.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import grpc
import pytest

from lustre_provisioner.exceptions import OperationAlreadyExists
from lustre_provisioner.locks import VolumeLocks


@pytest.mark.unit
class TestVolumeLocks:
    def test_acquire_and_release(self):
        locks = VolumeLocks()
        assert locks.try_acquire("vol-1") is True
        assert locks.is_held("vol-1") is True
        locks.release("vol-1")
        assert locks.is_held("vol-1") is False

    def test_second_acquire_fails(self):
        locks = VolumeLocks()
        assert locks.try_acquire("vol-1") is True
        assert locks.try_acquire("vol-1") is False

    def test_keys_are_independent(self):
        locks = VolumeLocks()
        assert locks.try_acquire("vol-1") is True
        assert locks.try_acquire("vol-2") is True

    def test_release_unknown_key(self):
        VolumeLocks().release("missing")

    def test_hold_releases_on_exit(self):
        locks = VolumeLocks()
        with locks.hold("vol-1") as key:
            assert key == "vol-1"
            assert locks.is_held("vol-1")
        assert not locks.is_held("vol-1")

    def test_hold_releases_on_error(self):
        locks = VolumeLocks()
        with pytest.raises(RuntimeError):
            with locks.hold("vol-1"):
                raise RuntimeError("boom")
        assert not locks.is_held("vol-1")

    def test_hold_rejects_concurrent_operation(self):
        locks = VolumeLocks()
        with locks.hold("vol-1"):
            with pytest.raises(OperationAlreadyExists) as exc_info:
                with locks.hold("vol-1"):
                    pass
        assert exc_info.value.code == grpc.StatusCode.ABORTED
        assert "vol-1 already exists" in str(exc_info.value)
        assert not locks.is_held("vol-1")

    def test_concurrent_acquire_has_one_winner(self):
        locks = VolumeLocks()
        workers = 16
        barrier = threading.Barrier(workers)

        def acquire():
            barrier.wait()
            return locks.try_acquire("vol-1")

        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(lambda _: acquire(), range(workers)))

        assert results.count(True) == 1
        assert locks.is_held("vol-1")
