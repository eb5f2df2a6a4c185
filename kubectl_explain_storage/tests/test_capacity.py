import pytest

from kubectl_explain_storage.capacity import (
    active_replica_count,
    disk_pool_satisfying,
    percent_used,
    tags_satisfied,
    usage_level,
    volumes_by_disk_tag,
)
from kubectl_explain_storage.records import Disk, Volume
from kubectl_explain_storage.units import GB, KB, MB, PB, TB, ByteSize


def disk(name, tags, available):
    return Disk(
        node_name="n1",
        disk_name=name,
        tags=tags,
        storage_available=ByteSize(available),
    )


class TestPercentUsed:
    def test_regular_disk(self):
        assert percent_used(100 * GB, 25 * GB) == pytest.approx(75.0)

    def test_zero_capacity_is_zero(self):
        assert percent_used(0, 0) == 0.0
        assert percent_used(0, 50 * GB) == 0.0

    @pytest.mark.parametrize(
        "maximum,available",
        [
            (10 * GB, 0),
            (10 * GB, 10 * GB),
            (10 * GB, 20 * GB),
            (10 * GB, -5 * GB),
            (1, 0.5),
        ],
    )
    def test_always_within_bounds(self, maximum, available):
        assert 0.0 <= percent_used(maximum, available) <= 100.0

    @pytest.mark.parametrize(
        "percent,level",
        [(0, "ok"), (60, "ok"), (60.1, "warning"), (80, "warning"), (80.5, "critical")],
    )
    def test_usage_level(self, percent, level):
        assert usage_level(percent) == level


class TestTags:
    def test_subset_semantics(self):
        d = disk("d1", ["ssd", "fast"], 0)
        assert tags_satisfied(["ssd"], d)
        assert tags_satisfied([], d)
        assert not tags_satisfied(["ssd", "nvme"], d)

    def test_adding_a_tag_never_unsatisfies(self):
        required = ["ssd", "fast"]
        d = disk("d1", ["ssd"], 0)
        before = tags_satisfied(required, d)
        for extra in ["fast", "hdd", "ssd"]:
            d.tags = d.tags + [extra]
            after = tags_satisfied(required, d)
            assert after or not before
            before = after
        assert before

    def test_pool_counts_and_sums_matching_disks(self):
        disks = [
            disk("d1", ["ssd"], 10 * GB),
            disk("d2", ["ssd", "fast"], 5 * GB),
            disk("d3", ["hdd"], 100 * GB),
        ]
        count, available = disk_pool_satisfying(["ssd"], disks)

        assert count == 2
        assert available == 15 * GB
        assert isinstance(available, ByteSize)

    def test_pool_without_matches(self):
        count, available = disk_pool_satisfying(["fast"], [disk("d1", [], GB)])
        assert (count, float(available)) == (0, 0.0)


class TestActiveReplicas:
    def test_counts_only_rw_mode(self):
        replicas = {"a": {"mode": "RW"}, "b": {"mode": "WO"}, "c": {"mode": "RW"}}
        assert active_replica_count("attached", "degraded", replicas) == (2, False)

    def test_attached_healthy_without_rw_is_inferred(self):
        assert active_replica_count("attached", "healthy", {}) == (1, True)

    @pytest.mark.parametrize(
        "state,robustness",
        [("detached", "healthy"), ("attached", "degraded"), ("detached", "unknown")],
    )
    def test_no_inference_otherwise(self, state, robustness):
        assert active_replica_count(state, robustness, {"a": {"mode": "ERR"}}) == (
            0,
            False,
        )

    def test_malformed_entries_are_ignored(self):
        replicas = {"a": "RW", "b": None, "c": {"mode": "RW"}}
        assert active_replica_count("attached", "degraded", replicas) == (1, False)


class TestByteSize:
    @pytest.mark.parametrize(
        "value,text",
        [
            (0, "0.00 B"),
            (512, "512.00 B"),
            (KB, "1.00 KB"),
            (1.5 * MB, "1.50 MB"),
            (10 * GB, "10.00 GB"),
            (2 * TB, "2.00 TB"),
            (3 * PB, "3.00 PB"),
        ],
    )
    def test_power_of_1024_units(self, value, text):
        assert str(ByteSize(value)) == text

    def test_arithmetic_keeps_the_type(self):
        total = ByteSize(GB) + ByteSize(GB)
        assert isinstance(total, ByteSize)
        assert str(total) == "2.00 GB"
        assert isinstance(total - ByteSize(GB), ByteSize)
        assert isinstance(sum([ByteSize(1), ByteSize(2)]), ByteSize)


def test_volumes_by_disk_tag_keeps_selector_volumes():
    volumes = [Volume(name="a", disk_selector=["ssd"]), Volume(name="b")]
    assert [v.name for v in volumes_by_disk_tag(volumes)] == ["a"]
