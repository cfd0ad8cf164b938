import pytest

from pyrite_installer.errors import PlanningError
from pyrite_installer.lib.block import (
    Disk,
    PartitionNaming,
    classify_disk,
    filter_disks,
    get_uuid,
    list_disks,
    parse_size_gb,
    partition_path,
    reprobe_disk,
)

LSBLK = "\n".join(
    [
        'NAME="sda" SIZE="60G" MODEL="Samsung SSD 860" TYPE="disk"',
        'NAME="sdb" SIZE="4G" MODEL="USB Stick" TYPE="disk"',
        'NAME="sr0" SIZE="1024M" MODEL="DVD-ROM" TYPE="rom"',
        'NAME="loop0" SIZE="800M" MODEL="" TYPE="loop"',
    ]
)


@pytest.mark.parametrize(
    "disk,scheme",
    [
        ("/dev/sda", PartitionNaming.PLAIN),
        ("/dev/vda", PartitionNaming.PLAIN),
        ("/dev/nvme0n1", PartitionNaming.P_INFIX),
        ("/dev/mmcblk0", PartitionNaming.P_INFIX),
        ("/dev/loop7", PartitionNaming.P_INFIX),
    ],
)
def test_classify_disk(disk, scheme):
    assert classify_disk(disk) is scheme


def test_partition_path_depends_on_topology():
    assert partition_path("/dev/sda", 2) == "/dev/sda2"
    assert partition_path("/dev/nvme0n1", 2) == "/dev/nvme0n1p2"
    assert partition_path("/dev/mmcblk1", 1) == "/dev/mmcblk1p1"
    with pytest.raises(ValueError):
        partition_path("/dev/sda", 0)


@pytest.mark.parametrize(
    "value,expected",
    [("60G", 60.0), ("512M", 0.5), ("1T", 1024.0), ("931.5G", 931.5), ("4,5G", 4.5), ("2GiB", 2.0)],
)
def test_parse_size_gb_normalizes_units(value, expected):
    assert parse_size_gb(value) == pytest.approx(expected)


def test_parse_size_gb_rejects_garbage():
    with pytest.raises(ValueError):
        parse_size_gb("lots")


def test_list_disks_filters_by_minimum(fake_run):
    fake_run.on(["lsblk"], LSBLK)
    disks = list_disks(8)
    assert [d.path for d in disks] == ["/dev/sda"]
    assert disks[0].model == "Samsung SSD 860"
    assert disks[0].size_gb == pytest.approx(60.0)


def test_list_disks_without_candidates_fails(fake_run):
    fake_run.on(["lsblk"], 'NAME="sdb" SIZE="4G" MODEL="USB" TYPE="disk"\n')
    with pytest.raises(PlanningError):
        list_disks(8)


def test_filter_disks_lists_each_qualifying_disk_once():
    a = Disk("/dev/sda", 60.0)
    b = Disk("/dev/sdb", 4.0)
    c = Disk("/dev/sdc", 8.0)
    assert filter_disks([a, b, a, c], 8) == [a, c]


def test_reprobe_detects_a_swapped_disk(fake_run):
    fake_run.on(["lsblk"], 'NAME="sda" SIZE="120G" MODEL="Other" TYPE="disk"\n')
    with pytest.raises(PlanningError):
        reprobe_disk(Disk("/dev/sda", 60.0, "Samsung SSD 860"))


def test_reprobe_accepts_unchanged_disk(fake_run):
    fake_run.on(["lsblk"], 'NAME="sda" SIZE="60G" MODEL="Samsung SSD 860" TYPE="disk"\n')
    reprobe_disk(Disk("/dev/sda", 60.0, "Samsung SSD 860"))
    assert fake_run.calls[-1][-1] == "/dev/sda"


def test_get_uuid(fake_run):
    fake_run.on(["blkid"], "1234-abcd\n")
    assert get_uuid("/dev/sda2") == "1234-abcd"
