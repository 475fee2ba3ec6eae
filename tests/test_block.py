import json

import pytest

from conftest import FakeRunner
from zfs_bootstrap.errors import ResourceError
from zfs_bootstrap.lib import block

GB = 1000 ** 3


def _lsblk(*devs):
    return json.dumps({"blockdevices": [dict(d) for d in devs]})


def test_parse_lsblk_keeps_only_disks():
    payload = _lsblk(
        {"name": "sda", "path": "/dev/sda", "size": 10 * GB, "type": "disk"},
        {"name": "sr0", "path": "/dev/sr0", "size": 700, "type": "rom"},
        {"name": "loop0", "path": "/dev/loop0", "size": 4096, "type": "loop"},
    )
    disks = block.parse_lsblk_disks(payload)
    assert [d.path for d in disks] == ["/dev/sda"]
    assert block.parse_lsblk_disks("") == []


def test_pick_largest():
    disks = block.parse_lsblk_disks(
        _lsblk(
            {"name": "sda", "path": "/dev/sda", "size": 10 * GB, "type": "disk"},
            {"name": "sdb", "path": "/dev/sdb", "size": 2000 * GB, "type": "disk"},
            {"name": "nvme0n1", "path": "/dev/nvme0n1", "size": 500 * GB, "type": "disk"},
        )
    )
    assert block.pick_largest(disks).path == "/dev/sdb"
    assert block.pick_largest([]) is None


def test_pick_largest_tie_keeps_first():
    a = block.DiskInfo("sda", "/dev/sda", 5)
    b = block.DiskInfo("sdb", "/dev/sdb", 5)
    assert block.pick_largest([a, b]) is a


def test_list_disks_uses_json_bytes():
    runner = FakeRunner(handler=lambda argv: (0, _lsblk({"name": "vda", "size": "42", "type": "disk"})))
    disks = block.list_disks(runner)
    assert disks == [block.DiskInfo(name="vda", path="/dev/vda", size=42)]
    assert "--json" in runner.calls[0] and "--bytes" in runner.calls[0]


def test_get_uuid():
    runner = FakeRunner(handler=lambda argv: (0, "ABCD-1234\n"))
    assert block.get_uuid(runner, "/dev/sda1") == "ABCD-1234"

    with pytest.raises(ResourceError):
        block.get_uuid(FakeRunner(), "/dev/sda1")

    assert block.get_uuid(FakeRunner(dry_run=True), "/dev/sda1") == "DRY-RUN-UUID"


def test_mountpoints_and_block_device(tmp_path):
    runner = FakeRunner(handler=lambda argv: (0, "\n/boot/efi\n[SWAP]\n"))
    assert block.mountpoints(runner, "/dev/sda") == ["/boot/efi", "[SWAP]"]

    regular = tmp_path / "file"
    regular.write_text("x")
    assert not block.is_block_device(str(regular))
    assert not block.is_block_device("")
    assert not block.is_block_device(str(tmp_path / "missing"))


def test_human_size():
    assert block.human_size(512) == "512.0B"
    assert block.human_size(2048) == "2.0K"
    assert block.human_size(3 * 1024 ** 4) == "3.0T"
