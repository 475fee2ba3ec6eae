from conftest import FakeRunner
from zfs_bootstrap.steps import TeardownStep
from zfs_bootstrap.steps.step_90_teardown import mounts_under


def findmnt_output(root):
    return "\n".join(
        [
            "/ ext4",
            "/mntx ext4",
            f"{root} zfs",
            f"{root}/boot zfs",
            f"{root}/boot/efi vfat",
            f"{root}/run tmpfs",
            f"{root}/dev devtmpfs",
            f"{root}/dev/pts devpts",
            f"{root}/media/usb\\x20stick vfat",
        ]
    )


def test_mounts_under(staging):
    root = str(staging)
    runner = FakeRunner(handler=lambda argv: (0, findmnt_output(root)))
    mounts = mounts_under(runner, root)
    assert mounts[0] == (root, "zfs")
    assert (f"{root}/media/usb stick", "vfat") in mounts
    assert ("/", "ext4") not in mounts and ("/mntx", "ext4") not in mounts


def test_unmounts_in_reverse_then_exports(make_ctx, staging):
    root = str(staging)
    runner = FakeRunner(handler=lambda argv: (0, findmnt_output(root)) if argv[0] == "findmnt" else None)
    ctx = make_ctx(runner=runner)
    TeardownStep().run(ctx)

    umounts = [c[-1] for c in runner.commands("umount")]
    assert umounts == [
        f"{root}/media/usb stick",
        f"{root}/dev/pts",
        f"{root}/dev",
        f"{root}/run",
        f"{root}/boot/efi",
    ]
    assert runner.calls[-1] == ["zpool", "export", "-a"]


def test_failures_do_not_stop_teardown(make_ctx, staging):
    root = str(staging)

    def handler(argv):
        if argv[0] == "findmnt":
            return 0, f"{root}/run tmpfs\n{root}/dev devtmpfs"
        return 32, ""

    runner = FakeRunner(handler=handler)
    ctx = make_ctx(runner=runner)
    step = TeardownStep()
    step.run(ctx)
    step.verify(ctx)
    assert len(runner.commands("umount")) == 2
    assert ["zpool", "export", "-a"] in runner.calls
