import logging
from pathlib import Path

import pytest

from zfs_bootstrap import logging_utils

_ATTRS = ("_zfs_bootstrap_configured", "_zfs_bootstrap_log_path")


def _ours(h):
    # pytest attaches its own capture handlers to the root logger
    return type(h) in (logging.FileHandler, logging.StreamHandler)


@pytest.fixture
def clean_root_logger():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    root.handlers = []
    for attr in _ATTRS:
        if hasattr(root, attr):
            delattr(root, attr)
    yield root
    for h in root.handlers:
        if _ours(h):
            h.close()
    root.handlers = saved_handlers
    root.setLevel(saved_level)
    for attr in _ATTRS:
        if hasattr(root, attr):
            delattr(root, attr)


def _configure(root, **kwargs):
    before = list(root.handlers)
    chosen = logging_utils.configure_logging(**kwargs)
    return chosen, [h for h in root.handlers if h not in before]


def test_file_gets_debug_console_gets_level(clean_root_logger, tmp_path):
    path = tmp_path / "logs" / "install.log"
    chosen, added = _configure(clean_root_logger, log_path=str(path), level=logging.INFO)
    assert chosen == str(path)

    logging.getLogger("zfs_bootstrap.test").debug("STDOUT hidden from console")
    for h in added:
        h.flush()
    assert "STDOUT hidden from console" in path.read_text()

    assert sorted(h.level for h in added) == [logging.DEBUG, logging.INFO]
    assert {type(h) for h in added} == {logging.FileHandler, logging.StreamHandler}


def test_second_call_is_a_no_op(clean_root_logger, tmp_path):
    first, added = _configure(clean_root_logger, log_path=str(tmp_path / "a.log"))
    second, added_again = _configure(clean_root_logger, log_path=str(tmp_path / "b.log"))
    assert first == second == str(tmp_path / "a.log")
    assert len(added) == 2
    assert added_again == []
    assert not (tmp_path / "b.log").exists()


def test_console_can_be_disabled(clean_root_logger, tmp_path):
    _, added = _configure(clean_root_logger, log_path=str(tmp_path / "a.log"), also_console=False)
    assert [type(h) for h in added] == [logging.FileHandler]


def test_falls_back_to_working_directory(clean_root_logger, tmp_path, monkeypatch):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    monkeypatch.chdir(tmp_path)
    chosen = logging_utils.configure_logging(log_path=str(blocker / "install.log"), also_console=False)
    assert Path(chosen).resolve() == (tmp_path / "zfs-bootstrap.log").resolve()
