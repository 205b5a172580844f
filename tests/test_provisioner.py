import os
import stat

import pytest

from k8sdemo.provisioner import ProvisionerError, main, run_action


def test_create_makes_nested_directories(tmp_path):
    target = tmp_path / "a" / "b" / "c"
    run_action("create", str(target))
    assert target.is_dir()


def test_create_is_idempotent(tmp_path):
    target = tmp_path / "vol"
    run_action("create", str(target))
    run_action("create", str(target))
    assert target.is_dir()


def test_create_restores_umask(tmp_path):
    target = tmp_path / "vol"
    previous = os.umask(0o022)
    try:
        run_action("create", str(target))
        assert os.umask(0o022) == 0o022
    finally:
        os.umask(previous)
    assert target.is_dir()
    assert stat.S_IMODE(target.stat().st_mode) == 0o777


def test_create_over_file_fails(tmp_path):
    target = tmp_path / "file"
    target.write_text("data")
    with pytest.raises(ProvisionerError, match="Cannot create directory"):
        run_action("create", str(target))


def test_delete_removes_tree(tmp_path):
    target = tmp_path / "vol"
    (target / "sub").mkdir(parents=True)
    (target / "sub" / "f.txt").write_text("x")
    run_action("delete", str(target))
    assert not target.exists()


def test_delete_missing_path_is_fine(tmp_path):
    target = tmp_path / "absent"
    run_action("delete", str(target))
    assert not target.exists()


def test_delete_removes_plain_file(tmp_path):
    target = tmp_path / "file"
    target.write_text("data")
    run_action("delete", str(target))
    assert not target.exists()


def test_incorrect_action():
    with pytest.raises(ProvisionerError, match="Incorrect action: bogus"):
        run_action("bogus", "/tmp/x")


def test_empty_path():
    with pytest.raises(ProvisionerError, match="Path is empty"):
        run_action("create", "")


def test_root_path_is_refused():
    with pytest.raises(ProvisionerError, match="Path cannot be '/'"):
        run_action("delete", "/")


def test_main_success(tmp_path):
    target = tmp_path / "vol"
    assert main(["-a", "create", "-p", str(target), "-s", "1024", "-m", "0777"]) == 0
    assert target.is_dir()
    assert main(["-a", "delete", "-p", str(target)]) == 0
    assert not target.exists()


def test_main_reports_errors(capsys):
    assert main(["-a", "resize", "-p", "/tmp/x"]) == 1
    assert "Incorrect action: resize" in capsys.readouterr().err