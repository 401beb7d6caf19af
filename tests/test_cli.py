from pathlib import Path

from click.testing import CliRunner

from isokit.cli import cli


def test_build_without_config_exits_with_error(tmp_path: Path):
    workspace = tmp_path / "build"
    result = CliRunner().invoke(
        cli, ["build", "--config", str(tmp_path / "kit.toml"), "--workspace", str(workspace)]
    )
    assert result.exit_code == 1
    assert "Configuration file not found" in result.output
    assert not workspace.exists()


def test_build_uses_kit_toml_in_working_directory(tmp_path: Path, fake_tools, busybox_config, monkeypatch):
    monkeypatch.chdir(tmp_path)
    fake_tools.add_image("busybox:latest", {"etc/hostname": "kit\n"})
    result = CliRunner().invoke(cli, ["build"])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "build" / "os.iso").exists()
    assert "build/os.iso" in result.output


def test_build_step_failure_exits_with_error(tmp_path: Path, fake_tools, busybox_config, monkeypatch):
    monkeypatch.setenv("KIT_FAKE_FAIL_SAVE", "1")
    result = CliRunner().invoke(
        cli, ["build", "--config", str(busybox_config), "--workspace", str(tmp_path / "build")]
    )
    assert result.exit_code == 1
    assert "Failed to save image" in result.output


def test_plan_prints_commands(tmp_path: Path, busybox_config):
    result = CliRunner().invoke(
        cli, ["plan", "--config", str(busybox_config), "--workspace", str(tmp_path / "build")]
    )
    assert result.exit_code == 0
    lines = result.output.splitlines()
    assert lines[0].endswith("busybox:latest")
    assert lines[-1] == f"limine-install {tmp_path / 'build' / 'os.iso'}"
    assert not (tmp_path / "build").exists()


def test_plan_rejects_invalid_config(tmp_path: Path, write_config):
    path = write_config('images = ["a"]\n')
    result = CliRunner().invoke(cli, ["plan", "--config", str(path)])
    assert result.exit_code == 1
    assert "either 'mappings' or 'folders'" in result.output
