from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

from loguru import logger

from icon_exporter import runtime_logging
from icon_exporter.errors import describe_os_error
from icon_exporter.export_config import ExportConfig
from icon_exporter.exporter import ExportStats


def test_get_default_log_dir_windows_uses_localappdata(tmp_path: Path) -> None:
    env = {"LOCALAPPDATA": str(tmp_path / "LocalAppData")}
    result = runtime_logging.get_default_log_dir(
        app_name="IconExporter",
        os_name="nt",
        env=env,
        home=tmp_path / "home",
    )
    assert result == Path(env["LOCALAPPDATA"]) / "IconExporter" / "logs"


def test_get_default_log_dir_unix_uses_xdg_state_home(tmp_path: Path) -> None:
    env = {"XDG_STATE_HOME": str(tmp_path / "state")}
    result = runtime_logging.get_default_log_dir(
        app_name="IconExporter",
        os_name="posix",
        env=env,
        home=tmp_path / "home",
    )
    assert result == Path(env["XDG_STATE_HOME"]) / "iconexporter" / "logs"


def test_get_default_log_dir_unix_falls_back_to_home(tmp_path: Path) -> None:
    result = runtime_logging.get_default_log_dir(os_name="posix", env={}, home=tmp_path)
    assert result == tmp_path / ".local" / "state" / "iconexporter" / "logs"


def test_default_log_file_name(tmp_path: Path) -> None:
    now = datetime(2026, 2, 12, 9, 30, 45)
    assert runtime_logging.default_log_file(now=now, log_dir=tmp_path) == tmp_path / "run_20260212_093045.log"


def test_build_and_write_run_summary(tmp_path: Path) -> None:
    config = ExportConfig(collections=["mdi"], output_dir=tmp_path)
    stats = ExportStats(processed=4, errors=1, skipped=0)
    now = datetime(2026, 2, 12, 9, 30, 45)

    payload = runtime_logging.build_run_summary(config, stats, now=now)
    summary_path = tmp_path / "nested" / runtime_logging.SUMMARY_FILE_NAME
    runtime_logging.write_run_summary(summary_path, payload)

    saved = json.loads(summary_path.read_text(encoding="utf-8"))
    assert saved["timestamp"] == "2026-02-12T09:30:45"
    assert saved["stats"]["total"] == 5
    assert saved["config"]["output_formats"] == ["svg"]
    assert not list(summary_path.parent.glob("*.tmp"))


def test_setup_logging_writes_log_file(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "run.log"
    runtime_logging.setup_logging(console_level="WARNING", log_file=log_path, console_sink=lambda _msg: None)
    try:
        logger.debug("ファイルにだけ出るメッセージ")
    finally:
        logger.remove()
    assert "ファイルにだけ出るメッセージ" in log_path.read_text(encoding="utf-8")


def test_describe_os_error_messages(tmp_path: Path) -> None:
    missing = FileNotFoundError(2, "No such file", str(tmp_path / "nope"))
    assert describe_os_error(missing).startswith("パスが見つかりません")
    denied = PermissionError(13, "Permission denied", "x")
    assert describe_os_error(denied).startswith("アクセス権限がありません")
    assert describe_os_error(OSError(28, "No space left on device")) == "ディスク容量が不足しています"
    assert describe_os_error(RuntimeError("boom")) == "RuntimeError: boom"
