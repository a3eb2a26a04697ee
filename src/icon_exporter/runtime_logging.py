"""ログ出力の設定と、実行サマリーJSONの保存を扱うユーティリティ。"""

from __future__ import annotations

import json
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, TextIO, Union

from loguru import logger

if TYPE_CHECKING:
    from icon_exporter.export_config import ExportConfig
    from icon_exporter.exporter import ExportStats

APP_NAME = "IconExporter"
SUMMARY_FILE_NAME = "export-summary.json"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{function}</cyan>: <white>{message}</white>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {module}:{function}:{line} - {message}"


def setup_logging(
    console_level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    file_level: str = "DEBUG",
    console_sink: Optional[Union[TextIO, Callable[[str], None]]] = None,
) -> None:
    """ロギングの設定を行います"""
    logger.remove()  # デフォルト設定を削除
    logger.add(console_sink or sys.stderr, format=CONSOLE_FORMAT, colorize=True, level=console_level)
    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path,
            format=FILE_FORMAT,
            level=file_level,
            rotation="10 MB",
            retention="7 days",
            encoding="utf-8",
        )


def get_default_log_dir(
    app_name: str = APP_NAME,
    *,
    os_name: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """OSごとの標準ログディレクトリを返す。"""
    resolved_os_name = os_name or os.name
    resolved_env = env if env is not None else os.environ
    resolved_home = home or Path.home()
    app_dir_name = app_name.strip().replace(" ", "")

    if resolved_os_name == "nt":
        local_app_data = resolved_env.get("LOCALAPPDATA") or resolved_env.get("APPDATA")
        if local_app_data:
            return Path(local_app_data) / app_dir_name / "logs"
        return resolved_home / f".{app_dir_name.lower()}" / "logs"

    state_home = resolved_env.get("XDG_STATE_HOME")
    if state_home:
        return Path(state_home) / app_dir_name.lower() / "logs"
    return resolved_home / ".local" / "state" / app_dir_name.lower() / "logs"


def default_log_file(now: Optional[datetime] = None, log_dir: Optional[Path] = None) -> Path:
    """実行ごとのログファイルパス（run_YYYYmmdd_HHMMSS.log）を返す。"""
    run_id = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return (log_dir or get_default_log_dir()) / f"run_{run_id}.log"


def build_run_summary(
    config: "ExportConfig",
    stats: "ExportStats",
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    return {
        "config": config.to_dict(),
        "stats": stats.to_dict(),
        "timestamp": (now or datetime.now()).isoformat(timespec="seconds"),
    }


def write_run_summary(summary_path: Path, payload: dict[str, Any]) -> None:
    """summary JSON をアトミックに保存する。"""
    summary_path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = summary_path.with_suffix(f"{summary_path.suffix}.tmp")
    with tmp_path.open("w", encoding="utf-8") as fh:
        json.dump(payload, fh, ensure_ascii=False, indent=2)
    tmp_path.replace(summary_path)
