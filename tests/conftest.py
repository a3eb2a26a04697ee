"""
pytest設定ファイル
共通のフィクスチャやテスト設定を定義
"""

from __future__ import annotations

import io
import json
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Tuple

import pytest
from loguru import logger
from PIL import Image

DEMO_COLLECTION: Dict[str, Any] = {
    "prefix": "demo",
    "width": 24,
    "height": 24,
    "icons": {
        "home": {"body": '<path d="M10 20v-6h4v6h5v-8h3L12 3L2 12h3v8z"/>'},
        "star": {"body": '<path fill="none" stroke="currentColor" d="M12 2l3 7h7l-6 4l2 7l-6-4l-6 4l2-7l-6-4h7z"/>'},
        "logo": {"body": '<path fill="#123456" d="M0 0h16v16H0z"/>', "width": 16, "height": 16},
        "secret": {"body": '<circle cx="12" cy="12" r="4"/>', "hidden": True},
        "broken": {"body": ""},
    },
    "aliases": {
        "house": {"parent": "home"},
        "wide-home": {"parent": "home", "width": 48},
    },
}


@pytest.fixture
def temp_dir():
    """一時ディレクトリを作成・削除するフィクスチャ"""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir)


def write_collection(directory: Path, payload: Dict[str, Any], name: str = "") -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name or payload['prefix']}.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


@pytest.fixture
def icons_dir(temp_dir: Path) -> Path:
    """demo コレクションを置いた Iconify JSON フォルダー"""
    directory = temp_dir / "iconify-json"
    write_collection(directory, DEMO_COLLECTION)
    return directory


class RecordingRasterizer:
    """cairo を使わずに小さな画像を返すラスタライザ（呼び出しを記録する）"""

    def __init__(self, fail_formats: Tuple[str, ...] = ()) -> None:
        self.calls: List[Tuple[str, int, int]] = []
        self.fail_formats = fail_formats

    def rasterize(self, svg_text: str, output_format: str, width: int, height: int) -> bytes:
        self.calls.append((output_format, width, height))
        if output_format in self.fail_formats:
            raise RuntimeError(f"{output_format} encoder unavailable")
        image = Image.new("RGB", (width, height), (255, 0, 0))
        buffer = io.BytesIO()
        image.save(buffer, format="JPEG" if output_format == "jpeg" else output_format.upper())
        return buffer.getvalue()


@pytest.fixture
def rasterizer() -> RecordingRasterizer:
    return RecordingRasterizer()


@pytest.fixture(autouse=True)
def _reset_logger():
    """CLI のテストで差し替えたログ設定を元に戻す"""
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def log_messages():
    """loguru の出力をリストに集める"""
    messages: List[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


def cairo_available() -> bool:
    try:
        import cairosvg  # noqa: F401
    except (ImportError, OSError):
        return False
    return True
