"""エクスポート処理で使う例外クラスとOSエラーの説明ヘルパー。"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

_PERMISSION_CODES = {13, 5, 30}
_NO_SPACE_CODES = {28, 122, 112}
_PATH_INVALID_CODES = {2, 3, 36, 80, 123, 206}


class IconExportError(Exception):
    """アイコンエクスポート関連エラーの基底クラス"""


class ConfigurationError(IconExportError, ValueError):
    """設定値が不正（構築時に検出、リトライしない）"""


class CollectionLoadError(IconExportError):
    """コレクションが見つからない、または読み込めない"""

    def __init__(self, collection: str, reason: str) -> None:
        super().__init__(f"コレクション '{collection}' を読み込めません: {reason}")
        self.collection = collection
        self.reason = reason


class IconNotFoundError(IconExportError):
    """コレクション内にアイコンが存在しない"""

    def __init__(self, collection: str, icon: str) -> None:
        super().__init__(f"アイコン '{icon}' は {collection} に存在しません")
        self.collection = collection
        self.icon = icon


class RenderError(IconExportError):
    """アイコンのSVG生成に失敗"""


class FormatSaveError(IconExportError):
    """特定形式の変換または書き込みに失敗"""

    def __init__(self, output_format: str, path: Path, reason: str) -> None:
        super().__init__(f"{output_format} の保存に失敗しました ({path}): {reason}")
        self.output_format = output_format
        self.path = path
        self.reason = reason


class ExportDirectoryError(IconExportError):
    """出力ルートディレクトリを作成できない（実行全体が中断される）"""


def describe_os_error(error: BaseException) -> str:
    """OSErrorを短い日本語メッセージに変換する。

    OSError以外は例外の型名とメッセージをそのまま返す。
    """
    if not isinstance(error, OSError):
        return f"{type(error).__name__}: {error}"

    code: Optional[int] = getattr(error, "winerror", None) if os.name == "nt" else None
    if code is None and isinstance(error.errno, int):
        code = error.errno

    if isinstance(error, FileNotFoundError):
        return f"パスが見つかりません: {error.filename or error}"
    if isinstance(error, PermissionError) or code in _PERMISSION_CODES:
        return f"アクセス権限がありません: {error.filename or error}"
    if code in _NO_SPACE_CODES:
        return "ディスク容量が不足しています"
    if code in _PATH_INVALID_CODES:
        return f"ファイル名またはパスが不正です: {error.filename or error}"
    return f"システムエラー: {error}"
