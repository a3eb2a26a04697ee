"""コマンドラインからアイコンを一括エクスポートする。"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger
from tqdm import tqdm

from icon_exporter.errors import ConfigurationError, ExportDirectoryError
from icon_exporter.export_config import (
    SIZE_PRESETS,
    VALID_OUTPUT_FORMATS,
    ExportConfig,
    Size,
    get_size_preset,
    load_export_config,
    parse_size,
)
from icon_exporter.exporter import ExportHooks, ExportStats, create_exporter
from icon_exporter.naming import VALID_CASE_KINDS
from icon_exporter.runtime_logging import default_log_file, setup_logging

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_STRICT_ERRORS = 2


def _build_arg_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI use."""
    p = argparse.ArgumentParser(
        prog="icon-exporter",
        description="Iconify のアイコンを SVG / PNG / JPEG / WEBP で一括エクスポートするツール",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    p.add_argument("collections", nargs="*", help="コレクション名（mdi, tabler など）または JSON ファイル")
    p.add_argument("-c", "--config", help="JSON 設定ファイル")
    p.add_argument("-o", "--output-dir", help="出力フォルダー")
    p.add_argument("-i", "--icon", action="append", default=[], help="エクスポートするアイコン名 (複数指定可)")
    p.add_argument("-s", "--size", action="append", default=[], help="サイズ (48 / 32x16, 複数指定可)")
    p.add_argument("--preset", choices=sorted(SIZE_PRESETS), help="サイズプリセット")
    p.add_argument("--color", action="append", default=[], help="色 (#RRGGBB など, 複数指定可)")
    p.add_argument(
        "-f",
        "--format",
        action="append",
        default=[],
        choices=list(VALID_OUTPUT_FORMATS) + ["jpg"],
        help="出力形式 (複数指定可)",
    )
    p.add_argument("--pattern", help="ファイル名パターン ({icon}, {collection}, {size} など)")
    p.add_argument("--case", choices=sorted(VALID_CASE_KINDS), help="ファイル名のケース")
    p.add_argument("--flat", action="store_true", help="フォルダー分けをせず出力フォルダー直下に保存")
    p.add_argument("--icons-path", action="append", default=[], help="Iconify JSON の探索フォルダー")
    p.add_argument("--background", help="ラスター出力の背景色 (既定は透過)")
    p.add_argument("-q", "--quality", type=int, help="JPEG/WebP 品質 (1-100)")
    p.add_argument("-j", "--parallel", type=int, help="同時に処理するアイコン数")
    p.add_argument("--skip-existing", action="store_true", help="既存ファイルをスキップ")
    p.add_argument("--dry-run", action="store_true", help="ファイルを出力せずに処理をシミュレート")
    p.add_argument("--summary", action="store_true", help="出力フォルダーに export-summary.json を保存")
    p.add_argument("--json", action="store_true", help="結果を JSON で標準出力に表示")
    p.add_argument("--strict", action="store_true", help="1件でも失敗したら終了コード 2 を返す")
    p.add_argument("--no-progress", action="store_true", help="進捗バーを表示しない")
    p.add_argument("--log-file", help="ログファイルの保存先")
    p.add_argument("--save-log", action="store_true", help="標準のログフォルダーに実行ログを保存")
    p.add_argument("--verbose", "-v", action="count", default=0, help="詳細ログを増やす (重ね掛け可)")
    return p


def _console_level(verbose: int) -> str:
    if verbose == 1:
        return "DEBUG"
    if verbose >= 2:
        return "TRACE"
    return "INFO"


def _build_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """コマンドライン引数のうち指定されたものだけを設定の上書きにする。"""
    overrides: Dict[str, Any] = {}
    if args.collections:
        overrides["collections"] = list(args.collections)
    if args.output_dir:
        overrides["output_dir"] = args.output_dir
    if args.icon:
        overrides["icons_to_export"] = list(args.icon)
    if args.format:
        overrides["output_formats"] = list(args.format)
    if args.icons_path:
        overrides["collection_paths"] = list(args.icons_path)
    if args.background:
        overrides["background_color"] = args.background
    if args.quality is not None:
        overrides["raster_quality"] = args.quality
    if args.parallel is not None:
        overrides["parallel"] = args.parallel
    if args.skip_existing:
        overrides["skip_existing"] = True
    if args.dry_run:
        overrides["dry_run"] = True
    if args.summary:
        overrides["write_summary"] = True

    file_naming: Dict[str, Any] = {}
    if args.pattern:
        file_naming["pattern"] = args.pattern
    if args.case:
        file_naming["case"] = args.case
    if file_naming:
        overrides["file_naming"] = file_naming
    if args.flat:
        overrides["folder_structure"] = {"enabled": False}
    return overrides


def _resolve_config(args: argparse.Namespace) -> ExportConfig:
    overrides = _build_overrides(args)
    if args.config:
        return load_export_config(args.config, overrides)
    return ExportConfig.from_dict(overrides)


def _resolve_variant_sizes(args: argparse.Namespace) -> Optional[List[Size]]:
    sizes: List[Size] = []
    if args.preset:
        sizes.extend(get_size_preset(args.preset))
    sizes.extend(parse_size(value) for value in args.size)
    return sizes or None


def _build_cli_summary(
    *,
    status: str,
    config: Optional[ExportConfig],
    stats: Optional[ExportStats],
    message: str,
) -> Dict[str, Any]:
    return {
        "status": status,
        "message": message,
        "output_dir": str(config.output_dir) if config else None,
        "collections": list(config.collections) if config else [],
        "formats": list(config.output_formats) if config else [],
        "dry_run": config.dry_run if config else False,
        "stats": stats.to_dict() if stats else None,
    }


class _ProgressBar:
    """ExportHooks を tqdm の進捗バーにつなぐ。"""

    def __init__(self, disable: bool = False) -> None:
        self.bar = tqdm(total=0, desc="エクスポート中", unit="files", disable=disable)

    def collection_started(self, collection: str, total_variants: int) -> None:
        self.bar.total += total_variants
        self.bar.set_description(collection)
        self.bar.refresh()

    def variants_finished(self, count: int) -> None:
        self.bar.update(count)

    def hooks(self) -> ExportHooks:
        return ExportHooks(
            collection_started=self.collection_started,
            variants_finished=self.variants_finished,
        )

    def close(self) -> None:
        self.bar.close()


def _tqdm_sink(message: str) -> None:
    # 進捗バーを崩さないようにログは tqdm.write 経由で出す
    tqdm.write(message, file=sys.stderr, end="")


def _emit_json(summary: Dict[str, Any]) -> None:
    print(json.dumps(summary, ensure_ascii=False, indent=2))


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI のエントリーポイント"""
    parser = _build_arg_parser()
    args = parser.parse_args(argv)

    show_progress = not args.no_progress and not args.json
    log_file = args.log_file or (default_log_file() if args.save_log else None)
    setup_logging(
        console_level=_console_level(args.verbose),
        log_file=log_file,
        console_sink=_tqdm_sink if show_progress else None,
    )

    config: Optional[ExportConfig] = None
    try:
        config = _resolve_config(args)
        sizes = _resolve_variant_sizes(args)
        colors = list(args.color) or None
    except ConfigurationError as e:
        logger.error(f"❌ 設定エラー: {e}")
        if args.json:
            _emit_json(_build_cli_summary(status="error", config=config, stats=None, message=str(e)))
        return EXIT_FAILURE

    progress = _ProgressBar(disable=not show_progress)
    try:
        exporter = create_exporter(config, hooks=progress.hooks())
        if sizes is None and colors is None:
            stats = exporter.export_icons()
        else:
            stats = exporter.export_with_variants(sizes=sizes, colors=colors)
    except (ConfigurationError, ExportDirectoryError) as e:
        logger.error(f"❌ {e}")
        if args.json:
            _emit_json(_build_cli_summary(status="error", config=config, stats=None, message=str(e)))
        return EXIT_FAILURE
    finally:
        progress.close()

    status = "success" if stats.errors == 0 else "partial"
    if args.json:
        message = "ok" if stats.errors == 0 else f"{stats.errors} 件のバリアントが失敗しました"
        _emit_json(_build_cli_summary(status=status, config=config, stats=stats, message=message))

    if args.strict and stats.errors:
        return EXIT_STRICT_ERRORS
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
