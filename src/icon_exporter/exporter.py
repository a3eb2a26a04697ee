"""アイコンのバリアント展開とエクスポート処理の本体。

コレクション × アイコン × サイズ × 色 × 形式 の組み合わせごとに
SVGを生成して保存する。1つのバリアントの失敗は件数として数えるだけで、
他のバリアントの処理は続行する。
"""

from __future__ import annotations

import os
import time
import uuid
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Literal, Mapping, Optional, Sequence, Union

from loguru import logger

from icon_exporter.errors import (
    CollectionLoadError,
    ConfigurationError,
    ExportDirectoryError,
    FormatSaveError,
    IconNotFoundError,
    RenderError,
    describe_os_error,
)
from icon_exporter.export_config import ExportConfig, Size, parse_size
from icon_exporter.icon_provider import IconCollectionData, IconDataProvider, IconifyJsonProvider
from icon_exporter.naming import sanitize_filename
from icon_exporter.path_builder import Variant, VariantOptions, build_output_path
from icon_exporter.rasterizer import CairoRasterizer, Rasterizer
from icon_exporter.runtime_logging import SUMMARY_FILE_NAME, build_run_summary, write_run_summary
from icon_exporter.svg_color import apply_color, build_svg_document

OutcomeStatus = Literal["processed", "skipped", "error"]


def _noop(*_args: Any) -> None:
    return None


@dataclass(frozen=True)
class ExportHooks:
    """進捗表示などに使うコールバック（すべて任意）"""

    collection_started: Callable[[str, int], None] = _noop
    variants_finished: Callable[[int], None] = _noop


@dataclass
class ExportStats:
    processed: int = 0
    errors: int = 0
    skipped: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @property
    def total(self) -> int:
        return self.processed + self.errors + self.skipped

    @property
    def elapsed_seconds(self) -> float:
        if self.start_time is None:
            return 0.0
        end = self.end_time or datetime.now()
        return (end - self.start_time).total_seconds()

    def add(self, counts: "VariantCounts") -> None:
        self.processed += counts.processed
        self.errors += counts.errors
        self.skipped += counts.skipped

    def to_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "errors": self.errors,
            "skipped": self.skipped,
            "total": self.total,
            "start_time": self.start_time.isoformat(timespec="seconds") if self.start_time else None,
            "end_time": self.end_time.isoformat(timespec="seconds") if self.end_time else None,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
        }


@dataclass
class VariantCounts:
    """1アイコン分（または1コレクション分）の集計"""

    processed: int = 0
    errors: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.processed + self.errors + self.skipped

    def record(self, outcome: "VariantOutcome") -> None:
        if outcome.status == "processed":
            self.processed += 1
        elif outcome.status == "skipped":
            self.skipped += 1
        else:
            self.errors += 1


@dataclass(frozen=True)
class VariantOutcome:
    variant: Variant
    status: OutcomeStatus
    output_path: Optional[Path] = None
    error: Optional[str] = None


def _build_temp_save_path(target_path: Path) -> Path:
    """同一ディレクトリ内の一時保存パスを作る。"""
    token = f"{os.getpid()}_{time.time_ns()}_{uuid.uuid4().hex[:10]}"
    return target_path.with_name(f".{target_path.name}.{token}.tmp")


def write_bytes_atomic(path: Path, content: bytes) -> None:
    """一時ファイルに書いてから置換し、壊れた最終ファイルを残さない。"""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = _build_temp_save_path(path)
    try:
        tmp_path.write_bytes(content)
        os.replace(str(tmp_path), str(path))
    finally:
        if tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError:
                logger.warning(f"一時保存ファイルの削除に失敗: {tmp_path}")


def collection_export_name(collection: str, data: IconCollectionData) -> str:
    """出力パスとログに使うコレクション名を返す。

    JSONファイルのパスで指定された場合は、ファイル内の prefix（無ければファイル名）を使う。
    """
    if Path(collection).suffix.lower() != ".json":
        return collection
    return sanitize_filename(data.prefix) or sanitize_filename(Path(collection).stem)


def _batched(items: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class Exporter:
    """設定に従ってアイコンをファイルへ書き出す。"""

    def __init__(
        self,
        config: ExportConfig,
        *,
        provider: Optional[IconDataProvider] = None,
        rasterizer: Optional[Rasterizer] = None,
        hooks: Optional[ExportHooks] = None,
    ) -> None:
        self.config = config
        self.provider = provider or IconifyJsonProvider(config.collection_paths)
        if rasterizer is None:
            try:
                rasterizer = CairoRasterizer(config.background_color, config.raster_quality)
            except ValueError as e:
                raise ConfigurationError(f"背景色の指定が不正です: {config.background_color} ({e})") from e
        self.rasterizer = rasterizer
        self.hooks = hooks or ExportHooks()
        self.stats = ExportStats()
        self._collection_cache: Dict[str, IconCollectionData] = {}

    # ------------------------------------------------------------------
    # 公開API
    # ------------------------------------------------------------------
    def export_icons(self) -> ExportStats:
        """既定のサイズ・色で全コレクションを書き出す。"""
        return self.run([self.config.default_size], [self.config.default_color])

    def export_with_variants(
        self,
        sizes: Optional[Iterable[Any]] = None,
        colors: Optional[Iterable[Optional[str]]] = None,
    ) -> ExportStats:
        """サイズ・色の全組み合わせで書き出す。"""
        resolved_sizes = [parse_size(s) for s in sizes] if sizes is not None else [self.config.default_size]
        resolved_colors = list(colors) if colors is not None else [self.config.default_color]
        if not resolved_sizes:
            raise ConfigurationError("サイズを1つ以上指定してください")
        if not resolved_colors:
            raise ConfigurationError("色を1つ以上指定してください")
        return self.run(resolved_sizes, resolved_colors)

    def run(self, sizes: Sequence[Size], colors: Sequence[Optional[str]]) -> ExportStats:
        stats = ExportStats(start_time=datetime.now())
        self.stats = stats
        self._collection_cache.clear()
        self._prepare_output_root()

        formats = self.config.output_formats
        logger.info(f"{'【ドライラン】' if self.config.dry_run else ''}エクスポートを開始します")
        logger.info(f"出力先: {self.config.output_dir}")
        logger.info(f"形式: {', '.join(formats)} / サイズ: {', '.join(s.label for s in sizes)}")

        pool = ThreadPoolExecutor(max_workers=self.config.parallel) if self.config.parallel > 1 else None
        try:
            for collection in self.config.collections:
                self._process_collection(pool, collection, sizes, colors, stats)
        finally:
            if pool is not None:
                pool.shutdown(wait=True)

        stats.end_time = datetime.now()
        self._summarize(stats)
        return stats

    def load_collection(self, collection: str) -> IconCollectionData:
        """コレクションを読み込む（同一実行内ではキャッシュを返す）。"""
        cached = self._collection_cache.get(collection)
        if cached is not None:
            return cached

        path = self.provider.locate_collection(collection)
        if path is None:
            raise CollectionLoadError(collection, "コレクションが見つかりません")
        try:
            data = self.provider.load_collection(path)
        except CollectionLoadError:
            raise
        except Exception as e:
            raise CollectionLoadError(collection, str(e)) from e

        self._collection_cache[collection] = data
        return data

    def render_icon(
        self,
        data: IconCollectionData,
        icon: str,
        size: Size,
        color: Optional[str],
    ) -> str:
        """色を適用したSVGドキュメントを返す。"""
        try:
            render = self.provider.get_icon_render_data(data, icon)
            if render is None:
                raise RenderError(f"アイコン '{icon}' の描画データを取得できません")
            body = apply_color(render.body, color, self.config.default_color)
            return build_svg_document(body, render.view_box, size)
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(f"アイコン '{icon}' のSVG生成に失敗しました: {e}") from e

    def save_variant(self, variant: Variant, svg: str) -> VariantOutcome:
        """1形式分を保存する。失敗しても例外は外に出さない。"""
        output_format = variant.options.output_format
        output_path: Optional[Path] = None
        try:
            output_path = build_output_path(self.config, variant)
            if self.config.skip_existing and output_path.exists():
                logger.debug(f"⏭ 既存ファイルをスキップ: {output_path}")
                return VariantOutcome(variant, "skipped", output_path)

            if self.config.dry_run:
                logger.info(f"【ドライラン】{variant.describe()} → {output_path}")
                return VariantOutcome(variant, "processed", output_path)

            if output_format == "svg":
                content = svg.encode("utf-8")
            else:
                size = variant.options.size
                content = self.rasterizer.rasterize(svg, output_format, size.width, size.height)
            write_bytes_atomic(output_path, content)
        except Exception as e:
            error = FormatSaveError(output_format, output_path or Path("?"), describe_os_error(e))
            logger.error(f"❌ {variant.describe()}: {error}")
            return VariantOutcome(variant, "error", output_path, str(error))

        logger.info(f"✔ {variant.describe()} → {output_path}")
        return VariantOutcome(variant, "processed", output_path)

    # ------------------------------------------------------------------
    # 内部処理
    # ------------------------------------------------------------------
    def _prepare_output_root(self) -> None:
        if self.config.dry_run:
            return
        try:
            self.config.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ExportDirectoryError(
                f"出力ディレクトリを作成できません: {self.config.output_dir} ({describe_os_error(e)})"
            ) from e

    def _process_collection(
        self,
        pool: Optional[ThreadPoolExecutor],
        collection: str,
        sizes: Sequence[Size],
        colors: Sequence[Optional[str]],
        stats: ExportStats,
    ) -> None:
        per_icon = len(sizes) * len(colors) * len(self.config.output_formats)
        try:
            data = self.load_collection(collection)
        except Exception as e:
            failed_variants = max(len(self.config.icons_to_export), 1) * per_icon
            logger.error(f"❌ コレクション '{collection}' の読み込みに失敗しました: {e}")
            stats.errors += failed_variants
            self.hooks.collection_started(collection, failed_variants)
            self.hooks.variants_finished(failed_variants)
            return

        collection = collection_export_name(collection, data)
        icons = list(self.config.icons_to_export) or list(data.icon_names)
        logger.info(
            f"📦 {collection}: {len(icons)} アイコン × {len(sizes)} サイズ × "
            f"{len(colors)} 色 × {len(self.config.output_formats)} 形式"
        )
        self.hooks.collection_started(collection, len(icons) * per_icon)

        for batch in _batched(icons, self.config.parallel):
            for counts in self._run_batch(pool, collection, data, batch, sizes, colors):
                # 集計は呼び出し元スレッドだけで行う
                stats.add(counts)
                self.hooks.variants_finished(counts.total)

    def _run_batch(
        self,
        pool: Optional[ThreadPoolExecutor],
        collection: str,
        data: IconCollectionData,
        batch: Sequence[str],
        sizes: Sequence[Size],
        colors: Sequence[Optional[str]],
    ) -> List[VariantCounts]:
        if pool is None:
            return [self._export_icon(collection, data, icon, sizes, colors) for icon in batch]

        futures: Dict["Future[VariantCounts]", str] = {
            pool.submit(self._export_icon, collection, data, icon, sizes, colors): icon for icon in batch
        }
        wait(futures)

        results: List[VariantCounts] = []
        per_icon = len(sizes) * len(colors) * len(self.config.output_formats)
        for future, icon in futures.items():
            try:
                results.append(future.result())
            except Exception as e:
                logger.error(f"❌ {collection}:{icon} の処理中に予期しないエラーが発生しました: {e}")
                results.append(VariantCounts(errors=per_icon))
        return results

    def _export_icon(
        self,
        collection: str,
        data: IconCollectionData,
        icon: str,
        sizes: Sequence[Size],
        colors: Sequence[Optional[str]],
    ) -> VariantCounts:
        counts = VariantCounts()
        formats = self.config.output_formats

        if not data.has_icon(icon):
            logger.warning(f"⚠️ {IconNotFoundError(collection, icon)}。スキップします")
            counts.errors += len(sizes) * len(colors) * len(formats)
            return counts

        for size in sizes:
            for color in colors:
                try:
                    svg = self.render_icon(data, icon, size, color)
                except RenderError as e:
                    logger.error(
                        f"❌ {collection}:{icon} (size={size.label}, color={color or 'default'}): {e}"
                    )
                    counts.errors += len(formats)
                    continue

                for output_format in formats:
                    variant = Variant(collection, icon, VariantOptions(size, color, output_format))
                    counts.record(self.save_variant(variant, svg))
        return counts

    def _summarize(self, stats: ExportStats) -> None:
        logger.info("📊 エクスポート結果")
        logger.info(f"   ✔ 成功: {stats.processed}")
        logger.info(f"   ❌ エラー: {stats.errors}")
        logger.info(f"   ⏭ スキップ: {stats.skipped}")
        logger.info(f"   📄 合計バリアント: {stats.total}")
        logger.info(f"   ⏱ 時間: {stats.elapsed_seconds:.2f}秒")
        if stats.errors:
            logger.warning(f"{stats.errors} 件のバリアントが失敗しました")
        else:
            logger.success("すべてのバリアントを書き出しました！")

        if self.config.write_summary and not self.config.dry_run:
            summary_path = self.config.output_dir / SUMMARY_FILE_NAME
            try:
                write_run_summary(summary_path, build_run_summary(self.config, stats))
                logger.info(f"サマリーを保存しました: {summary_path}")
            except OSError as e:
                logger.warning(f"サマリーを保存できませんでした: {describe_os_error(e)}")


def create_exporter(
    config: Union[ExportConfig, Mapping[str, Any]],
    *,
    provider: Optional[IconDataProvider] = None,
    rasterizer: Optional[Rasterizer] = None,
    hooks: Optional[ExportHooks] = None,
) -> Exporter:
    """設定を検証して Exporter を作る（不正な設定は ConfigurationError）。"""
    if not isinstance(config, ExportConfig):
        config = ExportConfig.from_dict(config)
    return Exporter(config, provider=provider, rasterizer=rasterizer, hooks=hooks)


def export_icons(config: Union[ExportConfig, Mapping[str, Any]], **kwargs: Any) -> ExportStats:
    return create_exporter(config, **kwargs).export_icons()


def export_icon_variants(
    config: Union[ExportConfig, Mapping[str, Any]],
    sizes: Optional[Iterable[Any]] = None,
    colors: Optional[Iterable[Optional[str]]] = None,
    **kwargs: Any,
) -> ExportStats:
    return create_exporter(config, **kwargs).export_with_variants(sizes=sizes, colors=colors)
