"""图标检测数据结构。"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from ...core.config import settings


@dataclass(frozen=True)
class DetectedIcon:
    """检测到的无文字图标（窗口坐标，单位：点）。"""

    tap_x: float
    tap_y: float
    estimated_size: float

    @property
    def center(self) -> Tuple[float, float]:
        return (self.tap_x, self.tap_y)


@dataclass(frozen=True)
class EmptyZone:
    """窗口中缺少有效文字的水平带，限定图标搜索范围。"""

    y_start: float
    y_end: float

    @property
    def height(self) -> float:
        return self.y_end - self.y_start

    def contains_y(self, y: float) -> bool:
        return self.y_start <= y <= self.y_end


@dataclass(frozen=True)
class IconParams:
    """图标检测参数（默认取自 settings）。"""

    bottom_zone_fraction: float
    top_zone_fraction: float
    top_zone_start: float
    min_zone_height: float
    max_zone_elements: int
    noise_max_length: int
    color_threshold: int
    corner_inset_px: int
    bar_row_bg_fraction: float
    smoothing_window: int
    min_column_density: int
    min_cluster_width: int
    max_cluster_width: int
    saliency_min_zone: float
    max_saliency_size: float
    min_for_interpolation: int
    spacing_tolerance: float
    dedup_radius: float
    ocr_proximity: float

    @classmethod
    def from_settings(cls, **overrides) -> "IconParams":
        values = dict(
            bottom_zone_fraction=settings.icon_bottom_zone_fraction,
            top_zone_fraction=settings.icon_top_zone_fraction,
            top_zone_start=settings.icon_top_zone_start,
            min_zone_height=settings.icon_min_zone_height,
            max_zone_elements=settings.icon_max_zone_elements,
            noise_max_length=settings.icon_noise_max_length,
            color_threshold=settings.icon_color_threshold,
            corner_inset_px=settings.icon_corner_inset_px,
            bar_row_bg_fraction=settings.icon_bar_row_bg_fraction,
            smoothing_window=settings.icon_smoothing_window,
            min_column_density=settings.icon_min_column_density,
            min_cluster_width=settings.icon_min_cluster_width,
            max_cluster_width=settings.icon_max_cluster_width,
            saliency_min_zone=settings.icon_saliency_min_zone,
            max_saliency_size=settings.icon_max_saliency_size,
            min_for_interpolation=settings.icon_min_for_interpolation,
            spacing_tolerance=settings.icon_spacing_tolerance,
            dedup_radius=settings.icon_dedup_radius,
            ocr_proximity=settings.icon_ocr_proximity,
        )
        values.update(overrides)
        return cls(**values)
