"""
列投影聚类图标检测

在空白区（tab bar / 导航栏）内：
  1. 取区域内部采样点的中位数作为背景色
  2. 只保留 "bar 行"（大部分像素为背景色的行），排除照片等内容渗入
  3. 统计每列在 bar 行内的前景像素数，做 box filter 平滑
  4. 密度达标且宽度符合图标尺寸的连续列段即为候选图标
"""
from __future__ import annotations

from typing import List, Sequence

import numpy as np

from .types import DetectedIcon, EmptyZone, IconParams
from .utils import PointMapper


def detect_background_color(rgb: np.ndarray, row_start: int, row_end: int) -> np.ndarray:
    """背景色：区域 25%/50%/75% 行、宽度 1/3 与 2/3 附近列的逐通道中位数。"""
    width = rgb.shape[1]
    zone_h = row_end - row_start
    rows = [row_start + zone_h // 4, row_start + zone_h // 2, row_start + zone_h * 3 // 4]
    third = width // 3
    cols = [third - 2, third - 1, third, third + 1,
            third * 2 - 2, third * 2 - 1, third * 2, third * 2 + 1]
    rows = [r for r in rows if row_start <= r < row_end]
    cols = [c for c in cols if 0 <= c < width]
    if not rows or not cols:
        return np.zeros(3, dtype=np.int16)
    samples = rgb[np.ix_(rows, cols)].reshape(-1, 3)
    ordered = np.sort(samples, axis=0)
    return ordered[len(ordered) // 2]


def foreground_mask(pixels: np.ndarray, background: np.ndarray, threshold: int) -> np.ndarray:
    """任一通道与背景色差超过阈值即为前景。"""
    return (np.abs(pixels - background) > threshold).any(axis=-1)


def find_bar_rows(
    rgb: np.ndarray,
    row_start: int,
    row_end: int,
    background: np.ndarray,
    params: IconParams,
) -> List[int]:
    width = rgb.shape[1]
    inset = min(params.corner_inset_px, width // 4)
    cols = np.arange(inset, width - inset, 4)
    if cols.size == 0:
        return []
    threshold = int(cols.size * params.bar_row_bg_fraction)
    sampled = rgb[row_start:row_end][:, cols]
    bg_counts = (~foreground_mask(sampled, background, params.color_threshold)).sum(axis=1)
    return [row_start + int(i) for i in np.flatnonzero(bg_counts >= threshold)]


def box_filter(values: Sequence[int], window: int) -> np.ndarray:
    """整数均值滑窗，窗口在边界处截断。"""
    arr = np.asarray(values, dtype=np.int64)
    n = arr.size
    if n < window:
        return arr
    half = window // 2
    csum = np.concatenate(([0], np.cumsum(arr)))
    idx = np.arange(n)
    start = np.maximum(0, idx - half)
    end = np.minimum(n - 1, idx + half) + 1
    return (csum[end] - csum[start]) // (end - start)


def detect_clusters(
    rgb: np.ndarray,
    zone: EmptyZone,
    mapper: PointMapper,
    params: IconParams,
) -> List[DetectedIcon]:
    """在单个空白区内执行列投影聚类。

    Args:
        rgb: RGB 图像（int16）
        zone: 空白区（窗口坐标）
        mapper: 窗口坐标与像素坐标映射

    Returns:
        候选图标列表（窗口坐标）；区域内没有 bar 行时返回空列表
    """
    img_h, img_w = rgb.shape[:2]
    row_start = max(0, mapper.window_y_to_pixel(zone.y_start))
    row_end = min(img_h, mapper.window_y_to_pixel(zone.y_end))
    if row_end - row_start <= 0:
        return []

    background = detect_background_color(rgb, row_start, row_end)
    bar_rows = find_bar_rows(rgb, row_start, row_end, background, params)
    if not bar_rows:
        return []

    fg = foreground_mask(rgb[bar_rows], background, params.color_threshold)
    projection = fg.sum(axis=0)
    smoothed = box_filter(projection, params.smoothing_window)

    icons: List[DetectedIcon] = []
    run_start = None
    for x in range(img_w + 1):
        val = smoothed[x] if x < img_w else 0
        if val >= params.min_column_density:
            if run_start is None:
                run_start = x
            continue
        if run_start is None:
            continue
        width = x - run_start
        if params.min_cluster_width <= width <= params.max_cluster_width:
            center_x = (run_start + x) / 2.0
            center_y = _vertical_centroid(fg[:, run_start:x], bar_rows)
            wx, wy = mapper.pixel_to_window(center_x, center_y)
            if mapper.in_window(wx, wy):
                icons.append(DetectedIcon(
                    tap_x=wx, tap_y=wy,
                    estimated_size=mapper.pixel_length_to_points(width),
                ))
        run_start = None

    return icons


def _vertical_centroid(fg_columns: np.ndarray, bar_rows: List[int]) -> float:
    counts = fg_columns.sum(axis=1)
    total = counts.sum()
    if total == 0:
        return 0.0
    return float((counts * np.asarray(bar_rows)).sum() / total)


__all__ = [
    "detect_background_color",
    "foreground_mask",
    "find_bar_rows",
    "box_filter",
    "detect_clusters",
]
