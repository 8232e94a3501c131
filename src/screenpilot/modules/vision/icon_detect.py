"""
无文字图标检测（tab bar、工具栏）

流程:
  1. 在窗口底部 / 顶部寻找缺少有效文字的空白区
  2. 每个空白区执行列投影聚类，足够高的区域再叠加显著性检测
  3. 合并区域内的单字符 OCR 碎片，按等间距规律补全缺失图标
  4. 过滤掉与已识别文字过近的候选
"""
from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ...core.logger import logger
from ..ocr.types import TapPoint
from .content_bounds import detect_content_bounds
from .icon_cluster import detect_clusters
from .saliency import salient_regions
from .types import DetectedIcon, EmptyZone, IconParams
from .utils import ImageLike, PointMapper, load_image, to_rgb

_log = logger.bind(module="IconDetector")

# 单字符 OCR 碎片合并为图标时的估计尺寸
_FRAGMENT_ICON_SIZE = 24.0
# 等间距补全：最小间距，以及距窗口边缘的留白比例
_MIN_SPACING = 10.0
_EDGE_MARGIN_RATIO = 0.3


def _count_meaningful(elements: Sequence[TapPoint], zone: EmptyZone, params: IconParams) -> int:
    return sum(
        1 for e in elements
        if zone.contains_y(e.tap_y) and len(e.text) > params.noise_max_length
    )


def find_empty_zones(
    elements: Sequence[TapPoint],
    window_width: float,
    window_height: float,
    *,
    params: Optional[IconParams] = None,
) -> List[EmptyZone]:
    """返回符合条件的空白区：底部 tab bar 区与顶部导航栏区（跳过状态栏）。"""
    p = params or IconParams.from_settings()
    candidates = [
        EmptyZone(window_height * (1.0 - p.bottom_zone_fraction), window_height),
        EmptyZone(p.top_zone_start, window_height * p.top_zone_fraction),
    ]
    return [
        z for z in candidates
        if z.height >= p.min_zone_height and _count_meaningful(elements, z, p) <= p.max_zone_elements
    ]


def detect_by_saliency(
    image: np.ndarray,
    zone: EmptyZone,
    mapper: PointMapper,
    *,
    params: Optional[IconParams] = None,
) -> List[DetectedIcon]:
    p = params or IconParams.from_settings()
    img_h = image.shape[0]
    crop_y = max(0, mapper.window_y_to_pixel(zone.y_start))
    crop_end = min(img_h, mapper.window_y_to_pixel(zone.y_end))
    if crop_end - crop_y <= 0:
        return []

    icons: List[DetectedIcon] = []
    for rect in salient_regions(image[crop_y:crop_end]):
        size = mapper.pixel_length_to_points(rect.width)
        # 过大的区域不是图标
        if size > p.max_saliency_size:
            continue
        wx, wy = mapper.pixel_to_window(rect.x + rect.width / 2.0, crop_y + rect.y + rect.height / 2.0)
        if mapper.in_window(wx, wy):
            icons.append(DetectedIcon(tap_x=wx, tap_y=wy, estimated_size=size))
    return icons


def merge_detections(
    primary: Sequence[DetectedIcon],
    secondary: Sequence[DetectedIcon],
    *,
    radius: Optional[float] = None,
) -> List[DetectedIcon]:
    """按距离去重合并：secondary 中与已有候选距离小于 radius 的丢弃。"""
    r = IconParams.from_settings().dedup_radius if radius is None else radius
    merged = list(primary)
    for cand in secondary:
        if not any(math.hypot(cand.tap_x - m.tap_x, cand.tap_y - m.tap_y) < r for m in merged):
            merged.append(cand)
    return merged


def interpolate_even_spacing(
    detected: Sequence[DetectedIcon],
    window_width: float,
    *,
    params: Optional[IconParams] = None,
) -> List[DetectedIcon]:
    """按等间距规律向左右补全图标。

    至少 min_for_interpolation 个图标，且所有相邻间距与中位数的偏差都在
    spacing_tolerance 范围内时才补全；否则原样返回。
    """
    p = params or IconParams.from_settings()
    if len(detected) < p.min_for_interpolation:
        return list(detected)

    ordered = sorted(detected, key=lambda i: i.tap_x)
    gaps = [b.tap_x - a.tap_x for a, b in zip(ordered, ordered[1:])]
    if not gaps:
        return list(detected)

    median = sorted(gaps)[len(gaps) // 2]
    max_dev = median * p.spacing_tolerance
    if median <= _MIN_SPACING or any(abs(g - median) > max_dev for g in gaps):
        return list(detected)

    avg_y = sum(i.tap_y for i in ordered) / len(ordered)
    avg_size = sum(i.estimated_size for i in ordered) / len(ordered)
    margin = median * _EDGE_MARGIN_RATIO

    result = list(ordered)
    x = ordered[0].tap_x - median
    while x > margin:
        result.append(DetectedIcon(tap_x=x, tap_y=avg_y, estimated_size=avg_size))
        x -= median
    x = ordered[-1].tap_x + median
    while x < window_width - margin:
        result.append(DetectedIcon(tap_x=x, tap_y=avg_y, estimated_size=avg_size))
        x += median
    return result


def filter_near_ocr(
    icons: Sequence[DetectedIcon],
    elements: Sequence[TapPoint],
    *,
    radius: Optional[float] = None,
) -> List[DetectedIcon]:
    """去掉与任一 OCR 点距离小于 radius 的图标。"""
    r = IconParams.from_settings().ocr_proximity if radius is None else radius
    return [
        icon for icon in icons
        if not any(math.hypot(icon.tap_x - e.tap_x, icon.tap_y - e.tap_y) < r for e in elements)
    ]


def detect_icons(
    image: ImageLike,
    elements: Sequence[TapPoint],
    window_size: Tuple[float, float],
    *,
    params: Optional[IconParams] = None,
) -> List[DetectedIcon]:
    """检测 OCR 覆盖不到的图标。

    Args:
        image: 截图（路径 / bytes / BGR ndarray）
        elements: 当前屏幕的 TapPoint 列表
        window_size: (宽, 高)，窗口坐标（点）

    Returns:
        DetectedIcon 列表（窗口坐标）
    """
    p = params or IconParams.from_settings()
    window_width, window_height = window_size

    zones = find_empty_zones(elements, window_width, window_height, params=p)
    if not zones:
        return []

    bgr = load_image(image)
    rgb = to_rgb(bgr)
    mapper = PointMapper.build(bgr.shape[1], detect_content_bounds(bgr), window_size)

    found: List[DetectedIcon] = []
    for zone in zones:
        icons = detect_clusters(rgb, zone, mapper, p)
        if zone.height >= p.saliency_min_zone:
            icons = merge_detections(icons, detect_by_saliency(bgr, zone, mapper, params=p), radius=p.dedup_radius)

        fragments = [
            DetectedIcon(tap_x=e.tap_x, tap_y=e.tap_y, estimated_size=_FRAGMENT_ICON_SIZE)
            for e in elements
            if zone.contains_y(e.tap_y) and len(e.text) <= p.noise_max_length
        ]
        combined = merge_detections(icons, fragments, radius=p.dedup_radius)
        zone_icons = interpolate_even_spacing(combined, window_width, params=p)
        _log.debug(f"空白区 [{zone.y_start:.0f}, {zone.y_end:.0f}] 检测到 {len(zone_icons)} 个图标")
        found.extend(zone_icons)

    return filter_near_ocr(found, elements, radius=p.ocr_proximity)


__all__ = [
    "find_empty_zones",
    "detect_by_saliency",
    "merge_detections",
    "interpolate_even_spacing",
    "filter_near_ocr",
    "detect_icons",
]
