"""内容区域检测：从截图四边向内扫描，找出非暗色内容的边界（像素坐标）。"""
from __future__ import annotations

from typing import Optional

import numpy as np

from ...core.config import settings
from .utils import ImageLike, PixelRect, load_image, to_rgb

# 扫描线位置（占宽/高的比例）
SCANLINE_FRACTIONS = (0.3, 0.4, 0.5, 0.6, 0.7)


def detect_content_bounds(image: ImageLike, *, brightness_threshold: Optional[int] = None) -> PixelRect:
    """检测截图中的内容矩形。

    全黑图像或扫描结果不一致时返回整图矩形。
    """
    rgb = to_rgb(load_image(image))
    height, width = rgb.shape[:2]
    full = PixelRect(0, 0, width, height)
    threshold = settings.brightness_threshold if brightness_threshold is None else brightness_threshold

    # 任一通道超过阈值即视为非暗色
    bright = (rgb > threshold).any(axis=2)

    min_left, max_right = width, 0
    for fraction in SCANLINE_FRACTIONS:
        row = int(height * fraction)
        if not 0 <= row < height:
            continue
        hits = np.flatnonzero(bright[row])
        if hits.size:
            min_left = min(min_left, int(hits[0]))
            max_right = max(max_right, int(hits[-1]) + 1)

    min_top, max_bottom = height, 0
    for fraction in SCANLINE_FRACTIONS:
        col = int(width * fraction)
        if not 0 <= col < width:
            continue
        hits = np.flatnonzero(bright[:, col])
        if hits.size:
            min_top = min(min_top, int(hits[0]))
            max_bottom = max(max_bottom, int(hits[-1]) + 1)

    if max_right == 0 or max_bottom == 0:
        return full
    if min_left >= max_right or min_top >= max_bottom:
        return full
    return PixelRect(min_left, min_top, max_right - min_left, max_bottom - min_top)


__all__ = ["SCANLINE_FRACTIONS", "detect_content_bounds"]
