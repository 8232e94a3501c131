"""显著性检测（补充线框风格图标，列投影聚类对这类图标不敏感）。"""
from __future__ import annotations

from typing import List

import cv2  # type: ignore
import numpy as np

from ...core.logger import logger
from .utils import PixelRect

_log = logger.bind(module="Saliency")


def salient_regions(crop: np.ndarray) -> List[PixelRect]:
    """对裁剪后的 BGR 图像做谱残差显著性检测，返回显著区域外接矩形（像素坐标）。"""
    if crop.size == 0:
        return []
    detector = cv2.saliency.StaticSaliencySpectralResidual_create()
    ok, saliency_map = detector.computeSaliency(crop)
    if not ok:
        _log.debug("显著性检测失败")
        return []

    sal = np.clip(saliency_map * 255, 0, 255).astype(np.uint8)
    _, mask = cv2.threshold(sal, 0, 255, cv2.THRESH_BINARY | cv2.THRESH_OTSU)
    contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)
    return [PixelRect(*cv2.boundingRect(c)) for c in contours]


__all__ = ["salient_regions"]
