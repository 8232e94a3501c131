"""核心 OCR 识别函数：截图 → RawTextElement 列表（窗口坐标）。"""
from __future__ import annotations

from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ...core.config import settings
from ..vision.content_bounds import detect_content_bounds
from ..vision.utils import ImageLike, PointMapper, load_image
from .engine import acquire_ocr
from .types import RawTextElement

# 原始识别结果：(text, confidence, 四点多边形像素坐标)
RawDetection = Tuple[str, float, Sequence[Sequence[float]]]


class PerceptionError(RuntimeError):
    """截图或 OCR 识别不可用。"""


def paddle_detections(image: np.ndarray) -> List[RawDetection]:
    """执行 PaddleOCR 推理，返回原始识别结果（像素坐标）。"""
    try:
        engine, lock = acquire_ocr()
    except Exception as e:
        raise PerceptionError(f"OCR 引擎不可用: {e}") from e

    try:
        # PaddleOCR 3.x: predict() 接受 BGR ndarray，返回 OCRResult 列表
        with lock:
            results = engine.predict(image)
    except Exception as e:
        raise PerceptionError(f"OCR 推理失败: {e}") from e

    detections: List[RawDetection] = []
    if results:
        result = results[0]
        for text, score, poly in zip(result["rec_texts"], result["rec_scores"], result["rec_polys"]):
            detections.append((str(text), float(score), [(float(p[0]), float(p[1])) for p in poly]))
    return detections


def to_elements(
    detections: Iterable[RawDetection],
    mapper: PointMapper,
    *,
    min_confidence: float,
) -> List[RawTextElement]:
    """把像素多边形换算为窗口坐标的 RawTextElement。"""
    elements: List[RawTextElement] = []
    for text, confidence, poly in detections:
        if confidence < min_confidence or not text.strip() or not poly:
            continue
        xs = [p[0] for p in poly]
        ys = [p[1] for p in poly]
        left, top = mapper.pixel_to_window(min(xs), min(ys))
        right, bottom = mapper.pixel_to_window(max(xs), max(ys))
        elements.append(RawTextElement(
            text=text,
            tap_x=(left + right) / 2.0,
            text_top_y=top,
            text_bottom_y=bottom,
            bbox_width=right - left,
            confidence=confidence,
        ))
    return elements


def recognize_elements(
    image: ImageLike,
    window_size: Tuple[float, float],
    *,
    min_confidence: Optional[float] = None,
    detector: Callable[[np.ndarray], List[RawDetection]] = paddle_detections,
) -> List[RawTextElement]:
    """对截图执行 OCR，返回窗口坐标下的文本元素。

    Args:
        image: 截图（路径 / bytes / BGR ndarray）
        window_size: 窗口尺寸 (宽, 高)，单位：点
        min_confidence: 最低置信度，默认 settings.ocr_min_confidence
        detector: 原始识别函数，默认 PaddleOCR

    Raises:
        PerceptionError: 图像无法解码或 OCR 不可用
    """
    try:
        img = load_image(image)
    except (ValueError, TypeError, FileNotFoundError) as e:
        raise PerceptionError(f"截图无法解码: {e}") from e

    mapper = PointMapper.build(img.shape[1], detect_content_bounds(img), window_size)
    threshold = settings.ocr_min_confidence if min_confidence is None else min_confidence
    return to_elements(detector(img), mapper, min_confidence=threshold)
