"""
屏幕感知：截图 → OCR → 点击坐标 → 图标检测

一次 describe() 即一次完整的感知过程。任何截图/识别失败都记录警告并返回 None，
由执行引擎把 None 转换为失败的步骤结果。
"""
from __future__ import annotations

from typing import Callable, List, Optional, Sequence, Tuple

from ...core.logger import logger
from ..ocr.geometry import GeometryParams, compute_tap_points
from ..ocr.recognize import PerceptionError, recognize_elements
from ..ocr.types import RawTextElement, TapPoint
from ..vision.icon_detect import detect_icons
from ..vision.types import DetectedIcon, IconParams
from .types import DescribeResult, ScreenCapturer, ScreenDescriber, WindowBridge

Recognizer = Callable[[bytes, Tuple[float, float]], List[RawTextElement]]
IconDetector = Callable[[bytes, Sequence[TapPoint], Tuple[float, float]], List[DetectedIcon]]


class OcrScreenDescriber:
    """基于 PaddleOCR 的感知实现。

    Args:
        bridge: 提供窗口尺寸
        capturer: 提供 PNG 截图
        recognizer: 截图 → RawTextElement，默认 recognize_elements
        icon_detector: 图标检测，传 None 关闭
    """

    def __init__(
        self,
        bridge: WindowBridge,
        capturer: ScreenCapturer,
        *,
        recognizer: Recognizer = recognize_elements,
        icon_detector: Optional[IconDetector] = None,
        geometry: Optional[GeometryParams] = None,
        icon_params: Optional[IconParams] = None,
        detect_icon_glyphs: bool = True,
    ) -> None:
        self._bridge = bridge
        self._capturer = capturer
        self._recognizer = recognizer
        self._geometry = geometry
        if icon_detector is None and detect_icon_glyphs:
            params = icon_params

            def icon_detector(png, elements, size):
                return detect_icons(png, elements, size, params=params)

        self._icon_detector = icon_detector
        self._log = logger.bind(module="ScreenDescriber")

    def describe(self) -> Optional[DescribeResult]:
        info = self._bridge.get_window_info()
        if info is None:
            self._log.warning(f"无法获取窗口信息: {self._bridge.target_name}")
            return None

        png = self._capturer.capture_png()
        if not png:
            self._log.warning("截图失败")
            return None

        size = (info.width, info.height)
        try:
            raw = self._recognizer(png, size)
        except PerceptionError as e:
            self._log.warning(f"OCR 识别失败: {e}")
            return None

        elements = compute_tap_points(raw, info.width, params=self._geometry)
        icons: List[DetectedIcon] = []
        if self._icon_detector is not None:
            icons = self._icon_detector(png, elements, size)

        self._log.debug(f"识别到 {len(elements)} 个文字元素, {len(icons)} 个图标")
        return DescribeResult(elements=elements, icons=icons, screenshot=png)


class RecordingDescriber:
    """包装另一个 describer，记住最近一次结果（学习运行用来生成 hints）。"""

    def __init__(self, wrapped: ScreenDescriber) -> None:
        self._wrapped = wrapped
        self.last_result: Optional[DescribeResult] = None
        self.call_count = 0

    def describe(self) -> Optional[DescribeResult]:
        result = self._wrapped.describe()
        self.last_result = result
        self.call_count += 1
        return result


__all__ = ["OcrScreenDescriber", "RecordingDescriber"]
