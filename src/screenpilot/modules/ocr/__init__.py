from .types import RawTextElement, TapPoint
from .geometry import GeometryParams, compute_tap_points
from .recognize import PerceptionError, recognize_elements
from .engine import get_ocr_engine

__all__ = [
    "RawTextElement",
    "TapPoint",
    "GeometryParams",
    "compute_tap_points",
    "PerceptionError",
    "recognize_elements",
    "get_ocr_engine",
]
