from .types import DetectedIcon, EmptyZone, IconParams
from .utils import (
    ImageLike,
    PixelRect,
    PointMapper,
    load_image,
)
from .content_bounds import detect_content_bounds
from .icon_detect import (
    detect_icons,
    find_empty_zones,
    interpolate_even_spacing,
    merge_detections,
    filter_near_ocr,
)

__all__ = [
    "DetectedIcon",
    "EmptyZone",
    "IconParams",
    "ImageLike",
    "PixelRect",
    "PointMapper",
    "load_image",
    "detect_content_bounds",
    "detect_icons",
    "find_empty_zones",
    "interpolate_even_spacing",
    "merge_detections",
    "filter_near_ocr",
]
