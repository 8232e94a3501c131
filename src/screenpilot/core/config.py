"""
核心配置模块
"""
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """系统配置"""

    # 日志
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_path: str = Field(default="./logs", env="LOG_PATH")
    log_retention_days: int = Field(default=3, env="LOG_RETENTION_DAYS")
    log_console_enabled: bool = Field(default=True, env="LOG_CONSOLE_ENABLED")
    log_file_enabled: bool = Field(default=True, env="LOG_FILE_ENABLED")

    # OCR
    paddle_ocr_lang: str = Field(default="en", env="PADDLE_OCR_LANG")
    ocr_min_confidence: float = Field(default=0.5, env="OCR_MIN_CONFIDENCE")

    # ADB 目标
    adb_path: str = Field(default="adb", env="ADB_PATH")
    adb_serial: str = Field(default="", env="ADB_SERIAL")
    # 设备像素 / 窗口坐标点
    adb_point_scale: float = Field(default=1.0, env="ADB_POINT_SCALE")

    # 点击坐标计算
    tap_max_label_length: int = Field(default=15, env="TAP_MAX_LABEL_LENGTH")
    tap_max_label_width_fraction: float = Field(default=0.4, env="TAP_MAX_LABEL_WIDTH_FRACTION")
    tap_min_gap_for_offset: float = Field(default=50.0, env="TAP_MIN_GAP_FOR_OFFSET")
    tap_icon_row_min_labels: int = Field(default=3, env="TAP_ICON_ROW_MIN_LABELS")
    tap_icon_offset: float = Field(default=30.0, env="TAP_ICON_OFFSET")
    tap_row_tolerance: float = Field(default=10.0, env="TAP_ROW_TOLERANCE")

    # 图标检测
    brightness_threshold: int = Field(default=30, env="BRIGHTNESS_THRESHOLD")
    icon_bottom_zone_fraction: float = Field(default=0.15, env="ICON_BOTTOM_ZONE_FRACTION")
    icon_top_zone_fraction: float = Field(default=0.12, env="ICON_TOP_ZONE_FRACTION")
    icon_top_zone_start: float = Field(default=50.0, env="ICON_TOP_ZONE_START")
    icon_min_zone_height: float = Field(default=30.0, env="ICON_MIN_ZONE_HEIGHT")
    icon_max_zone_elements: int = Field(default=1, env="ICON_MAX_ZONE_ELEMENTS")
    icon_noise_max_length: int = Field(default=1, env="ICON_NOISE_MAX_LENGTH")
    icon_color_threshold: int = Field(default=30, env="ICON_COLOR_THRESHOLD")
    icon_corner_inset_px: int = Field(default=20, env="ICON_CORNER_INSET_PX")
    icon_bar_row_bg_fraction: float = Field(default=0.7, env="ICON_BAR_ROW_BG_FRACTION")
    icon_smoothing_window: int = Field(default=5, env="ICON_SMOOTHING_WINDOW")
    icon_min_column_density: int = Field(default=3, env="ICON_MIN_COLUMN_DENSITY")
    icon_min_cluster_width: int = Field(default=10, env="ICON_MIN_CLUSTER_WIDTH")
    icon_max_cluster_width: int = Field(default=80, env="ICON_MAX_CLUSTER_WIDTH")
    icon_saliency_min_zone: float = Field(default=40.0, env="ICON_SALIENCY_MIN_ZONE")
    icon_max_saliency_size: float = Field(default=60.0, env="ICON_MAX_SALIENCY_SIZE")
    icon_min_for_interpolation: int = Field(default=3, env="ICON_MIN_FOR_INTERPOLATION")
    icon_spacing_tolerance: float = Field(default=0.25, env="ICON_SPACING_TOLERANCE")
    icon_dedup_radius: float = Field(default=20.0, env="ICON_DEDUP_RADIUS")
    icon_ocr_proximity: float = Field(default=20.0, env="ICON_OCR_PROXIMITY")

    # 文本匹配
    matcher_fuzzy_threshold: float = Field(default=80.0, env="MATCHER_FUZZY_THRESHOLD")
    matcher_fuzzy_min_length: int = Field(default=3, env="MATCHER_FUZZY_MIN_LENGTH")

    # 步骤执行
    wait_for_timeout_seconds: int = Field(default=15, env="WAIT_FOR_TIMEOUT_SECONDS")
    step_settling_delay_ms: int = Field(default=500, env="STEP_SETTLING_DELAY_MS")
    wait_for_poll_interval: float = Field(default=1.0, env="WAIT_FOR_POLL_INTERVAL")
    measure_poll_interval: float = Field(default=0.5, env="MEASURE_POLL_INTERVAL")
    compiled_sleep_buffer_ms: int = Field(default=500, env="COMPILED_SLEEP_BUFFER_MS")
    swipe_distance_fraction: float = Field(default=0.3, env="SWIPE_DISTANCE_FRACTION")
    swipe_duration_ms: int = Field(default=300, env="SWIPE_DURATION_MS")
    scroll_max_attempts: int = Field(default=10, env="SCROLL_MAX_ATTEMPTS")
    app_switcher_card_offset: float = Field(default=100.0, env="APP_SWITCHER_CARD_OFFSET")
    app_switcher_swipe_distance: float = Field(default=300.0, env="APP_SWITCHER_SWIPE_DISTANCE")
    app_switcher_swipe_duration_ms: int = Field(default=200, env="APP_SWITCHER_SWIPE_DURATION_MS")
    settings_load_seconds: float = Field(default=1.5, env="SETTINGS_LOAD_SECONDS")
    screenshot_dir: str = Field(default="./screenpilot-results", env="SCREENSHOT_DIR")

    # AI 诊断
    agent_profile_dirs: str = Field(
        default="./.screenpilot/agents,~/.screenpilot/agents", env="AGENT_PROFILE_DIRS"
    )
    agent_max_tokens: int = Field(default=1024, env="AGENT_MAX_TOKENS")
    anthropic_timeout_sec: int = Field(default=30, env="ANTHROPIC_TIMEOUT_SEC")
    openai_timeout_sec: int = Field(default=30, env="OPENAI_TIMEOUT_SEC")
    ollama_timeout_sec: int = Field(default=120, env="OLLAMA_TIMEOUT_SEC")

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def agent_profile_dir_list(self) -> List[str]:
        """获取 agent 配置目录列表"""
        return [d.strip() for d in self.agent_profile_dirs.split(",") if d.strip()]


# 全局配置实例
settings = Settings()
