"""Processing configuration management.

All numeric policy (filter weights, door windows, tolerances, resource
ceilings) lives here so components receive it by injection. The door
windows in particular are tuning values: the defaults follow the most
recent detector, alternatives seen in earlier tuning rounds were
75-105/85-95/60-120 degrees and 300-1200/300-1300/100-5000 mm radii.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


# Layer name keywords scored by the importance filter, checked in order.
# Korean equivalents cover the drawings the detector was tuned on.
LAYER_NAME_SCORES: List[Tuple[Tuple[str, ...], float]] = [
    (("wall", "벽"), 1.0),
    (("door", "문"), 0.9),
    (("window", "창"), 0.9),
    (("room", "방"), 0.8),
    (("text", "dim"), 0.7),
    (("hatch", "해치"), 0.6),
]

LOW_IMPORTANCE_LAYERS = ("0", "defpoints")

TYPE_SCORES: Dict[str, float] = {
    "LINE": 1.0,
    "POLYLINE": 0.95,
    "ARC": 0.9,
    "CIRCLE": 0.85,
    "INSERT": 0.8,
    "TEXT": 0.7,
    "MTEXT": 0.7,
    "ATTDEF": 0.7,
    "ATTRIB": 0.7,
    "HATCH": 0.6,
    "DIMENSION": 0.4,
    "POINT": 0.2,
}

DOOR_KEYWORDS = ["door", "gate", "entrance", "문", "도어", "출입", "porte", "tuer"]

# Room-name keywords, matched as substrings of the lowercased text.
ROOM_KEYWORDS = [
    "화장실", "욕실", "침실", "거실", "주방", "부엌", "다이닝", "서재", "공부방",
    "드레스룸", "발코니", "현관", "팬트리", "세탁실", "계단", "복도", "창고", "실", "방",
    "bathroom", "toilet", "bedroom", "bed room", "living", "kitchen", "dining",
    "study", "dress room", "closet", "walk-in", "balcony", "veranda", "entrance",
    "entry", "foyer", "pantry", "laundry", "utility", "stairs", "stair", "hall",
    "corridor", "storage", "store", "room",
]

# Short abbreviations only match as whole words ("K" but not "KEY").
ROOM_ABBREVIATIONS = ["wc", "br", "lr", "k", "dr"]


@dataclass
class FilterConfig:
    """Importance filter policy."""

    enabled: bool = True
    layer_weight: float = 0.3
    type_weight: float = 0.25
    spatial_weight: float = 0.25
    bbox_weight: float = 0.2
    keep_threshold: float = 0.4

    name_blend: float = 0.7  # layer name vs entity count share
    count_share_factor: float = 5.0
    default_name_score: float = 0.5
    low_name_score: float = 0.3
    unknown_layer_score: float = 0.3
    unknown_type_score: float = 0.5

    grid_size: int = 25
    density_cap: float = 2.0
    arc_segments: int = 8
    outlier_factor: float = 1.5
    outlier_trim: float = 0.02  # share of extreme coordinates ignored for the main area

    layer_name_scores: List[Tuple[Tuple[str, ...], float]] = field(
        default_factory=lambda: list(LAYER_NAME_SCORES)
    )
    low_importance_layers: Tuple[str, ...] = LOW_IMPORTANCE_LAYERS
    type_scores: Dict[str, float] = field(default_factory=lambda: dict(TYPE_SCORES))


@dataclass
class DoorDetectionConfig:
    """Door detection windows and confidences."""

    min_arc_radius: float = 300.0  # mm
    max_arc_radius: float = 1300.0
    min_arc_angle: float = 75.0  # degrees
    max_arc_angle: float = 105.0

    keywords: List[str] = field(default_factory=lambda: list(DOOR_KEYWORDS))

    # rectangular leaf, either orientation
    leaf_short_min: float = 600.0
    leaf_short_max: float = 1200.0
    leaf_long_min: float = 1800.0
    leaf_long_max: float = 2400.0

    arc_confidence: float = 0.9
    insert_confidence: float = 0.8
    insert_with_swing_confidence: float = 0.9
    layer_confidence: float = 0.7
    pattern_confidence: float = 0.6

    dedup_tolerance: float = 100.0  # mm, per axis
    marker_offset_ratio: float = 0.8
    max_block_depth: int = 8

    def arc_radius_window(self) -> Tuple[float, float]:
        return (self.min_arc_radius, self.max_arc_radius)

    def arc_angle_window(self) -> Tuple[float, float]:
        return (self.min_arc_angle, self.max_arc_angle)


@dataclass
class TextConfig:
    """Text discovery settings."""

    room_keywords: List[str] = field(default_factory=lambda: list(ROOM_KEYWORDS))
    room_abbreviations: List[str] = field(default_factory=lambda: list(ROOM_ABBREVIATIONS))
    max_block_depth: int = 8


@dataclass
class ComposerConfig:
    """Vector document composition settings."""

    wall_color: str = "#006400"
    recolor_palette: List[str] = field(default_factory=lambda: [
        "yellow", "Yellow", "#FFFF00", "#ffff00", "rgb(255,255,0)",
        "rgb(65,65,65)", "rgb(128,128,128)", "rgb(169,169,169)",
        "rgb(211,211,211)", "#808080", "#A9A9A9", "#D3D3D3", "#696969",
    ])

    door_color: str = "#ff0000"
    door_label_prefix: str = "D"
    marker_size_ratio: float = 1.2  # of the swing radius
    fixed_marker_size: float = 400.0
    door_label_font_size: float = 120.0

    label_font_size: float = 120.0
    label_color: str = "rgb(0,0,0)"
    room_label_color: str = "rgb(0,0,128)"
    mtext_default_height: float = 100.0
    mtext_height_factor: float = 0.8
    mtext_min_font_ratio: float = 0.015  # of the smaller view dimension
    line_spacing: float = 1.2

    dimension_color: str = "#0000FF"
    view_margin_ratio: float = 0.05
    view_min_margin: float = 50.0
    view_growth_limit: float = 10.0
    min_view_samples: int = 10
    max_block_depth: int = 8


@dataclass
class ResourceLimits:
    """Pipeline resource guards."""

    memory_ceiling_mb: float = 2048.0
    memory_high_water_ratio: float = 0.9
    time_limit_seconds: float = 30.0
    strict_time_limit: bool = False
    conversion_timeout: float = 30.0


@dataclass
class ProcessingConfig:
    """Top-level configuration for a processing run."""

    filter: FilterConfig = field(default_factory=FilterConfig)
    doors: DoorDetectionConfig = field(default_factory=DoorDetectionConfig)
    texts: TextConfig = field(default_factory=TextConfig)
    composer: ComposerConfig = field(default_factory=ComposerConfig)
    limits: ResourceLimits = field(default_factory=ResourceLimits)
    near_right_angle_window: Tuple[float, float] = (80.0, 100.0)
    oda_converter_path: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ProcessingConfig":
        """Load configuration from environment variables."""
        config = cls()

        config.filter.enabled = _env_bool("PLANVIZ_FILTER_ENABLED", True)
        config.filter.keep_threshold = _env_float(
            "PLANVIZ_FILTER_THRESHOLD", config.filter.keep_threshold
        )
        config.filter.outlier_factor = _env_float(
            "PLANVIZ_OUTLIER_FACTOR", config.filter.outlier_factor
        )

        config.doors.min_arc_radius = _env_float("PLANVIZ_DOOR_MIN_RADIUS", config.doors.min_arc_radius)
        config.doors.max_arc_radius = _env_float("PLANVIZ_DOOR_MAX_RADIUS", config.doors.max_arc_radius)
        config.doors.min_arc_angle = _env_float("PLANVIZ_DOOR_MIN_ANGLE", config.doors.min_arc_angle)
        config.doors.max_arc_angle = _env_float("PLANVIZ_DOOR_MAX_ANGLE", config.doors.max_arc_angle)
        config.doors.dedup_tolerance = _env_float(
            "PLANVIZ_DOOR_TOLERANCE", config.doors.dedup_tolerance
        )
        config.doors.keywords = _env_list("PLANVIZ_DOOR_KEYWORDS", config.doors.keywords)
        config.texts.room_keywords = _env_list("PLANVIZ_ROOM_KEYWORDS", config.texts.room_keywords)

        config.composer.wall_color = os.getenv("PLANVIZ_WALL_COLOR", config.composer.wall_color)

        config.limits.memory_ceiling_mb = _env_float(
            "PLANVIZ_MEMORY_CEILING_MB", config.limits.memory_ceiling_mb
        )
        config.limits.time_limit_seconds = _env_float(
            "PLANVIZ_TIME_LIMIT", config.limits.time_limit_seconds
        )
        config.limits.strict_time_limit = _env_bool("PLANVIZ_STRICT_TIME_LIMIT", False)
        config.limits.conversion_timeout = _env_float(
            "PLANVIZ_CONVERSION_TIMEOUT", config.limits.conversion_timeout
        )

        config.oda_converter_path = os.getenv("ODA_FILE_CONVERTER")
        return config
