"""
Data models for the LabelSense AI application.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from src import config
from src.errors import InvalidResponseError

DEFECT_CLASSES = (0, 1, 2)

PERFECT = 'Perfect Labels'
TYPE1 = 'Type 1 Defects'
TYPE2 = 'Type 2 Defects'

CLASS_COLORS = {
    1: config.TYPE1_COLOR,
    2: config.TYPE2_COLOR,
}


@dataclass(frozen=True)
class Detection:
    """One predicted bounding box, geometry normalized to the image size."""
    class_id: int  # 0 = no-defect region, 1 / 2 = defect types
    x_center: float
    y_center: float
    width: float
    height: float

    @property
    def is_defect(self) -> bool:
        return self.class_id != 0

    @property
    def label(self) -> str:
        return f"Type {self.class_id} Defect"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Detection':
        """
        Build a detection from its wire form.

        Args:
            data: Mapping with keys class, x_center, y_center, width, height

        Returns:
            Detection

        Raises:
            InvalidResponseError: if a key is missing or a value is out of range
        """
        if not isinstance(data, dict):
            raise InvalidResponseError(f"detection must be an object, got {type(data).__name__}")

        try:
            class_id = data['class']
            geometry = [data[key] for key in ('x_center', 'y_center', 'width', 'height')]
        except KeyError as e:
            raise InvalidResponseError(f"detection is missing field {e}") from e

        if isinstance(class_id, bool) or class_id not in DEFECT_CLASSES:
            raise InvalidResponseError(f"unknown detection class: {class_id!r}")

        for value in geometry:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise InvalidResponseError(f"detection geometry must be numeric, got {value!r}")
            if not 0.0 <= value <= 1.0:
                raise InvalidResponseError(f"detection geometry out of [0, 1]: {value!r}")

        return cls(int(class_id), *(float(v) for v in geometry))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'class': self.class_id,
            'x_center': self.x_center,
            'y_center': self.y_center,
            'width': self.width,
            'height': self.height,
        }


@dataclass(frozen=True)
class DetectionResult:
    """Everything the detection service says about one image."""
    detections: Tuple[Detection, ...]
    confidence: float  # 0 to 100, one decimal

    @property
    def is_perfect(self) -> bool:
        return not any(d.is_defect for d in self.detections)


@dataclass(frozen=True)
class DefectStat:
    """Running count for one outcome category."""
    name: str
    value: int
    color: str


def initial_stats() -> Tuple[DefectStat, DefectStat, DefectStat]:
    """The three fixed categories, all at zero."""
    return (
        DefectStat(PERFECT, 0, config.PERFECT_COLOR),
        DefectStat(TYPE1, 0, config.TYPE1_COLOR),
        DefectStat(TYPE2, 0, config.TYPE2_COLOR),
    )


@dataclass(frozen=True)
class SessionState:
    """Complete state of one analysis session. Never mutated in place."""
    total_analyzed: int = 0
    stats: Tuple[DefectStat, ...] = field(default_factory=initial_stats)
    confidence: float = 0.0
    image_bytes: Optional[bytes] = None
    detections: Tuple[Detection, ...] = ()
    processing: bool = False
    pending_image: Optional[bytes] = None
    result_id: int = 0
    error: Optional[str] = None

    @property
    def has_image(self) -> bool:
        return self.image_bytes is not None

    @property
    def is_perfect(self) -> bool:
        return not any(d.is_defect for d in self.detections)
