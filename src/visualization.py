"""
Visualization module for detection results: the annotated label image,
the statistics donut and the confidence gauge.
"""
from typing import Iterable, Optional, Sequence, Tuple, Union

import cv2
import numpy as np
from PIL import Image, ImageDraw, ImageFont

from src import config
from src.image_handler import ImagePreprocessor
from src.models import CLASS_COLORS, DefectStat, Detection

Box = Tuple[float, float, float, float]


def hex_to_rgb(color: str) -> Tuple[int, int, int]:
    """'#f87171' -> (248, 113, 113)"""
    color = color.lstrip('#')
    return tuple(int(color[i:i + 2], 16) for i in (0, 2, 4))


def to_pixel_box(detection: Detection, width: int, height: int) -> Box:
    """
    Convert a normalized center/size detection into a pixel rectangle.

    Args:
        detection: Detection with geometry in [0, 1]
        width: Surface width in pixels
        height: Surface height in pixels

    Returns:
        (x, y, w, h) with (x, y) the top-left corner
    """
    x = (detection.x_center - detection.width / 2) * width
    y = (detection.y_center - detection.height / 2) * height
    w = detection.width * width
    h = detection.height * height
    return x, y, w, h


def _load_font(size: int):
    try:
        return ImageFont.truetype("DejaVuSans-Bold.ttf", size)
    except OSError:
        return ImageFont.load_default()


class DetectionVisualizer:
    """Draws detections and session statistics as images."""

    def __init__(self,
                 corner_radius: int = config.CORNER_RADIUS,
                 line_width: int = config.LINE_WIDTH,
                 glow_radius: int = config.GLOW_RADIUS):
        self.corner_radius = corner_radius
        self.line_width = line_width
        self.glow_radius = glow_radius
        self.label_font = _load_font(config.LABEL_FONT_SIZE)

    def render(self, image: Union[Image.Image, np.ndarray, None],
               detections: Iterable[Detection]) -> Optional[np.ndarray]:
        """
        Draw rounded, glowing boxes and labels for every defect detection.

        The surface has the native size of the image. Detections of class 0
        mark clean regions and are not drawn.

        Args:
            image: Uploaded image (PIL or numpy); None gives None
            detections: Detections for this image

        Returns:
            Annotated RGB image array, or None when there is nothing to draw on
        """
        if image is None:
            return None

        base = ImagePreprocessor.to_rgb_array(image)
        height, width = base.shape[:2]
        defects = [d for d in detections if d.is_defect]
        if not defects:
            return base

        annotated = base.astype(np.float32)
        labels = []
        for detection in defects:
            color = np.array(hex_to_rgb(CLASS_COLORS[detection.class_id]), dtype=np.float32)
            box = to_pixel_box(detection, width, height)

            stroke = self._stroke_mask((height, width), box) * self._gradient_alpha((height, width), box)

            # Glow first so the crisp stroke sits on top of it
            sigma = self.glow_radius / 2
            glow = cv2.GaussianBlur(stroke, (0, 0), sigmaX=sigma, sigmaY=sigma)
            annotated = self._blend(annotated, glow, color)
            annotated = self._blend(annotated, stroke, color)

            labels.append((detection.label, box, tuple(int(c) for c in color)))

        annotated = np.clip(annotated, 0, 255).astype(np.uint8)

        # Text goes through PIL for antialiased font rendering
        pil_image = Image.fromarray(annotated)
        draw = ImageDraw.Draw(pil_image)
        offset_x, offset_y = config.LABEL_OFFSET
        for label, (x, y, _, _), color in labels:
            bottom = self.label_font.getbbox(label)[3]
            draw.text((x + offset_x, y - offset_y - bottom), label, fill=color, font=self.label_font)

        return np.array(pil_image)

    def _stroke_mask(self, shape: Tuple[int, int], box: Box) -> np.ndarray:
        """Coverage (0..1) of the rounded rectangle outline."""
        height, width = shape
        x, y, w, h = box
        x0, y0 = int(round(x)), int(round(y))
        x1, y1 = max(x0, int(round(x + w))), max(y0, int(round(y + h)))
        radius = max(0, min(self.corner_radius, (x1 - x0) // 2, (y1 - y0) // 2))

        mask = Image.new('L', (width, height), 0)
        ImageDraw.Draw(mask).rounded_rectangle(
            [x0, y0, x1, y1], radius=radius, outline=255, width=self.line_width
        )
        return np.asarray(mask, dtype=np.float32) / 255.0

    @staticmethod
    def _gradient_alpha(shape: Tuple[int, int], box: Box) -> np.ndarray:
        """Opacity ramp along the box diagonal, from top-left to bottom-right."""
        height, width = shape
        x, y, w, h = box
        start, end = config.GRADIENT_OPACITY

        norm = w * w + h * h
        if norm == 0:
            return np.full(shape, start, dtype=np.float32)

        xs = np.arange(width, dtype=np.float32)[None, :]
        ys = np.arange(height, dtype=np.float32)[:, None]
        t = ((xs - x) * w + (ys - y) * h) / norm
        return (start + (end - start) * np.clip(t, 0.0, 1.0)).astype(np.float32)

    @staticmethod
    def _blend(image: np.ndarray, alpha: np.ndarray, color: np.ndarray) -> np.ndarray:
        alpha = alpha[:, :, None]
        return image * (1 - alpha) + color * alpha

    def create_stats_donut(self, stats: Sequence[DefectStat], size: int = 200,
                           inner_radius: int = 45, outer_radius: int = 80,
                           padding_angle: float = 2.0) -> np.ndarray:
        """
        Render the outcome counters as a donut chart.

        Args:
            stats: The (perfect, type 1, type 2) counters
            size: Edge length of the square output
            inner_radius: Radius of the hole
            outer_radius: Radius of the ring
            padding_angle: Gap in degrees between adjacent slices

        Returns:
            RGBA image array with a transparent background
        """
        chart = Image.new('RGBA', (size, size), (0, 0, 0, 0))
        draw = ImageDraw.Draw(chart)
        center = size / 2
        outer = [center - outer_radius, center - outer_radius,
                 center + outer_radius, center + outer_radius]
        inner = [center - inner_radius, center - inner_radius,
                 center + inner_radius, center + inner_radius]

        slices = [stat for stat in stats if stat.value > 0]
        total = sum(stat.value for stat in slices)

        if not slices:
            draw.ellipse(outer, fill=(255, 255, 255, 51))
        elif len(slices) == 1:
            draw.ellipse(outer, fill=hex_to_rgb(slices[0].color) + (255,))
        else:
            start = -90.0
            for stat in slices:
                extent = stat.value / total * 360
                if extent > padding_angle:
                    draw.pieslice(outer, start + padding_angle / 2, start + extent - padding_angle / 2,
                                  fill=hex_to_rgb(stat.color) + (255,))
                start += extent

        # ImageDraw writes RGBA values directly, so this punches a real hole
        draw.ellipse(inner, fill=(0, 0, 0, 0))
        return np.array(chart)

    def create_confidence_gauge(self, confidence: float, size: int = 192,
                                ring_width: int = 12) -> np.ndarray:
        """
        Render the confidence score as a circular progress ring.

        The ring starts at 12 o'clock and its opacity follows the score.

        Returns:
            RGBA image array with a transparent background
        """
        confidence = max(0.0, min(100.0, float(confidence)))
        gauge = Image.new('RGBA', (size, size), (0, 0, 0, 0))
        draw = ImageDraw.Draw(gauge)
        margin = ring_width // 2 + 1
        bbox = [margin, margin, size - margin, size - margin]

        draw.arc(bbox, 0, 360, fill=(255, 255, 255, 51), width=ring_width)
        if confidence > 0:
            path_color = config.GAUGE_COLOR + (int(round(255 * confidence / 100)),)
            draw.arc(bbox, -90, -90 + 360 * confidence / 100, fill=path_color, width=ring_width)

        text = f"{confidence:g}%"
        font = _load_font(size // 6)
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        draw.text(((size - (right - left)) / 2 - left, (size - (bottom - top)) / 2 - top),
                  text, fill=(255, 255, 255, 255), font=font)
        return np.array(gauge)

