"""
Session report export.
"""
import io
import json
from datetime import datetime
from typing import Any, Dict, Optional

import numpy as np
from PIL import Image

from src import defect_stats
from src.models import SessionState


def build_report(state: SessionState, generated_at: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Summarize the session: totals, per-category counts and shares, and the
    latest result.
    """
    generated_at = generated_at or datetime.now()
    return {
        'generated_at': generated_at.isoformat(timespec='seconds'),
        'total_analyzed': state.total_analyzed,
        'categories': [
            {
                'name': stat.name,
                'count': stat.value,
                'share': defect_stats.share(stat, state.total_analyzed),
                'color': stat.color,
            }
            for stat in state.stats
        ],
        'latest': {
            'confidence': state.confidence,
            'perfect': state.is_perfect,
            'detections': [d.to_dict() for d in state.detections],
        } if state.has_image else None,
    }


def report_json(state: SessionState, generated_at: Optional[datetime] = None) -> str:
    return json.dumps(build_report(state, generated_at), indent=2)


def report_filename(kind: str, extension: str, now: Optional[datetime] = None) -> str:
    """labelsense_report_20260101_120000.json"""
    timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    return f"labelsense_{kind}_{timestamp}.{extension}"


def png_bytes(image: np.ndarray) -> bytes:
    buffer = io.BytesIO()
    Image.fromarray(image).save(buffer, format='PNG')
    return buffer.getvalue()
