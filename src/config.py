"""
Centralized configuration for the LabelSense AI front-end.

Values that depend on the deployment are read from environment variables;
everything else is a plain constant. Import from here instead of hardcoding.
"""
import os

# =============================================================================
# INFERENCE SERVICE
# =============================================================================

# Base URL of the defect detection service (exposes POST /predict/)
API_URL = os.getenv('LABELSENSE_API_URL', 'http://localhost:8000').rstrip('/')
PREDICT_PATH = '/predict/'
API_TIMEOUT = float(os.getenv('LABELSENSE_API_TIMEOUT', '30'))  # seconds

# "http" talks to the service, "simulated" uses the canned development results
INFERENCE_MODE = os.getenv('LABELSENSE_INFERENCE', 'http').strip().lower()

# Latency of the simulated backend
SIMULATED_LATENCY = 2.0  # seconds

# =============================================================================
# LOGGING
# =============================================================================

LOG_LEVEL = os.getenv('LABELSENSE_LOG_LEVEL', 'INFO').upper()

# =============================================================================
# UPLOADS
# =============================================================================

MAX_FILE_SIZE = 50 * 1024 * 1024  # 50MB in bytes

# =============================================================================
# COLORS
# =============================================================================

PERFECT_COLOR = '#4ade80'
TYPE1_COLOR = '#f87171'
TYPE2_COLOR = '#fb923c'

GAUGE_COLOR = (62, 152, 199)

# =============================================================================
# OVERLAY
# =============================================================================

CORNER_RADIUS = 10
LINE_WIDTH = 3
GLOW_RADIUS = 10
GRADIENT_OPACITY = (0.6, 0.8)  # start, end
LABEL_FONT_SIZE = 14
LABEL_OFFSET = (5, 5)  # right of the box edge, above the box top

# =============================================================================
# NOTIFICATION
# =============================================================================

NOTIFICATION_DURATION = 2.0  # seconds the "Perfect Label!" notice stays up

# =============================================================================
# CONFIDENCE
# =============================================================================

MIN_CONFIDENCE = 50.0
MAX_CONFIDENCE = 100.0
