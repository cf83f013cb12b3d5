"""Central configuration for recipe card preprocessing.

All tunable parameters are defined here with descriptive names.
These values can be adjusted to fine-tune preprocessing before OCR.
"""

# =============================================================================
# TEXT SCALING
# =============================================================================

# Character height (pixels) the OCR engine reads most reliably
DEFAULT_TARGET_CHAR_HEIGHT = 28

# Allowed range for a custom target character height
MIN_TARGET_CHAR_HEIGHT = 20
MAX_TARGET_CHAR_HEIGHT = 35

# Bounds for the estimated text height (pixels)
MIN_ESTIMATED_TEXT_HEIGHT = 10
MAX_ESTIMATED_TEXT_HEIGHT = 150

# Basic scaling: estimated text height is image height divided by this
BASIC_TEXT_HEIGHT_DIVISOR = 15

# Basic scaling factor limits
MIN_SCALE_FACTOR = 0.5
MAX_SCALE_FACTOR = 3.0

# Pixel-count buckets for OCR scaling
SMALL_IMAGE_PIXELS = 100_000
LARGE_IMAGE_PIXELS = 2_000_000

# Scale factor clamps per pixel-count bucket (min, max)
SMALL_IMAGE_SCALE_BOUNDS = (0.8, 4.0)
LARGE_IMAGE_SCALE_BOUNDS = (0.3, 2.0)
DEFAULT_SCALE_BOUNDS = (0.5, 3.0)

# =============================================================================
# NOISE REDUCTION
# =============================================================================

# Gaussian sigma used by the adaptive pipeline
DENOISE_SIGMA = 1.0

# Largest sigma accepted (exclusive lower bound is 0)
MAX_DENOISE_SIGMA = 5.0

# =============================================================================
# CLAHE (local contrast enhancement)
# =============================================================================

CLAHE_CLIP_LIMIT = 2.0
CLAHE_TILE_SIZE = (8, 8)

# =============================================================================
# QUALITY ASSESSMENT
# =============================================================================

# Composite score at or above which an image is HIGH quality
HIGH_QUALITY_SCORE = 0.7

# Composite score at or above which an image is MEDIUM quality
MEDIUM_QUALITY_SCORE = 0.4

# Laplacian energy that maps to a sharpness of 1.0
SHARPNESS_NORMALIZER = 1000.0

# =============================================================================
# DESKEWING
# =============================================================================

# Coarse search: -DESKEW_MAX_ANGLE..DESKEW_MAX_ANGLE in DESKEW_COARSE_STEP steps
DESKEW_MAX_ANGLE = 10.0
DESKEW_COARSE_STEP = 0.5

# Fine search around the coarse best angle
DESKEW_FINE_SPAN = 0.5
DESKEW_FINE_STEP = 0.1

# Angles (degrees) below this are not corrected
DESKEW_MIN_CORRECTION = 0.5

# Image area (pixels) at which size stops contributing to confidence
DESKEW_CONFIDENCE_AREA = 100_000

# =============================================================================
# MEASUREMENT REGIONS
# =============================================================================

# Fixed upscale for small quantity/fraction crops
TARGETED_SCALE_FACTOR = 2.5

# Share of the OCR line width that holds the leading quantity
MEASUREMENT_CROP_WIDTH_RATIO = 0.20

# Padding (pixels) around a measurement crop
MEASUREMENT_CROP_PADDING = 7

# =============================================================================
# BATCH PROCESSING
# =============================================================================

# Upper bound on worker threads for batch preprocessing
MAX_BATCH_WORKERS = 8
