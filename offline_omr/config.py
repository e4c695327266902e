# /offline_omr/config.py
"""
Configuration constants for the offline OMR grading pipeline.
"""
import os

# --- Core Paths ---
# Base directory is one level up from the package directory where this file lives
BASE_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))

INPUT_DIR = os.path.join(BASE_DIR, 'omr_input')
OUTPUT_VISUAL_DIR = os.path.join(BASE_DIR, 'graded_output')
CSV_DIR = os.path.join(BASE_DIR, 'csv_data')

MASTER_ANSWERS_PATH = os.path.join(CSV_DIR, 'master_answers.csv')
STUDENT_RESULTS_DIR = os.path.join(CSV_DIR, 'student_results')
LAYOUT_PATH = os.path.join(INPUT_DIR, 'layout.json')
ATTEMPTS_PATH = os.path.join(CSV_DIR, 'offline_attempts.json')

IMAGE_EXTENSIONS = ('*.png', '*.jpg', '*.jpeg')


# --- Logging ---
LOG_FORMAT = '[%(asctime)s] %(levelname)s %(name)s: %(message)s'
LOG_DATE_FORMAT = '%H:%M:%S'


# --- Preprocessing Defaults ---
DEFAULT_ROTATION = 0
DEFAULT_BRIGHTNESS = 100
DEFAULT_CONTRAST = 100
DEFAULT_THRESHOLD = 128
ROTATION_STEP = 90
# Midpoint the contrast filter pivots around
CONTRAST_PIVOT = 128
# The quad-to-rectangle warp is opt-in; by default perspective settings are
# accepted but not applied.
PERSPECTIVE_WARP_ENABLED = False


# --- Grid Layout Parameters ---
MAX_QUESTIONS = 20
CHOICES_PER_QUESTION = 5
GRID_START_X_RATIO = 0.2   # fraction of image width
GRID_START_Y_RATIO = 0.3   # fraction of image height
GRID_ROW_HEIGHT = 40       # pixels between question rows
GRID_CIRCLE_SPACING = 30   # pixels between choices
GRID_CIRCLE_RADIUS = 12


# --- Answer Extraction Parameters ---
# Grayscale value below which a sampled pixel counts as dark.
FILL_DARK_THRESHOLD = 128
# A bubble is filled when more than this fraction of its pixels are dark.
FILL_RATIO_THRESHOLD = 0.5
# Identity fields are not read from the sheet; the reviewer must replace this.
STUDENT_INFO_PLACEHOLDER = 'Not entered'


# --- Attempt Record Defaults ---
DEFAULT_CANDIDATE_SYSTEM = 'KR'
DEFAULT_CANDIDATE_GRADE = 'High School Year 1'
ATTEMPT_STATUS_COMPLETED = 'completed'


# --- Visualization Parameters ---
VIS_FILLED_COLOR = (94, 197, 34)     # Green (BGR)
VIS_EMPTY_COLOR = (68, 68, 239)      # Red (BGR)
VIS_THICKNESS_FILLED = 3
VIS_THICKNESS_EMPTY = 1
