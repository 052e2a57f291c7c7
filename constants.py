# constants.py
"""
Library-level constants.

These values are the defaults used when a configuration dictionary does
not override them. They are tuning values for the motion core (physics
limits, collision response, modulation rates), not per-scene settings.
"""
import math

# --- Particle defaults ---
DEFAULT_MAX_SPEED = 5.0
DEFAULT_MAX_FORCE = 0.5
DEFAULT_FRICTION = 0.02
DEFAULT_MASS = 1.0
DEFAULT_RADIUS = 10.0

# --- Frame stepping ---
# Frame hitches larger than this are clamped before they reach the physics.
MAX_DELTA_TIME = 0.1
DEFAULT_DELTA_TIME = 1.0 / 60.0
DEFAULT_SUB_STEPS = 2
# Rotation advances in "60 fps frames", so angular velocity is per frame.
ROTATION_FRAME_RATE = 60.0

# --- Collision response ---
# Both are aesthetic knobs: full correction jitters, too little sinks.
DEFAULT_CORRECTION_FACTOR = 0.5
DEFAULT_RESTITUTION = 0.5
# Used when two bodies sit exactly on top of each other.
COINCIDENT_NORMAL = (0.0, 1.0, 0.0)

# --- Boundaries ---
DEFAULT_BOUNCE_DAMPING = 0.8

# --- LFO ---
TWO_PI = 2.0 * math.pi
# The working band of a RandomLFO is this fraction of its value range.
RANDOM_LFO_BAND_RATIO = 0.1
RANDOM_LFO_SUB_RATE_RANGE = (0.01, 0.1)  # 10 s .. 100 s per cycle
RANDOM_LFO_RATE_LFO_RATE = 0.005  # 200 s per cycle
RANDOM_LFO_VALUE_LFO_RATE = 0.003  # ~333 s per cycle

# --- Camera rig ---
CAMERA_MAX_SPEED = 8.0
CAMERA_MAX_FORCE = 2.0
CAMERA_FRICTION = 0.0001
CAMERA_MIN_DISTANCE = 400.0
CAMERA_MAX_DISTANCE = 1500.0
CAMERA_RESET_DISTANCE = 1000.0
CAMERA_IDLE_SPEED = 0.5
CAMERA_IDLE_FORCE = 0.3
CAMERA_FREEZE_DECAY = 0.95
CAMERA_ROTATION_GAIN = 0.01
CAMERA_ROTATION_JITTER = 0.4
DEFAULT_CAMERA_COUNT = 8
