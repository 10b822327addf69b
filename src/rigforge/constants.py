"""Shared constants and paths for RigForge."""

from pathlib import Path

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent.parent
ASSETS_DIR = PROJECT_ROOT / "assets"
CONFIG_DIR = ASSETS_DIR / "config"
RIG_CONFIG_DIR = CONFIG_DIR / "rigs"

# Numeric tolerance shared by kinematics, IK and picking
EPSILON = 1e-5

# Parent index of a root bone / "no selection" sentinel
NO_PARENT = -1
NO_BONE = -1

# Picking cylinder radius (world units)
PICK_RADIUS = 0.1

# Skinning shader uniform arrays (jTrans[64], jRots[64])
MAX_SHADER_JOINTS = 64
MAX_INFLUENCES = 4

# Manipulation speeds (per pixel of mouse travel / per key press)
ROTATION_SPEED = 0.05
ROLL_SPEED = 0.1
TRANSLATE_SPEED = 0.01

# Animation defaults
TARGET_FPS = 60
MAX_DELTA_TIME = 0.1  # Clamp dt to avoid large jumps
PLAYBACK_SPEED = 1.0  # Keyframes per second
