"""Shared constants and defaults for SkinForge."""

from pathlib import Path

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"

# Influence limiting defaults
DEFAULT_MAX_INFLUENCES = 4  # GPU skinning pipelines pack 4 bone indices/weights per vertex
REMOVE_EMPTY_BONES = True

# Renormalized weight sums must land within this of 1.0
WEIGHT_SUM_TOLERANCE = 1e-5
