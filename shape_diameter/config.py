"""
Configuration for Tiny-Part Support Sampling

Holds the tunables of every stage of the pipeline:
- Edge collapse (minimal edge length, allowed positional error)
- Subdivision (maximal edge length of sampled triangles)
- Ray casting (direction set, back-face and deviation filters)
- Support sampling (thickness to radius mapping, density)

All configs are validated on construction so that malformed ranges never
reach the thickness-to-radius mapping as a division by zero.
"""

import math
from dataclasses import dataclass, field
from functools import cached_property
from typing import Tuple

from shape_diameter.direction_sampling import (
    Direction,
    create_fibonacci_sphere_samples,
    directions_to_array,
)
from shape_diameter.normals import NormalType


# ============================================================================
# DEFAULTS
# ============================================================================

# Ray casting
DEFAULT_RAY_CONE_ANGLE = 120.0          # Full cone angle in degrees
DEFAULT_RAY_COUNT = 60                  # Samples over the whole hemisphere
DEFAULT_ALLOWED_ANGLE = math.pi / 2     # Hit from the back side above 90 deg
DEFAULT_ALLOWED_DEVIATION = 1.5         # Multiplier of standard deviation
DEFAULT_NORMAL_Z_MAX = 0.9              # Skip nearly top-facing vertices
DEFAULT_SAFE_MOVE = 0.1                 # Ray start offset under the surface

# Support sampling (mesh units)
DEFAULT_MIN_WIDTH = 0.1
DEFAULT_MAX_WIDTH = 3.0
DEFAULT_MIN_RADIUS = 0.5
DEFAULT_MAX_RADIUS = 2.0
DEFAULT_MULTIPLICATOR = 1.0
DEFAULT_SAMPLE_NORMAL_Z_MAX = 0.0       # Only downward facing triangles

# Mesh preparation
DEFAULT_MIN_EDGE_LENGTH = 0.1
DEFAULT_MAX_COLLAPSE_ERROR = 0.01
DEFAULT_MAX_SUBDIVISION_LENGTH = 1.0


def _default_directions() -> Tuple[Direction, ...]:
    return tuple(create_fibonacci_sphere_samples(DEFAULT_RAY_CONE_ANGLE, DEFAULT_RAY_COUNT))


@dataclass(frozen=True)
class RaysConfig:
    """Configuration of the thickness ray casting."""
    dirs: Tuple[Direction, ...] = field(default_factory=_default_directions)
    angle_filtering: bool = True
    allowed_angle: float = DEFAULT_ALLOWED_ANGLE      # radians, [0, pi]
    deviation_filtering: bool = True
    allowed_deviation: float = DEFAULT_ALLOWED_DEVIATION
    normal_z_max: float = DEFAULT_NORMAL_Z_MAX
    safe_move: float = DEFAULT_SAFE_MOVE

    def __post_init__(self):
        # Accept any sequence, store an immutable tuple
        object.__setattr__(self, 'dirs', tuple(self.dirs))
        if len(self.dirs) == 0:
            raise ValueError("RaysConfig needs at least one direction")
        if not 0.0 <= self.allowed_angle <= math.pi:
            raise ValueError(f"allowed_angle must be in [0, pi], got {self.allowed_angle}")
        if self.allowed_deviation < 0.0:
            raise ValueError(f"allowed_deviation must be non-negative, got {self.allowed_deviation}")
        if self.safe_move < 0.0:
            raise ValueError(f"safe_move must be non-negative, got {self.safe_move}")

    @cached_property
    def direction_arrays(self):
        """Directions as (dirs (N, 3), weights (N,)) arrays, built once."""
        return directions_to_array(self.dirs)


@dataclass(frozen=True)
class SampleConfig:
    """
    Configuration of support point sampling.

    Thickness in [min_width, max_width] maps linearly onto a support radius
    in [min_radius, max_radius].
    """
    min_width: float = DEFAULT_MIN_WIDTH
    max_width: float = DEFAULT_MAX_WIDTH
    min_radius: float = DEFAULT_MIN_RADIUS
    max_radius: float = DEFAULT_MAX_RADIUS
    multiplicator: float = DEFAULT_MULTIPLICATOR
    normal_z_max: float = DEFAULT_SAMPLE_NORMAL_Z_MAX

    def __post_init__(self):
        if self.max_width <= self.min_width:
            raise ValueError(
                f"max_width ({self.max_width}) must be greater than min_width ({self.min_width})"
            )
        if self.max_radius <= self.min_radius:
            raise ValueError(
                f"max_radius ({self.max_radius}) must be greater than min_radius ({self.min_radius})"
            )
        if self.min_radius <= 0.0:
            raise ValueError(f"min_radius must be positive, got {self.min_radius}")
        if self.multiplicator < 0.0:
            raise ValueError(f"multiplicator must be non-negative, got {self.multiplicator}")

    def width_to_radius(self, width):
        """Linear mapping of thickness to support radius (works on arrays too)."""
        width_range = self.max_width - self.min_width
        radius_range = self.max_radius - self.min_radius
        return (width - self.min_width) / width_range * radius_range + self.min_radius


@dataclass(frozen=True)
class Config:
    """Configuration of the whole tiny-part sampling pipeline."""
    min_length: float = DEFAULT_MIN_EDGE_LENGTH       # Edge collapse
    max_error: float = DEFAULT_MAX_COLLAPSE_ERROR     # Edge collapse
    max_length: float = DEFAULT_MAX_SUBDIVISION_LENGTH  # Subdivision
    normal_type: NormalType = NormalType.ANGLE_WEIGHTED
    rays: RaysConfig = field(default_factory=RaysConfig)
    sample: SampleConfig = field(default_factory=SampleConfig)

    def __post_init__(self):
        if self.max_length <= 0.0:
            raise ValueError(f"max_length must be positive, got {self.max_length}")
        if self.max_error < 0.0:
            raise ValueError(f"max_error must be non-negative, got {self.max_error}")
