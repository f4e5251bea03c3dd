"""
Monotonic scaling laws shared by node heights and edge widths.

Each law maps a normalized value t in [0, 1] onto [lo, hi]:
- linear:       lo + t * (hi - lo)
- logarithmic:  lo + ln(4t + 1) / ln(5) * (hi - lo)
- square-root:  lo + sqrt(t) * (hi - lo)
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Union
import math

import numpy as np

from .model import ConfigurationError, MAX_WEIGHT


MIN_NODE_HEIGHT = 20.0
MAX_NODE_HEIGHT = 80.0
MIN_EDGE_WIDTH = 2.0
MAX_EDGE_WIDTH = 30.0

_LOG5 = math.log(5)


class ScalingMode(str, Enum):
    """Available scaling laws."""
    linear = 'linear'
    logarithmic = 'logarithmic'
    square_root = 'square-root'

    @classmethod
    def parse(cls, value: Any) -> ScalingMode:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(f"unknown scaling mode: {value!r}") from None


def scale_values(
    t: Union[np.ndarray, list[float]],
    mode: Union[ScalingMode, str] = ScalingMode.linear,
    lo: float = MIN_NODE_HEIGHT,
    hi: float = MAX_NODE_HEIGHT
) -> np.ndarray:
    """
    Vectorized scaling of normalized values.

    Args:
        t: Normalized values, clipped to [0, 1]
        mode: Scaling law
        lo: Output at t = 0
        hi: Output at t = 1

    Returns:
        Array of scaled values, clipped to [lo, hi]
    """
    mode = ScalingMode.parse(mode)
    t = np.clip(np.asarray(t, dtype=float), 0.0, 1.0)

    if mode is ScalingMode.logarithmic:
        f = np.log1p(4.0 * t) / _LOG5
    elif mode is ScalingMode.square_root:
        f = np.sqrt(t)
    else:
        f = t

    return np.clip(lo + f * (hi - lo), lo, hi)


def scale_normalized(
    t: float,
    mode: Union[ScalingMode, str] = ScalingMode.linear,
    lo: float = MIN_NODE_HEIGHT,
    hi: float = MAX_NODE_HEIGHT
) -> float:
    """Scale a single normalized value; see scale_values."""
    return float(scale_values([t], mode, lo, hi)[0])


def scale_value(
    weight: float,
    mode: Union[ScalingMode, str] = ScalingMode.linear,
    lo: float = MIN_EDGE_WIDTH,
    hi: float = MAX_EDGE_WIDTH,
    max_weight: float = MAX_WEIGHT
) -> float:
    """
    Scale a raw weight, normalizing by max_weight.

    With the defaults this is the edge-width law used by the layout.
    """
    return scale_normalized(weight / max(max_weight, 1), mode, lo, hi)


def node_heights(
    total_weights: Union[np.ndarray, list[float]],
    mode: Union[ScalingMode, str] = ScalingMode.linear
) -> np.ndarray:
    """Node heights for a set of displayed nodes, normalized by their maximum weight."""
    w = np.asarray(total_weights, dtype=float)
    if w.size == 0:
        return w
    return scale_values(w / max(float(w.max()), 1.0), mode, MIN_NODE_HEIGHT, MAX_NODE_HEIGHT)


def edge_widths(
    weights: Union[np.ndarray, list[float]],
    mode: Union[ScalingMode, str] = ScalingMode.linear
) -> np.ndarray:
    """Edge stroke widths for a set of edge weights."""
    w = np.asarray(weights, dtype=float)
    return scale_values(w / MAX_WEIGHT, mode, MIN_EDGE_WIDTH, MAX_EDGE_WIDTH)
