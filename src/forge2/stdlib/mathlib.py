"""
Extended math functions for Forge scripts (the `math` namespace).
"""

import math
import sys
from typing import Any, Dict

import numpy as np


def round_half_up(x):
    """Round to the nearest integer, halves toward +infinity (2.5 -> 3, -2.5 -> -2)."""
    # x + 0.5 can round up in floating point (0.49999999999999994 + 0.5 == 1.0)
    floor = math.floor(x)
    return floor + 1 if x - floor >= 0.5 else floor


def sign(x):
    return (x > 0) - (x < 0)


def minimum(*args):
    """Smallest argument; with no arguments, +infinity."""
    return min(args) if args else math.inf


def maximum(*args):
    """Largest argument; with no arguments, -infinity."""
    return max(args) if args else -math.inf


def cbrt(x) -> float:
    return float(np.cbrt(x))


def clamp(value, lo, hi):
    return min(hi, max(lo, value))


def lerp(a, b, t):
    return a + (b - a) * t


def inverse_lerp(a, b, value):
    if a == b:
        return 0
    return (value - a) / (b - a)


def remap(value, in_min, in_max, out_min, out_max):
    t = (value - in_min) / (in_max - in_min)
    return out_min + (out_max - out_min) * t


def _unit_step(edge0, edge1, x):
    if edge0 == edge1:
        return 0.0 if x < edge0 else 1.0
    return max(0.0, min(1.0, (x - edge0) / (edge1 - edge0)))


def smoothstep(edge0, edge1, x):
    t = _unit_step(edge0, edge1, x)
    return t * t * (3 - 2 * t)


def smootherstep(edge0, edge1, x):
    t = _unit_step(edge0, edge1, x)
    return t * t * t * (t * (t * 6 - 15) + 10)


def create_math_namespace() -> Dict[str, Any]:
    """Build the `math` namespace map."""
    return {
        # Trigonometry
        "sin": math.sin,
        "cos": math.cos,
        "tan": math.tan,
        "asin": math.asin,
        "acos": math.acos,
        "atan": math.atan,
        "atan2": math.atan2,

        # Rounding
        "floor": math.floor,
        "ceil": math.ceil,
        "round": round_half_up,
        "trunc": math.trunc,

        # Exponential/Logarithmic
        "pow": math.pow,
        "sqrt": math.sqrt,
        "cbrt": cbrt,
        "exp": math.exp,
        "log": math.log,
        "log2": math.log2,
        "log10": math.log10,

        # Utility
        "abs": abs,
        "sign": sign,
        "min": minimum,
        "max": maximum,

        # Clamping and mapping
        "clamp": clamp,
        "lerp": lerp,
        "inverseLerp": inverse_lerp,
        "map": remap,
        "radians": math.radians,
        "degrees": math.degrees,
        "smoothstep": smoothstep,
        "smootherstep": smootherstep,

        # Constants
        "PI": math.pi,
        "TAU": math.tau,
        "E": math.e,
        "EPSILON": sys.float_info.epsilon,
        "INFINITY": math.inf,
    }
