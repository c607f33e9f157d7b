"""
Vector math for Forge scripts (the `vec` namespace).

Vectors are plain lists of numbers, e.g. [x, y] or [x, y, z]. Operations
on vectors of different lengths pad the shorter one with zeros. All
arithmetic is done with numpy and converted back to lists so scripts only
ever see ordinary Forge values.
"""

import math
from typing import Any, Dict, List

import numpy as np

from ..errors import error_division_by_zero, runtime_error
from ..runtime.values import is_number


def _as_array(v: Any, name: str) -> np.ndarray:
    """Validate a vector argument and convert it to a float array."""
    if not isinstance(v, list) or not all(is_number(n) for n in v):
        raise runtime_error(f"{name} must be a vector (array of numbers)")
    return np.asarray(v, dtype=float)


def _padded(a: np.ndarray, b: np.ndarray, fill_b: float = 0.0):
    """Pad both arrays to the same length (a with 0, b with fill_b)."""
    size = max(len(a), len(b))
    a = np.pad(a, (0, size - len(a)), constant_values=0.0)
    b = np.pad(b, (0, size - len(b)), constant_values=fill_b)
    return a, b


def vec(*components) -> List[Any]:
    return list(components)


def vec2(x=0, y=0) -> List[Any]:
    return [x, y]


def vec3(x=0, y=0, z=0) -> List[Any]:
    return [x, y, z]


def add(a, b) -> List[float]:
    """Component-wise sum."""
    a, b = _padded(_as_array(a, "First argument"), _as_array(b, "Second argument"))
    return (a + b).tolist()


def sub(a, b) -> List[float]:
    """Component-wise difference a - b."""
    a, b = _padded(_as_array(a, "First argument"), _as_array(b, "Second argument"))
    return (a - b).tolist()


def mul(a, b) -> List[float]:
    """Scale by a number, or multiply component-wise by another vector."""
    arr = _as_array(a, "First argument")
    if is_number(b):
        return (arr * b).tolist()
    arr, other = _padded(arr, _as_array(b, "Second argument"))
    return (arr * other).tolist()


def div(a, b) -> List[float]:
    """Divide by a number, or component-wise by another vector.

    Missing divisor components count as 1; any zero divisor is an error.
    """
    arr = _as_array(a, "First argument")
    if is_number(b):
        if b == 0:
            raise error_division_by_zero()
        return (arr / b).tolist()
    arr, other = _padded(arr, _as_array(b, "Second argument"), fill_b=1.0)
    if np.any(other == 0):
        raise error_division_by_zero()
    return (arr / other).tolist()


def dot(a, b) -> float:
    a = _as_array(a, "First argument")
    b = _as_array(b, "Second argument")
    size = min(len(a), len(b))
    return float(np.dot(a[:size], b[:size]))


def cross(a, b) -> List[float]:
    """3D cross product; 2D inputs are treated as z = 0."""
    a, _ = _padded(_as_array(a, "First argument"), np.zeros(3))
    b, _ = _padded(_as_array(b, "Second argument"), np.zeros(3))
    return np.cross(a[:3], b[:3]).tolist()


def length(v) -> float:
    return float(np.linalg.norm(_as_array(v, "Argument")))


def lengthSq(v) -> float:
    arr = _as_array(v, "Argument")
    return float(np.dot(arr, arr))


def normalize(v) -> List[float]:
    """Unit vector in the same direction; a zero vector stays zero."""
    arr = _as_array(v, "Argument")
    norm = np.linalg.norm(arr)
    if norm == 0:
        return np.zeros(len(arr)).tolist()
    return (arr / norm).tolist()


def distance(a, b) -> float:
    return length(sub(a, b))


def distanceSq(a, b) -> float:
    return lengthSq(sub(a, b))


def lerp(a, b, t) -> List[float]:
    a, b = _padded(_as_array(a, "First argument"), _as_array(b, "Second argument"))
    return (a + (b - a) * t).tolist()


def clamp(v, lo, hi) -> List[float]:
    arr = _as_array(v, "First argument")
    return np.minimum(hi, np.maximum(lo, arr)).tolist()


def negate(v) -> List[float]:
    return (-_as_array(v, "Argument")).tolist()


def reflect(v, normal) -> List[float]:
    """Reflect v off a surface with the given normal: v - 2(v.n)n."""
    d = 2 * dot(v, normal)
    return sub(v, mul(normal, d))


def angle(a, b) -> float:
    """Angle between two vectors in radians (0 if either is zero)."""
    d = dot(a, b)
    la = length(a)
    lb = length(b)
    if la == 0 or lb == 0:
        return 0.0
    return float(np.arccos(np.clip(d / (la * lb), -1.0, 1.0)))


def project(a, b) -> List[float]:
    """Project a onto b."""
    arr_b = _as_array(b, "Second argument")
    _as_array(a, "First argument")
    b_len_sq = float(np.dot(arr_b, arr_b))
    if b_len_sq == 0:
        return np.zeros(len(arr_b)).tolist()
    return mul(b, dot(a, b) / b_len_sq)


def perp2d(v) -> List[float]:
    """Rotate a 2D vector 90 degrees counter-clockwise."""
    arr, _ = _padded(_as_array(v, "Argument"), np.zeros(2))
    return [-float(arr[1]), float(arr[0])]


def rotate2d(v, radians) -> List[float]:
    arr, _ = _padded(_as_array(v, "Argument"), np.zeros(2))
    c, s = math.cos(radians), math.sin(radians)
    rotation = np.array([[c, -s], [s, c]])
    return (rotation @ arr[:2]).tolist()


def equals(a, b, epsilon=0.0001) -> bool:
    """Approximate equality; vectors of different length are never equal."""
    a = _as_array(a, "First argument")
    b = _as_array(b, "Second argument")
    if len(a) != len(b):
        return False
    return bool(np.all(np.abs(a - b) < epsilon))


def create_vec_namespace() -> Dict[str, Any]:
    """Build the `vec` namespace map."""
    return {
        "vec": vec,
        "vec2": vec2,
        "vec3": vec3,
        "add": add,
        "sub": sub,
        "mul": mul,
        "div": div,
        "dot": dot,
        "cross": cross,
        "length": length,
        "lengthSq": lengthSq,
        "normalize": normalize,
        "distance": distance,
        "distanceSq": distanceSq,
        "lerp": lerp,
        "clamp": clamp,
        "negate": negate,
        "reflect": reflect,
        "angle": angle,
        "project": project,
        "perp2d": perp2d,
        "rotate2d": rotate2d,
        "equals": equals,
        # Constants
        "ZERO2": [0, 0],
        "ZERO3": [0, 0, 0],
        "ONE2": [1, 1],
        "ONE3": [1, 1, 1],
        "UP": [0, 1, 0],
        "DOWN": [0, -1, 0],
        "LEFT": [-1, 0, 0],
        "RIGHT": [1, 0, 0],
        "FORWARD": [0, 0, -1],
        "BACK": [0, 0, 1],
    }
