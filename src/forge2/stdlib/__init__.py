"""
Forge standard library namespaces.

- vec: Vector math (numpy backed)
- math: Extended math functions
- list: List manipulation utilities
- string: String utilities
- random: Random number generation
"""

import random
from typing import Any, Dict, Optional

from .vec import create_vec_namespace
from .mathlib import create_math_namespace
from .listlib import create_list_namespace
from .stringlib import create_string_namespace
from .randomlib import create_random_namespace


def create_stdlib_bindings(rng: Optional[random.Random] = None) -> Dict[str, Any]:
    """Create every standard library namespace, keyed by global name."""
    if rng is None:
        rng = random.Random()
    return {
        "vec": create_vec_namespace(),
        "math": create_math_namespace(),
        "list": create_list_namespace(rng),
        "string": create_string_namespace(),
        "random": create_random_namespace(rng),
    }


__all__ = [
    "create_stdlib_bindings",
    "create_vec_namespace",
    "create_math_namespace",
    "create_list_namespace",
    "create_string_namespace",
    "create_random_namespace",
]
