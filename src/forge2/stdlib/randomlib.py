"""
Random number generation for Forge scripts (the `random` namespace).

Every function draws from one `random.Random` owned by the interpreter,
so a configured seed makes a whole run reproducible.
"""

import math
import random
from typing import Any, Dict, List


def create_random_namespace(rng: random.Random) -> Dict[str, Any]:
    """Build the `random` namespace map bound to rng."""

    def random_int(lo, hi) -> int:
        """Integer in [ceil(lo), floor(hi)], both ends inclusive."""
        return rng.randint(math.ceil(lo), math.floor(hi))

    def random_float(lo, hi) -> float:
        return rng.random() * (hi - lo) + lo

    def random_bool(probability=0.5) -> bool:
        return rng.random() < probability

    def choice(items: List[Any]):
        if not items:
            return None
        return rng.choice(items)

    def choices(items: List[Any], count) -> List[Any]:
        if not items:
            return []
        return rng.choices(items, k=int(count))

    def sample(items: List[Any], count) -> List[Any]:
        return rng.sample(items, min(int(count), len(items)))

    def shuffle(items: List[Any]) -> List[Any]:
        result = list(items)
        rng.shuffle(result)
        return result

    def gaussian(mean=0, std_dev=1) -> float:
        return rng.gauss(mean, std_dev)

    def weighted(items: List[Any], weights: List[Any]):
        """Pick one item with probability proportional to its weight."""
        if not items:
            return None
        remaining = rng.random() * sum(weights)
        for item, weight in zip(items, weights):
            remaining -= weight
            if remaining <= 0:
                return item
        return items[-1]

    def random_angle() -> float:
        return rng.random() * math.tau

    def unit_vector_2d() -> List[float]:
        theta = random_angle()
        return [math.cos(theta), math.sin(theta)]

    def unit_vector_3d() -> List[float]:
        theta = random_angle()
        phi = math.acos(2 * rng.random() - 1)
        return [
            math.sin(phi) * math.cos(theta),
            math.sin(phi) * math.sin(theta),
            math.cos(phi),
        ]

    def in_circle(radius=1) -> List[float]:
        r = math.sqrt(rng.random()) * radius
        theta = random_angle()
        return [r * math.cos(theta), r * math.sin(theta)]

    def in_sphere(radius=1) -> List[float]:
        theta = random_angle()
        phi = math.acos(2 * rng.random() - 1)
        r = rng.random() ** (1 / 3) * radius
        return [
            r * math.sin(phi) * math.cos(theta),
            r * math.sin(phi) * math.sin(theta),
            r * math.cos(phi),
        ]

    def in_rect(width, height) -> List[float]:
        return [rng.random() * width, rng.random() * height]

    def in_box(width, height, depth) -> List[float]:
        return [rng.random() * width, rng.random() * height, rng.random() * depth]

    return {
        "random": rng.random,
        "int": random_int,
        "float": random_float,
        "bool": random_bool,
        "choice": choice,
        "choices": choices,
        "sample": sample,
        "shuffle": shuffle,
        "gaussian": gaussian,
        "weighted": weighted,
        "angle": random_angle,
        "unitVector2d": unit_vector_2d,
        "unitVector3d": unit_vector_3d,
        "inCircle": in_circle,
        "inSphere": in_sphere,
        "inRect": in_rect,
        "inBox": in_box,
    }
