"""
Runtime configuration for Forge interpreters.

Configuration is a small YAML mapping, for example:

    max_loop_iterations: 100000
    max_call_depth: 2000
    random_seed: 42

Unknown keys and wrongly-typed values are rejected.
"""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional, Union

import yaml


class ConfigError(ValueError):
    """Invalid runtime configuration."""
    pass


@dataclass(frozen=True)
class RuntimeConfig:
    """
    Interpreter settings.

    Attributes:
        max_loop_iterations: Ceiling on iterations of any single for/while
            loop execution; None means unbounded.
        max_call_depth: Ceiling on nested Forge function calls, counted
            across natives that call back into Forge.
        random_seed: Seed for the interpreter's random generator; None seeds
            from system entropy.
    """
    max_loop_iterations: Optional[int] = None
    max_call_depth: int = 1000
    random_seed: Optional[int] = None

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "RuntimeConfig":
        """Build a config from a parsed mapping, validating keys and types."""
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ConfigError(f"configuration must be a mapping, got {type(data).__name__}")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown configuration key(s): {', '.join(map(str, unknown))}")

        for key in known:
            value = data.get(key)
            if value is not None and (not isinstance(value, int) or isinstance(value, bool)):
                raise ConfigError(f"{key} must be an integer, got {value!r}")

        if "max_call_depth" in data and data["max_call_depth"] is None:
            raise ConfigError("max_call_depth must be an integer, got None")

        for key in ("max_loop_iterations", "max_call_depth"):
            limit = data.get(key)
            if limit is not None and limit <= 0:
                raise ConfigError(f"{key} must be positive, got {limit}")

        return cls(**{key: data[key] for key in known if key in data})


def load_config(path: Union[str, Path]) -> RuntimeConfig:
    """Read a RuntimeConfig from a YAML file (an empty file gives defaults)."""
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e
    return RuntimeConfig.from_mapping(data)
