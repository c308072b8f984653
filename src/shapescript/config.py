"""
Interpreter configuration.

Limits that keep a runaway script from hanging the resource loader,
plus the logging level used by the CLI. Values come from keyword
arguments or from SHAPESCRIPT_* environment variables.
"""

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional

ENV_PREFIX = "SHAPESCRIPT_"


@dataclass(frozen=True)
class ScriptConfig:
    """Execution limits and defaults."""
    max_call_depth: int = 64            # Nested user function calls
    max_loop_iterations: int = 100_000  # Passes of any single loop
    log_level: str = "WARNING"
    missing_shape_size: float = 32.0    # Edge length of the placeholder shape

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ScriptConfig":
        """
        Build a config from SHAPESCRIPT_<FIELD> environment variables.

        For example SHAPESCRIPT_MAX_LOOP_ITERATIONS=1000. Unset variables
        keep their defaults; a value that does not convert raises ValueError.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for f in fields(cls):
            raw = environ.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            if f.name == "log_level":
                values[f.name] = raw.upper()
            elif f.name == "missing_shape_size":
                values[f.name] = float(raw)
            else:
                values[f.name] = int(raw)
        return cls(**values)


DEFAULT_CONFIG = ScriptConfig()
