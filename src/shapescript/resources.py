"""
Loading shape scripts as drawable resources.

ShapeLoader compiles a script once per (source, inputs) pair and caches
the result. A script that fails to lex, parse or run does not take the
caller down: the loader logs a warning and hands back the "missing"
placeholder shape instead.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union
import hashlib
import json
import logging

from .config import ScriptConfig, DEFAULT_CONFIG
from .errors import Diagnostic, ShapeScriptError
from .geometry import missing_shape
from .lexer import tokenize
from .parser import parse
from .runtime.interpreter import Interpreter
from .runtime.values import Variable, ShapeValue, unwrap

logger = logging.getLogger(__name__)


def compute_source_signature(source: str) -> str:
    """
    Compute a signature for source code.

    Uses SHA-256 hash of the normalized source.
    """
    # Normalize: strip whitespace, normalize line endings
    normalized = source.strip().replace('\r\n', '\n').replace('\r', '\n')
    return f"sha256:{hashlib.sha256(normalized.encode()).hexdigest()}"


def _cache_key(source: str, inputs: Mapping[str, Any]) -> str:
    serialized = json.dumps({k: list(v) if isinstance(v, (tuple, list)) else v
                             for k, v in sorted(inputs.items())}, default=repr)
    return f"{compute_source_signature(source)}:{serialized}"


@dataclass
class LoadedShape:
    """A compiled shape resource, or the placeholder that replaced it."""
    name: str
    value: Variable
    signature: str
    missing: bool = False
    diagnostic: Optional[Diagnostic] = None

    @property
    def shape(self) -> Any:
        """The Shape or AdaptiveShape."""
        return unwrap(self.value)


class ShapeLoader:
    """
    Compiles shape scripts into cached shape values.

    Usage:
        loader = ShapeLoader()
        button = loader.load_file("button.shape", {"radius": 4})
        if button.missing:
            ...  # button.shape is the placeholder
    """

    def __init__(self, config: Optional[ScriptConfig] = None):
        self.config = config or DEFAULT_CONFIG
        self._cache: Dict[str, LoadedShape] = {}

    def load_source(self, source: str, name: str = "<shape>",
                    inputs: Optional[Mapping[str, Any]] = None) -> LoadedShape:
        """Compile and run a script, or return the cached result."""
        inputs = inputs or {}
        key = _cache_key(source, inputs)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        signature = compute_source_signature(source)
        try:
            program = parse(tokenize(source, name), name)
            value = Interpreter(self.config).run(program, inputs, source)
            loaded = LoadedShape(name, value, signature)
        except ShapeScriptError as e:
            logger.warning("shape resource %s is unavailable: %s", name, e.diagnostic.format())
            loaded = LoadedShape(
                name,
                ShapeValue(missing_shape(self.config.missing_shape_size)),
                signature,
                missing=True,
                diagnostic=e.diagnostic,
            )
        else:
            logger.debug("compiled shape resource %s (%s)", name, signature)

        self._cache[key] = loaded
        return loaded

    def load_file(self, path: Union[str, Path],
                  inputs: Optional[Mapping[str, Any]] = None) -> LoadedShape:
        """Load a script file; I/O errors propagate to the caller."""
        path = Path(path)
        return self.load_source(path.read_text(encoding="utf-8"), str(path), inputs)

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
