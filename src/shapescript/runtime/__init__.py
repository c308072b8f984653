"""
Shape script runtime - tree-walking interpreter.

This module provides:
- Interpreter: Executes a parsed Program and returns its export
- Variable and its subclasses: Runtime values and references
- ExecutionContext: Flat Symbol -> Variable environment
- BuiltinRegistry: Built-in function implementations
"""

from .values import (
    Variable,
    Null,
    NULL,
    Number,
    Bool,
    Vec2,
    ShapeValue,
    AdaptiveValue,
    Saved,
    Access,
    MappedArgs,
    wrap,
    unwrap,
    get_field,
    apply_binary,
    apply_unary,
)

from .context import (
    ShapeBuilder,
    ExecutionContext,
    create_context,
)

from .builtins import (
    BuiltinSignature,
    BuiltinFunction,
    BuiltinRegistry,
    get_builtin_registry,
    call_builtin,
)

from .interpreter import (
    Interpreter,
    ExecutionResult,
    run,
    compile_and_run,
)

__all__ = [
    # Values
    'Variable',
    'Null',
    'NULL',
    'Number',
    'Bool',
    'Vec2',
    'ShapeValue',
    'AdaptiveValue',
    'Saved',
    'Access',
    'MappedArgs',
    'wrap',
    'unwrap',
    'get_field',
    'apply_binary',
    'apply_unary',
    # Context
    'ShapeBuilder',
    'ExecutionContext',
    'create_context',
    # Builtins
    'BuiltinSignature',
    'BuiltinFunction',
    'BuiltinRegistry',
    'get_builtin_registry',
    'call_builtin',
    # Interpreter
    'Interpreter',
    'ExecutionResult',
    'run',
    'compile_and_run',
]
