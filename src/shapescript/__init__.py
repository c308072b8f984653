"""
Shape script: a small language for procedural 2D triangle shapes.

This module provides:
- Lexer: Tokenizes script source
- Parser: Builds a scope-resolved AST
- Interpreter: Runs the script and returns the exported shape
- Transforms: AST rewrites such as identifier minification
- ShapeLoader: Cached script loading with a placeholder on failure

Usage:
    from shapescript import compile_and_run

    result = compile_and_run('''
        input size: Number = 10;
        export rect[x: 0, y: 0, width: size, height: size / 2];
    ''', {"size": 20})
    if result.success:
        shape = result.shape
    else:
        print(result.diagnostic.format())
"""

__version__ = "0.1.0"

from .tokens import (
    Token,
    TokenType,
    SourceLocation,
    SourceSpan,
    KEYWORDS,
)

from .lexer import (
    Lexer,
    TokenStream,
    tokenize,
)

from .parser import (
    Parser,
    parse,
)

from .ast import (
    AstNode,
    Program,
    Function,
    format_ast,
)

from .symbols import (
    Symbol,
    SymbolTable,
)

from .types import ScriptType

from .errors import (
    ErrorSeverity,
    Diagnostic,
    ShapeScriptError,
    LexError,
    ParseError,
    ExecError,
    DiagnosticCollector,
)

from .geometry import (
    Shape,
    AdaptiveShape,
)

from .runtime import (
    Interpreter,
    ExecutionResult,
    run,
    compile_and_run,
    get_builtin_registry,
)

from .transforms import (
    AstTransform,
    TreeTransform,
    TransformPipeline,
    Minifier,
    minify,
    to_source,
)

from .config import ScriptConfig
from .resources import ShapeLoader, LoadedShape, compute_source_signature
from .export import write_dxf

__all__ = [
    # Tokens
    'Token',
    'TokenType',
    'SourceLocation',
    'SourceSpan',
    'KEYWORDS',
    # Lexer / parser
    'Lexer',
    'TokenStream',
    'tokenize',
    'Parser',
    'parse',
    # AST
    'AstNode',
    'Program',
    'Function',
    'format_ast',
    'Symbol',
    'SymbolTable',
    'ScriptType',
    # Errors
    'ErrorSeverity',
    'Diagnostic',
    'ShapeScriptError',
    'LexError',
    'ParseError',
    'ExecError',
    'DiagnosticCollector',
    # Geometry
    'Shape',
    'AdaptiveShape',
    # Runtime
    'Interpreter',
    'ExecutionResult',
    'run',
    'compile_and_run',
    'get_builtin_registry',
    # Transforms
    'AstTransform',
    'TreeTransform',
    'TransformPipeline',
    'Minifier',
    'minify',
    'to_source',
    # Loading / export
    'ScriptConfig',
    'ShapeLoader',
    'LoadedShape',
    'compute_source_signature',
    'write_dxf',
]
