"""
Shape script AST transformation framework.

Transforms rewrite a parsed Program before it is interpreted or written
back out as source.

Usage:
    from shapescript.transforms import TransformPipeline, Minifier, to_source

    pipeline = TransformPipeline()
    pipeline.add(Minifier())

    print(to_source(pipeline.apply(program)))
"""

from .base import (
    AstTransform,
    TreeTransform,
    TransformPipeline,
    IdentityTransform,
)
from .minify import Minifier, minify, short_names
from .source import SourceWriter, to_source, format_number

__all__ = [
    'AstTransform',
    'TreeTransform',
    'TransformPipeline',
    'IdentityTransform',
    'Minifier',
    'minify',
    'short_names',
    'SourceWriter',
    'to_source',
    'format_number',
]
