"""Compilers for assembling repository objects."""

from .compiler import Compiler
from .datastream_compiler import DatastreamCompiler, relationship_template

__all__ = ["Compiler", "DatastreamCompiler", "relationship_template"]
