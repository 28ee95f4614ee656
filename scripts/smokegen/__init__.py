"""
smokegen - SMOKE dispatch table generator for C++ libraries

Translates clang's declaration tree of C++ headers into a structural model
of classes, enums, functions and types, then compiles that model into the
pointer-adjustment tables a binding runtime needs to cast through
multiply-inheriting C++ classes.
"""

from .config import ParserOptions, load_config
from .decltree import DeclTree, DeclNode, DeclKind
from .errors import (
    SmokegenError, FrontendError, GeneratorError, ConfigError, ModelFrozenError, TypeSpellingError,
)
from .frontend import ClangFrontend
from .generator import GENERATORS, Generator, get_generator
from .hierarchy import ClassHierarchy
from .model import (
    Model, Class, ClassKind, Enum, EnumMember, Function, Typedef,
    Method, Field, Parameter, Property, Access, MemberFlag, BaseClassSpecifier,
)
from .smoke import CastPath, Direction, DispatchTable, SmokeGenerator
from .types import Type, TypeKind, TypeRegistry, FunctionSignature
from .typeparse import RawType, RawKind, parse_type
from .visitor import DeclarationVisitor, build_model

__all__ = [
    'ParserOptions', 'load_config',
    'DeclTree', 'DeclNode', 'DeclKind',
    'SmokegenError', 'FrontendError', 'GeneratorError', 'ConfigError', 'ModelFrozenError',
    'TypeSpellingError',
    'ClangFrontend',
    'GENERATORS', 'Generator', 'get_generator',
    'ClassHierarchy',
    'Model', 'Class', 'ClassKind', 'Enum', 'EnumMember', 'Function', 'Typedef',
    'Method', 'Field', 'Parameter', 'Property', 'Access', 'MemberFlag', 'BaseClassSpecifier',
    'CastPath', 'Direction', 'DispatchTable', 'SmokeGenerator',
    'Type', 'TypeKind', 'TypeRegistry', 'FunctionSignature',
    'RawType', 'RawKind', 'parse_type',
    'DeclarationVisitor', 'build_model',
]
