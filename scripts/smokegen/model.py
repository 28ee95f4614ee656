"""
Entity model module

The mutable graph of named entities built by the declaration visitor:
classes (and namespaces), enums, functions and typedefs, with their
methods, fields, parameters and enum members. A Model is an explicit
repository object, so independent translation runs never share state.
"""

from dataclasses import dataclass, field
import enum
from typing import NamedTuple, Optional

from .errors import ModelFrozenError
from .types import Type, TypeKind, TypeRegistry


class Access(enum.Enum):
    PUBLIC = 'public'
    PROTECTED = 'protected'
    PRIVATE = 'private'

    @classmethod
    def from_clang(cls, access: Optional[str]) -> 'Access':
        """clang spells access as public/protected/private/none"""
        if access == 'protected':
            return cls.PROTECTED
        if access == 'private':
            return cls.PRIVATE
        return cls.PUBLIC


class ClassKind(enum.Enum):
    CLASS = 'class'
    STRUCT = 'struct'
    UNION = 'union'
    NAMESPACE = 'namespace'


class MemberFlag(enum.Flag):
    NONE = 0
    STATIC = enum.auto()
    VIRTUAL = enum.auto()
    PURE_VIRTUAL = enum.auto()
    CONST = enum.auto()
    EXPLICIT = enum.auto()
    DELETED = enum.auto()
    CONSTRUCTOR = enum.auto()
    DESTRUCTOR = enum.auto()
    CONVERSION = enum.auto()
    SIGNAL = enum.auto()
    SLOT = enum.auto()
    PROPERTY_ACCESSOR = enum.auto()


class BaseClassSpecifier(NamedTuple):
    base_class: 'Class'
    access: Access
    is_virtual: bool


@dataclass(eq=False)
class Parameter:
    name: str
    type: Type
    default_value: Optional[str] = None


def _signature(parameters: list[Parameter]) -> str:
    return '(' + ', '.join(p.type.to_string() for p in parameters) + ')'


@dataclass(eq=False)
class Method:
    owner: 'Class'
    name: str
    return_type: Type
    access: Access = Access.PUBLIC
    parameters: list[Parameter] = field(default_factory=list)
    flags: MemberFlag = MemberFlag.NONE

    def signature(self) -> str:
        sig = self.name + _signature(self.parameters)
        if self.flags & MemberFlag.CONST:
            sig += ' const'
        return sig

    def has(self, flag: MemberFlag) -> bool:
        return bool(self.flags & flag)

    @property
    def is_constructor(self) -> bool:
        return self.has(MemberFlag.CONSTRUCTOR)

    @property
    def is_destructor(self) -> bool:
        return self.has(MemberFlag.DESTRUCTOR)

    @property
    def is_virtual(self) -> bool:
        return self.has(MemberFlag.VIRTUAL)

    @property
    def is_static(self) -> bool:
        return self.has(MemberFlag.STATIC)

    @property
    def is_const(self) -> bool:
        return self.has(MemberFlag.CONST)

    def __repr__(self) -> str:
        return f'Method({self.owner.qualified_name}::{self.signature()})'


@dataclass(eq=False)
class Field:
    owner: 'Class'
    name: str
    type: Type
    access: Access = Access.PUBLIC
    flags: MemberFlag = MemberFlag.NONE

    @property
    def is_static(self) -> bool:
        return bool(self.flags & MemberFlag.STATIC)


@dataclass(eq=False)
class Property:
    """Framework property declared in a class body"""
    name: str
    type: str
    read: Optional[str] = None
    write: Optional[str] = None
    reset: Optional[str] = None
    notify: Optional[str] = None


@dataclass(eq=False)
class Class:
    name: str
    qualified_name: str
    kind: ClassKind = ClassKind.CLASS
    parent: Optional['Class'] = None
    nspace: str = ''
    is_forward_decl: bool = True
    is_template: bool = False
    access: Access = Access.PUBLIC
    file_name: str = ''
    base_classes: list[BaseClassSpecifier] = field(default_factory=list)
    methods: list[Method] = field(default_factory=list)
    fields: list[Field] = field(default_factory=list)
    properties: list[Property] = field(default_factory=list)

    type_kind = TypeKind.CLASS

    @property
    def is_namespace(self) -> bool:
        return self.kind == ClassKind.NAMESPACE

    def has_definition(self) -> bool:
        return not self.is_forward_decl

    def find_methods(self, name: str) -> list[Method]:
        return [m for m in self.methods if m.name == name]

    def find_method(self, signature: str) -> Optional[Method]:
        for method in self.methods:
            if method.signature() == signature:
                return method
        return None

    def append_method(self, method: Method) -> Method:
        """Add a method unless one with the same signature exists"""
        existing = self.find_method(method.signature())
        if existing is not None:
            return existing
        self.methods.append(method)
        return method

    def to_string(self) -> str:
        return self.qualified_name

    def __repr__(self) -> str:
        state = 'forward' if self.is_forward_decl else self.kind.value
        return f'Class({self.qualified_name}, {state})'


@dataclass(eq=False)
class EnumMember:
    enum: 'Enum'
    name: str

    @property
    def qualified_name(self) -> str:
        scope = self.enum.parent.qualified_name if self.enum.parent else self.enum.nspace
        return f'{scope}::{self.name}' if scope else self.name


@dataclass(eq=False)
class Enum:
    name: str
    qualified_name: str
    parent: Optional[Class] = None
    nspace: str = ''
    access: Access = Access.PUBLIC
    is_scoped: bool = False
    file_name: str = ''
    members: list[EnumMember] = field(default_factory=list)

    type_kind = TypeKind.ENUM

    def __repr__(self) -> str:
        return f'Enum({self.qualified_name}, {len(self.members)} members)'


@dataclass(eq=False)
class Function:
    name: str
    qualified_name: str
    return_type: Type
    parent: Optional[Class] = None
    nspace: str = ''
    parameters: list[Parameter] = field(default_factory=list)
    file_name: str = ''

    def signature(self) -> str:
        return self.qualified_name + _signature(self.parameters)

    def __repr__(self) -> str:
        return f'Function({self.signature()})'


@dataclass(eq=False)
class Typedef:
    name: str
    qualified_name: str
    type: Optional[Type] = None
    parent: Optional[Class] = None
    nspace: str = ''
    file_name: str = ''

    type_kind = TypeKind.ALIAS

    def resolved_type(self, registry: TypeRegistry) -> Optional[Type]:
        return registry.resolve(self.type) if self.type is not None else None

    def __repr__(self) -> str:
        target = self.type.to_string() if self.type is not None else '?'
        return f'Typedef({self.qualified_name} = {target})'


class Model:
    """Repository of every entity registered during one translation run"""

    def __init__(self):
        self.types = TypeRegistry()
        self.classes: dict[str, Class] = {}
        self.enums: dict[str, Enum] = {}
        self.functions: dict[str, Function] = {}
        self.typedefs: dict[str, Typedef] = {}
        self.frozen = False

    def freeze(self):
        """Make the model read-only for generation"""
        self.frozen = True
        self.types.frozen = True

    def _check_writable(self, what: str):
        if self.frozen:
            raise ModelFrozenError(f'cannot register {what} after freeze')

    def register_class(self, qualified_name: str, name: str, **attrs) -> Class:
        """Get or create the class registered under qualified_name"""
        klass = self.classes.get(qualified_name)
        if klass is None:
            self._check_writable(qualified_name)
            klass = Class(name=name, qualified_name=qualified_name, **attrs)
            self.classes[qualified_name] = klass
        return klass

    def register_enum(self, qualified_name: str, name: str, **attrs) -> Enum:
        enum = self.enums.get(qualified_name)
        if enum is None:
            self._check_writable(qualified_name)
            enum = Enum(name=name, qualified_name=qualified_name, **attrs)
            self.enums[qualified_name] = enum
        return enum

    def register_function(self, function: Function) -> Function:
        """Functions are keyed by qualified name plus parameter signature"""
        key = function.signature()
        existing = self.functions.get(key)
        if existing is not None:
            return existing
        self._check_writable(key)
        self.functions[key] = function
        return function

    def register_typedef(self, qualified_name: str, name: str, **attrs) -> Typedef:
        typedef = self.typedefs.get(qualified_name)
        if typedef is None:
            self._check_writable(qualified_name)
            typedef = Typedef(name=name, qualified_name=qualified_name, **attrs)
            self.typedefs[qualified_name] = typedef
        return typedef

    def find_class(self, qualified_name: str) -> Optional[Class]:
        return self.classes.get(qualified_name)

    def find_enum(self, qualified_name: str) -> Optional[Enum]:
        return self.enums.get(qualified_name)

    def find_typedef(self, qualified_name: str) -> Optional[Typedef]:
        return self.typedefs.get(qualified_name)

    def find_functions(self, qualified_name: str) -> list[Function]:
        return [f for f in self.functions.values() if f.qualified_name == qualified_name]

    def resolve_type(self, type_: Type) -> Type:
        return self.types.resolve(type_)
