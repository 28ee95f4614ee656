"""
Type registry module

Canonicalizes structural type descriptors so structurally identical types
share one Type instance. Callers compare types by identity.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Any

from .errors import ModelFrozenError
from .typeparse import RawType, RawKind, BUILTIN_WORDS, render


class TypeKind(Enum):
    BUILTIN = 'builtin'
    CLASS = 'class'
    ENUM = 'enum'
    ALIAS = 'alias'  # alias whose underlying type is not resolved yet
    FUNCTION_POINTER = 'function_pointer'
    VALUE = 'value'  # non-type template argument
    UNKNOWN = 'unknown'
    INVALID = 'invalid'


@dataclass(frozen=True)
class FunctionSignature:
    """Return and parameter types of a function pointer"""
    return_type: 'Type'
    param_types: tuple['Type', ...] = ()
    is_variadic: bool = False

    def key(self) -> tuple:
        return (id(self.return_type), tuple(id(t) for t in self.param_types), self.is_variadic)


@dataclass(eq=False)
class Type:
    """A canonical type

    Pointer constness is stored per level, outermost level first:
    ``const char *const *`` has const_pointers == (False, True).
    """
    name: str
    kind: TypeKind = TypeKind.UNKNOWN
    pointer_depth: int = 0
    const_pointers: tuple[bool, ...] = ()
    is_ref: bool = False
    is_const: bool = False
    is_volatile: bool = False
    array_lengths: tuple[Optional[int], ...] = ()
    function_pointer: Optional[FunctionSignature] = None
    template_arguments: tuple['Type', ...] = ()
    typedef: Optional[Any] = None  # alias back-reference (model.Typedef)
    entity: Optional[Any] = field(default=None, repr=False)  # model.Class or model.Enum

    def key(self) -> tuple:
        return (
            self.name,
            self.kind,
            self.pointer_depth,
            self.const_pointers,
            self.is_ref,
            self.is_const,
            self.is_volatile,
            self.array_lengths,
            self.function_pointer.key() if self.function_pointer else None,
            tuple(id(t) for t in self.template_arguments),
            self.typedef.qualified_name if self.typedef is not None else None,
        )

    @property
    def is_valid(self) -> bool:
        return self.kind != TypeKind.INVALID

    @property
    def is_function_pointer(self) -> bool:
        return self.function_pointer is not None

    def to_string(self) -> str:
        """Render the type as a C++ spelling"""
        if self.function_pointer is not None:
            sig = self.function_pointer
            params = [t.to_string() for t in sig.param_types]
            if sig.is_variadic:
                params.append('...')
            if self.pointer_depth < 0:
                return f'{sig.return_type.to_string()} ({", ".join(params)})'
            stars = '*' * (self.pointer_depth + 1)
            text = f'{sig.return_type.to_string()} ({stars})({", ".join(params)})'
            return text + ('&' if self.is_ref else '')
        text = self.name
        if self.template_arguments:
            args = ', '.join(t.to_string() for t in self.template_arguments)
            text += f'< {args} >' if args.endswith('>') else f'<{args}>'
        if self.is_const:
            text = 'const ' + text
        if self.is_volatile:
            text = 'volatile ' + text
        for is_const in reversed(self.const_pointers):
            text += '*' + (' const' if is_const else '')
        if self.is_ref:
            text += '&'
        for length in self.array_lengths:
            text += f'[{length if length is not None else ""}]'
        return text

    def __repr__(self) -> str:
        return f'Type({self.to_string()!r}, {self.kind.value})'


class LeafResolver:
    """Maps leaf names to model entities

    The declaration visitor supplies a scope-aware implementation; the
    default resolves nothing, so every non-builtin leaf is UNKNOWN.
    When compose_aliases is off, leaves naming an alias keep the alias
    name (kind ALIAS) and are only composed by TypeRegistry.resolve().
    """

    compose_aliases = True

    def entity(self, name: str, tag: str = ''):
        """Return the Class, Enum or Typedef a leaf name refers to

        tag is the elaborated keyword of the spelling (struct, enum, ...), if any.
        """
        return None

    def enumerator(self, text: str) -> Optional[str]:
        """Return the qualified enumerator name a non-type argument denotes"""
        return None


def _is_builtin(name: str) -> bool:
    return all(word in BUILTIN_WORDS for word in name.split())


class TypeRegistry:
    """Interns Type instances by their structural signature"""

    INVALID = Type(name='<invalid>', kind=TypeKind.INVALID)

    def __init__(self):
        self._types: dict[tuple, Type] = {}
        self.frozen = False

    def __len__(self) -> int:
        return len(self._types)

    def __iter__(self):
        return iter(self._types.values())

    def intern(self, type_: Type) -> Type:
        """Return the registry entry structurally identical to type_"""
        key = type_.key()
        existing = self._types.get(key)
        if existing is not None:
            return existing
        if self.frozen:
            raise ModelFrozenError(f'cannot register type {type_.to_string()!r} after freeze')
        self._types[key] = type_
        return type_

    def register(self, raw: RawType, resolver: Optional[LeafResolver] = None) -> Type:
        """Register a raw type descriptor and return its canonical Type"""
        resolver = resolver or LeafResolver()
        is_ref = False
        if raw.kind in (RawKind.LVALUE_REF, RawKind.RVALUE_REF):
            is_ref = True
            raw = raw.inner

        array_lengths = []
        while raw.kind == RawKind.ARRAY:
            array_lengths.append(raw.length)
            raw = raw.inner

        const_pointers = []
        while raw.kind == RawKind.POINTER:
            if raw.inner.kind == RawKind.FUNCTION:
                signature = self._signature(raw.inner, resolver)
                if signature is None:
                    return self.INVALID
                return self.intern(Type(
                    name=render(raw.inner.inner),
                    kind=TypeKind.FUNCTION_POINTER,
                    pointer_depth=len(const_pointers),
                    const_pointers=tuple(const_pointers),
                    is_ref=is_ref,
                    is_const=raw.is_const,
                    array_lengths=tuple(array_lengths),
                    function_pointer=signature,
                ))
            const_pointers.append(raw.is_const)
            raw = raw.inner

        if raw.kind == RawKind.ARRAY:
            # pointer to array has no representation
            return self.INVALID
        if raw.kind == RawKind.FUNCTION:
            signature = self._signature(raw, resolver)
            if signature is None:
                return self.INVALID
            return self.intern(Type(name=render(raw.inner), kind=TypeKind.FUNCTION_POINTER,
                                    pointer_depth=-1, is_ref=is_ref, function_pointer=signature))
        if raw.kind in (RawKind.LVALUE_REF, RawKind.RVALUE_REF):
            return self.INVALID

        return self._leaf(raw, resolver, is_ref, tuple(const_pointers), tuple(array_lengths))

    def _leaf(self, raw: RawType, resolver: LeafResolver, is_ref: bool,
              const_pointers: tuple[bool, ...], array_lengths: tuple) -> Type:
        if raw.is_anonymous:
            return self.INVALID

        if raw.kind == RawKind.MEMBER_POINTER:
            return self.intern(Type(name=render(raw), kind=TypeKind.UNKNOWN,
                                    pointer_depth=len(const_pointers), const_pointers=const_pointers,
                                    is_ref=is_ref, array_lengths=array_lengths))

        if raw.kind == RawKind.VALUE:
            name = resolver.enumerator(raw.name) or raw.name
            return self.intern(Type(name=name, kind=TypeKind.VALUE))

        template_arguments = []
        for arg in raw.template_args:
            arg_type = self._template_argument(arg, resolver)
            if not arg_type.is_valid:
                return self.INVALID
            template_arguments.append(arg_type)

        base = Type(
            name=raw.name,
            pointer_depth=len(const_pointers),
            const_pointers=const_pointers,
            is_ref=is_ref,
            is_const=raw.is_const,
            is_volatile=raw.is_volatile,
            array_lengths=array_lengths,
            template_arguments=tuple(template_arguments),
        )

        if _is_builtin(raw.name):
            base.kind = TypeKind.BUILTIN
            return self.intern(base)

        entity = resolver.entity(raw.name, raw.tag)
        if entity is None:
            return self.intern(base)

        kind = entity.type_kind
        if kind == TypeKind.ALIAS:
            return self._alias_reference(base, entity, resolver.compose_aliases)

        base.name = entity.qualified_name
        base.kind = kind
        base.entity = entity
        return self.intern(base)

    def _template_argument(self, arg: RawType, resolver: LeafResolver) -> Type:
        if arg.kind == RawKind.NAMED and not arg.template_args:
            # an identifier argument may name an enumerator rather than a type
            enumerator = resolver.enumerator(arg.name)
            if enumerator is not None:
                return self.intern(Type(name=enumerator, kind=TypeKind.VALUE))
        return self.register(arg, resolver)

    def _alias_reference(self, reference: Type, alias, compose: bool = True) -> Type:
        """Type of a leaf that names an alias"""
        reference.typedef = alias
        if not compose or alias.type is None or not alias.type.is_valid:
            # alias still being registered (or unresolvable), compose on lookup
            reference.name = alias.qualified_name
            reference.kind = TypeKind.ALIAS
            return self.intern(reference)
        return self.compose(reference, self.resolve(alias.type), alias)

    def compose(self, reference: Type, target: Type, alias) -> Type:
        """Combine an alias's resolved type with the qualifiers of a reference to it

        Per-level pointer constness: the reference's own levels (outermost
        first) followed by the alias's levels. A const on the reference's
        leaf qualifies the alias's outermost pointer level.
        """
        if target.function_pointer is not None:
            return self._compose_function_pointer(reference, target, alias)
        levels = list(reference.const_pointers) + list(target.const_pointers)
        is_const = target.is_const
        if reference.is_const:
            if target.const_pointers:
                levels[len(reference.const_pointers)] = True
            else:
                is_const = True
        composed = Type(
            name=target.name,
            kind=target.kind,
            pointer_depth=len(levels),
            const_pointers=tuple(levels),
            is_ref=reference.is_ref or target.is_ref,
            is_const=is_const,
            is_volatile=reference.is_volatile or target.is_volatile,
            array_lengths=reference.array_lengths + target.array_lengths,
            function_pointer=target.function_pointer,
            template_arguments=target.template_arguments,
            typedef=alias if alias.qualified_name != target.name else None,
            entity=target.entity,
        )
        return self.intern(composed)

    def _compose_function_pointer(self, reference: Type, target: Type, alias) -> Type:
        # pointer_depth counts the levels above the function pointer itself;
        # a plain function type (depth -1) becomes a pointer through the
        # reference's innermost level
        own = list(reference.const_pointers)
        is_const = target.is_const or reference.is_const
        depth = target.pointer_depth
        if depth < 0 and own:
            is_const = own.pop()
            depth = 0
        levels = own + list(target.const_pointers)
        return self.intern(Type(
            name=target.name,
            kind=target.kind,
            pointer_depth=len(own) + depth if depth >= 0 else depth,
            const_pointers=tuple(levels),
            is_ref=reference.is_ref or target.is_ref,
            is_const=is_const,
            array_lengths=reference.array_lengths + target.array_lengths,
            function_pointer=target.function_pointer,
            typedef=alias,
        ))

    def resolve(self, type_: Type, _seen: Optional[set] = None) -> Type:
        """Substitute aliases that were unresolved when type_ was registered"""
        if type_.kind != TypeKind.ALIAS or type_.typedef is None:
            return type_
        alias = type_.typedef
        seen = _seen or set()
        if alias.qualified_name in seen or alias.type is None:
            return type_
        seen.add(alias.qualified_name)
        target = self.resolve(alias.type, seen)
        if target.kind == TypeKind.ALIAS:
            return type_
        reference = Type(
            name=type_.name,
            pointer_depth=type_.pointer_depth,
            const_pointers=type_.const_pointers,
            is_ref=type_.is_ref,
            is_const=type_.is_const,
            is_volatile=type_.is_volatile,
            array_lengths=type_.array_lengths,
        )
        return self.compose(reference, target, alias)

    def _signature(self, function: RawType, resolver: LeafResolver) -> Optional[FunctionSignature]:
        return_type = self.register(function.inner, resolver)
        params = [self.register(p, resolver) for p in function.params]
        if not return_type.is_valid or not all(p.is_valid for p in params):
            return None
        return FunctionSignature(return_type, tuple(params), function.is_variadic)
