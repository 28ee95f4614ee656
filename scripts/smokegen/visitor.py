"""
Declaration visitor module

Walks a DeclTree once and registers what it finds into a Model: classes,
namespaces, enums, typedefs and free functions, with their bases, methods,
fields and parameters. Registration is reentrant: a member type naming a
class registers that class first, and a class already present in the model
(even half-built) is returned as is, which ends the recursion on
self-referential structures.

Anything the model cannot represent is skipped member by member, with the
reason logged at DEBUG; nothing raises across the visitor.
"""

import logging
import re
from typing import Optional

from .config import ParserOptions
from .decltree import DeclTree, DeclNode, DeclKind
from .errors import TypeSpellingError
from .model import (
    Model, Class, ClassKind, Enum, EnumMember, Function, Typedef,
    Method, Field, Parameter, Property, Access, MemberFlag, BaseClassSpecifier,
)
from .typeparse import RawType, RawKind, parse_type
from .types import Type, TypeKind, LeafResolver

logger = logging.getLogger(__name__)

CLASS_KINDS = {
    'class': ClassKind.CLASS,
    'struct': ClassKind.STRUCT,
    'union': ClassKind.UNION,
}

# static_assert message prefix carrying a Q_PROPERTY body
PROPERTY_TAG = 'qt_property:'

PROPERTY_KEYWORDS = {
    'READ', 'WRITE', 'RESET', 'NOTIFY', 'MEMBER', 'REVISION', 'DESIGNABLE',
    'SCRIPTABLE', 'STORED', 'USER', 'CONSTANT', 'FINAL', 'REQUIRED', 'BINDABLE',
}

# property keywords whose argument names an accessor method
ACCESSOR_KEYWORDS = ('READ', 'WRITE', 'RESET')

_WORD_RE = re.compile(r'[A-Za-z_]\w*')
_ENUM_CAST_RE = re.compile(r'^\((.+)\)\s*(-?\d+)$')
_EXPLICIT_RE = re.compile(r'\bexplicit\b')
_VIRTUAL_RE = re.compile(r'\bvirtual\b')


def _find_constant_value(node: DeclNode) -> Optional[str]:
    """Recursively find ConstantExpr with evaluated value."""
    if node.clang_kind == 'ConstantExpr' and 'value' in node.data:
        return node.data['value']
    for child in node.children:
        value = _find_constant_value(child)
        if value is not None:
            return value
    return None


def _is_dependent(spelling: str, params: set[str]) -> bool:
    """Whether a type spelling mentions a template parameter"""
    if 'type-parameter-' in spelling:
        return True
    return bool(params) and not params.isdisjoint(_WORD_RE.findall(spelling))


def parse_property(body: str) -> Optional[Property]:
    """Parse a Q_PROPERTY body: "<type> <name> READ getter WRITE setter ..." """
    tokens = body.split()
    first = next((i for i, tok in enumerate(tokens) if tok in PROPERTY_KEYWORDS), len(tokens))
    if first < 2:
        return None
    prop = Property(name=tokens[first - 1], type=' '.join(tokens[:first - 1]))
    i = first
    while i < len(tokens):
        keyword = tokens[i]
        arg = tokens[i + 1] if i + 1 < len(tokens) and tokens[i + 1] not in PROPERTY_KEYWORDS else None
        if keyword == 'READ':
            prop.read = arg
        elif keyword == 'WRITE':
            prop.write = arg
        elif keyword == 'NOTIFY':
            prop.notify = arg
        elif keyword == 'RESET':
            prop.reset = arg
        i += 2 if arg is not None else 1
    return prop


class _ScopeResolver(LeafResolver):
    """Resolves names written inside one declaration, innermost scope first"""

    def __init__(self, visitor: 'DeclarationVisitor', node: DeclNode):
        self.visitor = visitor
        self.node = node
        self.compose_aliases = visitor.options.resolve_typedefs

    def entity(self, name: str, tag: str = ''):
        return self.visitor.resolve_name(name, self.node, tag)

    def enumerator(self, text: str) -> Optional[str]:
        return self.visitor.resolve_enumerator(text, self.node)


class DeclarationVisitor:
    """Single pass from a declaration tree into a Model"""

    def __init__(self, model: Model, options: Optional[ParserOptions] = None):
        self.model = model
        self.options = options or ParserOptions()
        self.tree: Optional[DeclTree] = None

    def visit(self, tree: DeclTree) -> Model:
        """Register every declaration of tree; may be called once per header"""
        self.tree = tree
        self._visit(tree.root)
        return self.model

    def _visit(self, node: DeclNode):
        if node.is_implicit:
            return
        kind = node.kind
        if kind == DeclKind.RECORD:
            # unnamed aggregates have no binding; their members belong to the enclosing class
            if node.name:
                self.register_class(node)
            self._visit_children(node)
        elif kind == DeclKind.NAMESPACE:
            self.register_namespace(node)
            self._visit_children(node)
        elif kind == DeclKind.ENUM:
            if node.name:
                self.register_enum(node)
        elif kind == DeclKind.TYPEDEF:
            self.register_typedef(node)
        elif kind == DeclKind.FUNCTION:
            self.register_function(node)
        elif kind == DeclKind.TEMPLATE:
            # function and alias templates need an instantiation to mean anything
            if node.clang_kind == 'ClassTemplateDecl':
                self._visit_children(node)
        elif kind == DeclKind.TRANSLATION_UNIT:
            self._visit_children(node)
        elif node.clang_kind in ('LinkageSpecDecl', 'ExportDecl'):
            self._visit_children(node)
        # members, parameters and expressions are handled by their owners

    def _visit_children(self, node: DeclNode):
        for child in node.children:
            self._visit(child)

    def _resolver(self, node: DeclNode) -> _ScopeResolver:
        return _ScopeResolver(self, node)

    def _register_type(self, spelling: str, node: DeclNode) -> Type:
        """Parse and register a spelling written at node; INVALID when unparseable"""
        try:
            raw = parse_type(spelling)
        except TypeSpellingError as e:
            logger.debug(f'unparseable type {e.spelling!r} ({e.reason})')
            return self.model.types.INVALID
        return self.model.types.register(raw, self._resolver(node))

    # --- name resolution ---

    def resolve_name(self, name: str, scope: DeclNode, tag: str = ''):
        """The Class, Enum or Typedef a name written inside scope refers to"""
        if tag in ('struct', 'class', 'union'):
            kinds = (DeclKind.RECORD,)
        elif tag == 'enum':
            kinds = (DeclKind.ENUM,)
        else:
            kinds = (DeclKind.RECORD, DeclKind.ENUM, DeclKind.TYPEDEF)
        node = self.tree.lookup(name, scope, kinds)
        if node is None:
            # declared by a tree visited earlier
            qname = name.lstrip(':')
            return (self.model.find_class(qname) or self.model.find_enum(qname)
                    or self.model.find_typedef(qname))
        if node.kind == DeclKind.RECORD:
            return self.register_class(node)
        if node.kind == DeclKind.ENUM:
            return self.register_enum(node)
        return self.register_typedef(node)

    def resolve_enumerator(self, text: str, scope: DeclNode) -> Optional[str]:
        """Qualified enumerator for a non-type template argument

        clang spells enum-typed arguments either by name or as a cast of
        the numeric value, "(Color)1".
        """
        m = _ENUM_CAST_RE.match(text)
        if m:
            enum_node = self.tree.lookup(m.group(1).strip(), scope, (DeclKind.ENUM,))
            if enum_node is None:
                return None
            value = int(m.group(2))
            for constant, constant_value in self._enumerator_values(enum_node):
                if constant_value == value:
                    return constant.qualified_name
            return None
        if not _WORD_RE.fullmatch(text.replace('::', '_')):
            return None
        node = self.tree.lookup(text, scope, (DeclKind.ENUM_CONSTANT,))
        return node.qualified_name if node is not None else None

    @staticmethod
    def _enumerator_values(enum_node: DeclNode):
        next_value = 0
        for constant in enum_node.children_of(DeclKind.ENUM_CONSTANT):
            value = _find_constant_value(constant)
            if value is not None:
                next_value = int(value)
            yield constant, next_value
            next_value += 1

    def _scope_entity(self, node: DeclNode) -> Optional[Class]:
        """Class or namespace entity enclosing node"""
        scope = node.scope()
        if scope is None:
            return None
        if scope.kind == DeclKind.NAMESPACE:
            return self.register_namespace(scope)
        if not scope.name:
            return None
        return self.register_class(scope)

    @staticmethod
    def _namespace_of(node: DeclNode) -> str:
        ns = node.enclosing_namespace()
        return ns.qualified_name if ns is not None else ''

    # --- classes ---

    def register_namespace(self, node: DeclNode) -> Optional[Class]:
        if not node.name:
            return None
        existing = self.model.find_class(node.qualified_name)
        if existing is not None:
            return existing
        outer = node.enclosing_namespace()
        parent = self.register_namespace(outer) if outer is not None else None
        return self.model.register_class(
            node.qualified_name, node.name,
            kind=ClassKind.NAMESPACE,
            parent=parent,
            nspace=outer.qualified_name if outer is not None else '',
            is_forward_decl=False,
            file_name=node.file,
        )

    def register_class(self, node: DeclNode) -> Optional[Class]:
        """Get or create the Class for node, registering its members on first definition"""
        defn = self.tree.definition_of(node)
        qname = defn.qualified_name
        if not qname:
            return None
        klass = self.model.find_class(qname)
        if klass is not None and (klass.has_definition() or not defn.is_definition):
            return klass

        klass = self.model.register_class(qname, defn.name)
        if defn.is_definition:
            # from here on the class counts as registered
            klass.is_forward_decl = False
        klass.kind = CLASS_KINDS.get(defn.tag_used, ClassKind.CLASS)
        klass.access = Access.from_clang(defn.access)
        klass.nspace = self._namespace_of(defn)
        klass.file_name = defn.file
        params = defn.dependent_parameters()
        if params or defn.is_specialization or defn.is_partial_specialization:
            klass.is_template = True
        klass.parent = self._scope_entity(defn)

        if defn.is_definition:
            self._register_members(klass, defn, set(params))
        return klass

    def _register_members(self, klass: Class, defn: DeclNode, params: set[str]):
        if not params:
            self._register_bases(klass, defn)

        tags = self._property_tags(klass, defn) if self.options.qt_mode else {}

        # "signals:" and "slots:" sections are access specifiers carrying an annotation
        section = MemberFlag.NONE
        for child in defn.children:
            if child.clang_kind == 'AccessSpecDecl':
                section = self._annotation_flags(child) if self.options.qt_mode else MemberFlag.NONE
                continue
            if child.kind != DeclKind.METHOD or child.is_implicit:
                continue
            method = self._register_method(klass, child, params, tags)
            if method is not None:
                method.flags |= section
                klass.append_method(method)

        for child in defn.children_of(DeclKind.FIELD, DeclKind.VARIABLE):
            field = self._register_field(klass, child, params)
            if field is not None:
                klass.fields.append(field)

    def _register_bases(self, klass: Class, defn: DeclNode):
        for base in defn.bases:
            type_ = base.get('type', {})
            spelling = type_.get('desugaredQualType', type_.get('qualType', ''))
            try:
                raw = parse_type(spelling)
            except TypeSpellingError as e:
                logger.debug(f'{klass.qualified_name}: unparseable base {e.spelling!r}')
                continue
            entity = self.resolve_name(raw.name, defn, raw.tag) if raw.kind == RawKind.NAMED else None
            if isinstance(entity, Typedef):
                resolved = entity.resolved_type(self.model.types)
                entity = resolved.entity if resolved is not None else None
            if not isinstance(entity, Class):
                logger.debug(f'{klass.qualified_name}: base {spelling!r} not found')
                continue
            klass.base_classes.append(BaseClassSpecifier(
                entity, Access.from_clang(base.get('access')), bool(base.get('isVirtual'))))

    def _property_tags(self, klass: Class, defn: DeclNode) -> dict[str, MemberFlag]:
        """Framework metadata pass; runs before any method of the class is registered"""
        method_names = {m.name for m in defn.children_of(DeclKind.METHOD)}
        tags: dict[str, MemberFlag] = {}
        for assertion in defn.children_of(DeclKind.STATIC_ASSERT):
            message = assertion.static_assert_message()
            if not message or not message.startswith(PROPERTY_TAG):
                continue
            prop = parse_property(message[len(PROPERTY_TAG):])
            if prop is None:
                logger.debug(f'{klass.qualified_name}: malformed property {message!r}')
                continue
            klass.properties.append(prop)
            for accessor in (prop.read, prop.write, prop.reset):
                if accessor is None:
                    continue
                if accessor not in method_names:
                    logger.debug(f'{klass.qualified_name}: property {prop.name} names unknown method {accessor}')
                    continue
                tags[accessor] = tags.get(accessor, MemberFlag.NONE) | MemberFlag.PROPERTY_ACCESSOR
        return tags

    # --- methods ---

    def _parse_parameters(self, node: DeclNode) -> Optional[list[tuple[DeclNode, RawType]]]:
        result = []
        for param in node.children_of(DeclKind.PARAM):
            try:
                result.append((param, parse_type(param.type_spelling)))
            except TypeSpellingError as e:
                logger.debug(f'unparseable parameter type {e.spelling!r} ({e.reason})')
                return None
        return result

    def _register_method(self, klass: Class, node: DeclNode, params: set[str],
                         tags: dict[str, MemberFlag]) -> Optional[Method]:
        where = f'{klass.qualified_name}::{node.name}'
        access = Access.from_clang(node.access)
        try:
            function = parse_type(node.type_spelling)
        except TypeSpellingError as e:
            logger.debug(f'skipping {where}: unparseable type {e.spelling!r}')
            return None
        if function.kind != RawKind.FUNCTION:
            return None
        parsed = self._parse_parameters(node)
        if parsed is None:
            logger.debug(f'skipping {where}: unparseable parameter')
            return None
        if any(raw.has_rvalue_ref() for _, raw in parsed):
            logger.debug(f'skipping {where}: rvalue reference parameter')
            return None
        if params and access != Access.PRIVATE:
            if _is_dependent(node.type_spelling, params):
                logger.debug(f'skipping {where}: depends on template parameters')
                return None

        flags = self._method_flags(klass, node, function, tags)
        if flags & MemberFlag.DELETED:
            access = Access.PRIVATE

        if flags & MemberFlag.CONSTRUCTOR:
            return_type = self.model.types.intern(Type(
                name=klass.qualified_name, kind=TypeKind.CLASS, pointer_depth=1,
                const_pointers=(False,), entity=klass))
        else:
            return_type = self.model.types.register(function.inner, self._resolver(node))
        if not return_type.is_valid:
            logger.debug(f'skipping {where}: unrepresentable return type')
            return None

        parameters = self._parameters(node, parsed)
        if parameters is None:
            logger.debug(f'skipping {where}: unrepresentable parameter type')
            return None

        method = Method(klass, node.name, return_type, access, parameters, flags)
        if not method.is_virtual and self._overrides_virtual(klass, method):
            method.flags |= MemberFlag.VIRTUAL
        return method

    def _method_flags(self, klass: Class, node: DeclNode, function: RawType,
                      tags: dict[str, MemberFlag]) -> MemberFlag:
        data = node.data
        flags = tags.get(node.name, MemberFlag.NONE)
        text = self.tree.text(node) or ''
        head = text.split('(', 1)[0]

        if node.clang_kind == 'CXXConstructorDecl':
            flags |= MemberFlag.CONSTRUCTOR
            if data.get('explicit') or _EXPLICIT_RE.search(head):
                flags |= MemberFlag.EXPLICIT
        elif node.clang_kind == 'CXXDestructorDecl':
            flags |= MemberFlag.DESTRUCTOR
        elif node.clang_kind == 'CXXConversionDecl':
            flags |= MemberFlag.CONVERSION
            if data.get('explicit') or _EXPLICIT_RE.search(head):
                flags |= MemberFlag.EXPLICIT

        if function.is_const:
            flags |= MemberFlag.CONST
        if data.get('storageClass') == 'static':
            flags |= MemberFlag.STATIC
        if data.get('virtual') or _VIRTUAL_RE.search(head):
            flags |= MemberFlag.VIRTUAL
        if data.get('pure'):
            flags |= MemberFlag.VIRTUAL | MemberFlag.PURE_VIRTUAL
        if data.get('explicitlyDeleted'):
            flags |= MemberFlag.DELETED

        for attr in node.children_of(DeclKind.ATTRIBUTE):
            if attr.clang_kind in ('OverrideAttr', 'FinalAttr'):
                flags |= MemberFlag.VIRTUAL
        if self.options.qt_mode:
            flags |= self._annotation_flags(node)
        return flags

    def _annotation_flags(self, node: DeclNode) -> MemberFlag:
        """SIGNAL or SLOT from the annotate attributes of node"""
        flags = MemberFlag.NONE
        for attr in node.children_of(DeclKind.ATTRIBUTE):
            if attr.clang_kind != 'AnnotateAttr':
                continue
            annotation = ' '.join(
                [self.tree.text(attr) or '', attr.data.get('annotation', '')]
                + [c.data.get('value', '') for c in attr.children if c.clang_kind == 'StringLiteral'])
            if 'qt_signal' in annotation or 'Q_SIGNAL' in annotation:
                flags |= MemberFlag.SIGNAL
            elif 'qt_slot' in annotation or 'Q_SLOT' in annotation:
                flags |= MemberFlag.SLOT
        return flags

    def _overrides_virtual(self, klass: Class, method: Method) -> bool:
        """Whether a base declares method (or a destructor) virtual"""
        for base in klass.base_classes:
            for candidate in base.base_class.methods:
                if not candidate.is_virtual:
                    continue
                if method.is_destructor and candidate.is_destructor:
                    return True
                if not method.is_destructor and candidate.signature() == method.signature():
                    return True
            if self._overrides_virtual(base.base_class, method):
                return True
        return False

    def _parameters(self, node: DeclNode, parsed: list[tuple[DeclNode, RawType]]) -> Optional[list[Parameter]]:
        parameters = []
        for param, raw in parsed:
            type_ = self.model.types.register(raw, self._resolver(node))
            if not type_.is_valid:
                return None
            parameters.append(Parameter(param.name, type_, self._default_value(param)))
        return parameters

    # --- default values ---

    def _default_value(self, param: DeclNode) -> Optional[str]:
        if not param.data.get('init'):
            return None
        expr = next(param.children_of(DeclKind.EXPRESSION), None)
        if expr is None:
            return None
        text = self.tree.text(expr)
        if text is None:
            return self._render_expression(expr)
        return self._qualify_references(expr, text)

    def _decl_refs(self, expr: DeclNode):
        if expr.clang_kind == 'DeclRefExpr':
            yield expr
        for child in expr.children:
            yield from self._decl_refs(child)

    def _referenced_name(self, ref: DeclNode) -> Optional[str]:
        referenced = ref.data.get('referencedDecl', {})
        target = self.tree.node(referenced.get('id', ''))
        if target is None or not target.qualified_name:
            return None
        if target.kind not in (DeclKind.ENUM_CONSTANT, DeclKind.VARIABLE, DeclKind.FUNCTION, DeclKind.METHOD):
            return None
        return target.qualified_name

    def _qualify_references(self, expr: DeclNode, text: str) -> str:
        """Rewrite names in a default value to their qualified form, or keep text verbatim"""
        base = expr.offsets
        if base is None:
            return text
        source = text.encode('utf-8')
        replacements = []
        for ref in self._decl_refs(expr):
            name = self._referenced_name(ref)
            offsets = ref.offsets
            if name is None or offsets is None:
                continue
            start, end = offsets[0] - base[0], offsets[1] - base[0]
            if start < 0 or end > len(source):
                return text
            replacements.append((start, end, name))
        for start, end, name in sorted(replacements, reverse=True):
            source = source[:start] + name.encode('utf-8') + source[end:]
        return source.decode('utf-8', errors='replace')

    def _render_expression(self, expr: DeclNode) -> str:
        """Print an expression tree when no source text is available"""
        data = expr.data
        kind = expr.clang_kind
        operands = [self._render_expression(c) for c in expr.children_of(DeclKind.EXPRESSION)]
        if kind in ('IntegerLiteral', 'FloatingLiteral', 'FixedPointLiteral', 'StringLiteral'):
            return str(data.get('value', ''))
        if kind == 'CharacterLiteral':
            return repr(chr(int(data.get('value', 0))))
        if kind == 'CXXBoolLiteralExpr':
            return 'true' if data.get('value') else 'false'
        if kind == 'CXXNullPtrLiteralExpr':
            return 'nullptr'
        if kind == 'GNUNullExpr':
            return 'NULL'
        if kind == 'DeclRefExpr':
            return self._referenced_name(expr) or data.get('referencedDecl', {}).get('name', '')
        if kind == 'UnaryOperator' and operands:
            if data.get('isPostfix'):
                return operands[0] + data.get('opcode', '')
            return data.get('opcode', '') + operands[0]
        if kind == 'BinaryOperator' and len(operands) == 2:
            return f'{operands[0]} {data.get("opcode", "")} {operands[1]}'
        if kind == 'ParenExpr' and operands:
            return f'({operands[0]})'
        if kind in ('CStyleCastExpr', 'CXXStaticCastExpr') and operands:
            return f'({expr.type_spelling}){operands[0]}'
        if kind == 'CXXConstructExpr' and data.get('elidable') and operands:
            return operands[0]
        if kind in ('CXXConstructExpr', 'CXXTemporaryObjectExpr', 'CXXFunctionalCastExpr',
                    'CXXUnresolvedConstructExpr'):
            return f'{expr.type_spelling}({", ".join(operands)})'
        if kind == 'InitListExpr':
            return '{' + ', '.join(operands) + '}'
        # ImplicitCastExpr, ConstantExpr, MaterializeTemporaryExpr, ...
        return operands[0] if operands else ''

    # --- fields ---

    def _register_field(self, klass: Class, node: DeclNode, params: set[str]) -> Optional[Field]:
        if not node.name:
            return None
        access = Access.from_clang(node.access)
        if params and access != Access.PRIVATE and _is_dependent(node.type_spelling, params):
            logger.debug(f'skipping {klass.qualified_name}::{node.name}: depends on template parameters')
            return None
        type_ = self._register_type(node.type_spelling, node)
        if not type_.is_valid:
            logger.debug(f'dropping {klass.qualified_name}::{node.name}: unrepresentable type')
            return None
        flags = MemberFlag.STATIC if node.kind == DeclKind.VARIABLE else MemberFlag.NONE
        return Field(klass, node.name, type_, access, flags)

    # --- enums, typedefs, functions ---

    def register_enum(self, node: DeclNode) -> Optional[Enum]:
        """Enums need their definition; a forward-only enum yields None"""
        defn = self.tree.definition_of(node)
        qname = defn.qualified_name
        if not qname:
            return None
        existing = self.model.find_enum(qname)
        if existing is not None:
            return existing
        if not defn.is_definition:
            logger.debug(f'skipping enum {qname}: no definition')
            return None
        if defn.dependent_parameters():
            logger.debug(f'skipping enum {qname}: depends on template parameters')
            return None
        enum = self.model.register_enum(
            qname, defn.name,
            nspace=self._namespace_of(defn),
            access=Access.from_clang(defn.access),
            is_scoped=defn.scoped_enum,
            file_name=defn.file,
        )
        for constant in defn.children_of(DeclKind.ENUM_CONSTANT):
            name = f'{defn.name}::{constant.name}' if enum.is_scoped else constant.name
            enum.members.append(EnumMember(enum, name))
        enum.parent = self._scope_entity(defn)
        return enum

    def register_typedef(self, node: DeclNode) -> Optional[Typedef]:
        qname = node.qualified_name
        if not qname:
            return None
        existing = self.model.find_typedef(qname)
        if existing is not None:
            return existing
        params = node.dependent_parameters()
        if params:
            logger.debug(f'skipping typedef {qname}: depends on template parameters')
            return None
        try:
            raw = parse_type(node.type_spelling)
        except TypeSpellingError as e:
            logger.debug(f'skipping typedef {qname}: unparseable type {e.spelling!r}')
            return None
        if raw.leaf().is_anonymous:
            # typedef struct { ... } Name; the aggregate is not representable
            logger.debug(f'skipping typedef {qname}: anonymous aggregate')
            return None

        typedef = self.model.register_typedef(
            qname, node.name,
            nspace=self._namespace_of(node),
            file_name=node.file,
        )
        # registered before its type so a reference back to the alias finds it
        type_ = self.model.types.register(raw, self._resolver(node))
        typedef.type = type_ if type_.is_valid else None
        typedef.parent = self._scope_entity(node)
        return typedef

    def register_function(self, node: DeclNode) -> Optional[Function]:
        qname = node.qualified_name
        if not qname or node.dependent_parameters():
            return None
        where = f'function {qname}'
        try:
            function = parse_type(node.type_spelling)
        except TypeSpellingError as e:
            logger.debug(f'skipping {where}: unparseable type {e.spelling!r}')
            return None
        if function.kind != RawKind.FUNCTION:
            return None
        parsed = self._parse_parameters(node)
        if parsed is None or any(raw.has_rvalue_ref() for _, raw in parsed):
            logger.debug(f'skipping {where}: unsupported parameter')
            return None
        return_type = self.model.types.register(function.inner, self._resolver(node))
        parameters = self._parameters(node, parsed)
        if not return_type.is_valid or parameters is None:
            logger.debug(f'skipping {where}: unrepresentable type')
            return None
        return self.model.register_function(Function(
            name=node.name,
            qualified_name=qname,
            return_type=return_type,
            parent=self._scope_entity(node),
            nspace=self._namespace_of(node),
            parameters=parameters,
            file_name=node.file,
        ))


def build_model(trees: list[DeclTree], options: Optional[ParserOptions] = None) -> Model:
    """Visit every tree into one fresh Model and freeze it"""
    model = Model()
    visitor = DeclarationVisitor(model, options)
    for tree in trees:
        visitor.visit(tree)
    model.freeze()
    return model
