"""
Declaration tree module

Wraps the JSON AST clang dumps with ``-Xclang -ast-dump=json`` into a graph
of DeclNode objects: parent links, qualified names, source files and a
closed set of declaration kinds. Lookups by clang id and by qualified name
are indexed once when the tree is built.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Optional, Iterator


class DeclKind(Enum):
    TRANSLATION_UNIT = 'translation_unit'
    RECORD = 'record'
    NAMESPACE = 'namespace'
    ENUM = 'enum'
    ENUM_CONSTANT = 'enum_constant'
    TYPEDEF = 'typedef'
    FUNCTION = 'function'
    METHOD = 'method'
    FIELD = 'field'
    VARIABLE = 'variable'
    PARAM = 'param'
    TEMPLATE = 'template'
    TEMPLATE_PARAM = 'template_param'
    STATIC_ASSERT = 'static_assert'
    ATTRIBUTE = 'attribute'
    EXPRESSION = 'expression'
    OTHER = 'other'


# clang JSON "kind" => DeclKind
KIND_MAP = {
    'TranslationUnitDecl': DeclKind.TRANSLATION_UNIT,
    'CXXRecordDecl': DeclKind.RECORD,
    'RecordDecl': DeclKind.RECORD,
    'ClassTemplateSpecializationDecl': DeclKind.RECORD,
    'ClassTemplatePartialSpecializationDecl': DeclKind.RECORD,
    'NamespaceDecl': DeclKind.NAMESPACE,
    'EnumDecl': DeclKind.ENUM,
    'EnumConstantDecl': DeclKind.ENUM_CONSTANT,
    'TypedefDecl': DeclKind.TYPEDEF,
    'TypeAliasDecl': DeclKind.TYPEDEF,
    'FunctionDecl': DeclKind.FUNCTION,
    'CXXMethodDecl': DeclKind.METHOD,
    'CXXConstructorDecl': DeclKind.METHOD,
    'CXXDestructorDecl': DeclKind.METHOD,
    'CXXConversionDecl': DeclKind.METHOD,
    'FieldDecl': DeclKind.FIELD,
    'VarDecl': DeclKind.VARIABLE,
    'ParmVarDecl': DeclKind.PARAM,
    'ClassTemplateDecl': DeclKind.TEMPLATE,
    'FunctionTemplateDecl': DeclKind.TEMPLATE,
    'TypeAliasTemplateDecl': DeclKind.TEMPLATE,
    'VarTemplateDecl': DeclKind.TEMPLATE,
    'TemplateTypeParmDecl': DeclKind.TEMPLATE_PARAM,
    'NonTypeTemplateParmDecl': DeclKind.TEMPLATE_PARAM,
    'TemplateTemplateParmDecl': DeclKind.TEMPLATE_PARAM,
    'StaticAssertDecl': DeclKind.STATIC_ASSERT,
}

# Declarations that open a named scope
SCOPE_KINDS = (DeclKind.RECORD, DeclKind.NAMESPACE)


def classify(clang_kind: str) -> DeclKind:
    if clang_kind in KIND_MAP:
        return KIND_MAP[clang_kind]
    if clang_kind.endswith('Attr'):
        return DeclKind.ATTRIBUTE
    if clang_kind.endswith(('Expr', 'Literal', 'Operator')):
        return DeclKind.EXPRESSION
    return DeclKind.OTHER


class DeclNode:
    """One node of the declaration tree"""

    def __init__(self, data: dict, parent: Optional['DeclNode'] = None):
        self.data = data
        self.parent = parent
        self.clang_kind: str = data.get('kind', '')
        self.kind = classify(self.clang_kind)
        self.name: str = data.get('name', '')
        self.id: str = data.get('id', '')
        self.children: list['DeclNode'] = []
        self.file = ''
        self.range_file = ''
        self.qualified_name = ''

    def __repr__(self) -> str:
        return f'DeclNode({self.clang_kind} {self.qualified_name or self.name})'

    # --- common attributes ---

    @property
    def is_implicit(self) -> bool:
        return bool(self.data.get('isImplicit'))

    @property
    def access(self) -> Optional[str]:
        return self.data.get('access')

    @property
    def tag_used(self) -> str:
        return self.data.get('tagUsed', 'class')

    @property
    def is_definition(self) -> bool:
        """Whether the node carries the full definition"""
        if self.kind == DeclKind.RECORD:
            return bool(self.data.get('completeDefinition'))
        if self.kind == DeclKind.ENUM:
            return any(c.kind == DeclKind.ENUM_CONSTANT for c in self.children)
        return True

    @property
    def is_specialization(self) -> bool:
        return self.clang_kind == 'ClassTemplateSpecializationDecl'

    @property
    def is_partial_specialization(self) -> bool:
        return self.clang_kind == 'ClassTemplatePartialSpecializationDecl'

    @property
    def bases(self) -> list[dict]:
        return self.data.get('bases', [])

    @property
    def type_spelling(self) -> str:
        return self.data.get('type', {}).get('qualType', '')

    @property
    def scoped_enum(self) -> bool:
        return self.data.get('scopedEnumTag') in ('class', 'struct')

    @property
    def offsets(self) -> Optional[tuple[int, int]]:
        """Byte range [begin, end) of the node in its source file"""
        range_ = self.data.get('range')
        if not range_:
            return None
        begin = _expansion(range_.get('begin', {}))
        end = _expansion(range_.get('end', {}))
        if 'offset' not in begin or 'offset' not in end:
            return None
        return begin['offset'], end['offset'] + end.get('tokLen', 0)

    def children_of(self, *kinds: DeclKind) -> Iterator['DeclNode']:
        for child in self.children:
            if child.kind in kinds:
                yield child

    def scope(self) -> Optional['DeclNode']:
        """Nearest enclosing record or namespace"""
        node = self.parent
        while node is not None:
            if node.kind in SCOPE_KINDS:
                return node
            node = node.parent
        return None

    def enclosing_namespace(self) -> Optional['DeclNode']:
        node = self.parent
        while node is not None:
            if node.kind == DeclKind.NAMESPACE:
                return node
            node = node.parent
        return None

    def template_parameters(self) -> list[str]:
        """Names of the template parameters declared directly by this node"""
        return [c.name for c in self.children if c.kind == DeclKind.TEMPLATE_PARAM and c.name]

    def dependent_parameters(self) -> list[str]:
        """Template parameters in effect for this node (empty outside templates)

        The pattern of a class template and everything nested in it is
        dependent; an instantiation listed under the template is not.
        """
        params: list[str] = []
        child, node = self, self
        if node.is_partial_specialization:
            params.extend(node.template_parameters())
        node = self.parent
        while node is not None:
            if node.kind == DeclKind.TEMPLATE and not child.is_specialization:
                params.extend(node.template_parameters())
            if node.kind == DeclKind.RECORD and node.is_partial_specialization:
                params.extend(node.template_parameters())
            if child.is_specialization:
                break
            child, node = node, node.parent
        return params

    def static_assert_message(self) -> Optional[str]:
        for child in self.children:
            if child.clang_kind == 'StringLiteral':
                value = child.data.get('value', '')
                return _unquote(value)
        return None


def _expansion(loc: dict) -> dict:
    """Macro locations are split in spellingLoc/expansionLoc"""
    return loc.get('expansionLoc', loc)


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == '"' and value[-1] == '"':
        value = value[1:-1]
    return value.replace('\\"', '"').replace('\\\\', '\\')


class DeclTree:
    """Indexed declaration tree of one translation unit"""

    LOOKUP_KINDS = (DeclKind.RECORD, DeclKind.ENUM, DeclKind.TYPEDEF, DeclKind.NAMESPACE)

    def __init__(self, data: dict, sources: Optional[dict[str, str]] = None):
        self._sources: dict[str, bytes] = {
            path: text.encode('utf-8') for path, text in (sources or {}).items()
        }
        self._by_id: dict[str, DeclNode] = {}
        self._by_name: dict[str, list[DeclNode]] = {}
        self._last_file = ''
        self.root = self._build(data, None)

    @classmethod
    def load(cls, json_path: str, sources: Optional[dict[str, str]] = None) -> 'DeclTree':
        """Load a tree from a JSON AST dump on disk"""
        with open(json_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls(data, sources)

    @classmethod
    def from_dict(cls, data: dict, sources: Optional[dict[str, str]] = None) -> 'DeclTree':
        return cls(data, sources)

    def _build(self, data: dict, parent: Optional[DeclNode]) -> DeclNode:
        node = DeclNode(data, parent)
        # clang only writes "file" when it differs from the previous location
        self._track_file(data.get('loc', {}))
        node.file = self._last_file
        range_ = data.get('range', {})
        self._track_file(range_.get('begin', {}))
        node.range_file = self._last_file
        self._track_file(range_.get('end', {}))
        node.qualified_name = self._qualify(node)

        if node.id:
            self._by_id[node.id] = node
        if node.kind in self.LOOKUP_KINDS + (DeclKind.ENUM_CONSTANT,) and node.name:
            self._by_name.setdefault(node.qualified_name, []).append(node)

        for child in data.get('inner', []):
            node.children.append(self._build(child, node))
        return node

    def _track_file(self, loc: dict):
        for key in ('spellingLoc', 'expansionLoc'):
            if key in loc:
                self._track_file(loc[key])
        if 'file' in loc:
            self._last_file = loc['file']

    @staticmethod
    def _qualify(node: DeclNode) -> str:
        if not node.name and node.kind != DeclKind.NAMESPACE:
            return ''
        parts = [node.name or '(anonymous namespace)']
        scope = node.parent
        if node.kind == DeclKind.ENUM_CONSTANT and scope is not None and not scope.scoped_enum:
            # unscoped enumerators live in the enum's enclosing scope
            scope = scope.parent
        while scope is not None:
            if scope.kind in SCOPE_KINDS or (scope.kind == DeclKind.ENUM and node.kind == DeclKind.ENUM_CONSTANT):
                if scope.name:
                    parts.append(scope.name)
                elif scope.kind == DeclKind.NAMESPACE:
                    parts.append('(anonymous namespace)')
                else:
                    # member of an unnamed aggregate
                    return ''
            scope = scope.parent
        return '::'.join(reversed(parts))

    # --- lookups ---

    def node(self, node_id: str) -> Optional[DeclNode]:
        return self._by_id.get(node_id)

    def find(self, qualified_name: str, kinds: tuple = LOOKUP_KINDS) -> Optional[DeclNode]:
        """Find the declaration of qualified_name, preferring its definition"""
        candidates = [n for n in self._by_name.get(qualified_name.lstrip(':'), []) if n.kind in kinds]
        if not candidates:
            return None
        definitions = [n for n in candidates if n.is_definition]
        primary = [n for n in definitions if not n.is_specialization]
        return (primary or definitions or candidates)[0]

    def definition_of(self, node: DeclNode) -> DeclNode:
        """The definition of the entity node declares, or node itself"""
        if not node.qualified_name:
            return node
        found = self.find(node.qualified_name, (node.kind,))
        if found is not None and found.is_definition:
            return found
        return node

    def lookup(self, name: str, scope: Optional[DeclNode], kinds: tuple = LOOKUP_KINDS) -> Optional[DeclNode]:
        """Resolve a written name from inside scope, innermost scope first"""
        if name.startswith('::'):
            return self.find(name[2:], kinds)
        while scope is not None:
            if scope.kind in SCOPE_KINDS and scope.qualified_name:
                found = self.find(f'{scope.qualified_name}::{name}', kinds)
                if found is not None:
                    return found
            scope = scope.parent
        return self.find(name, kinds)

    # --- source text ---

    def source(self, path: str) -> Optional[bytes]:
        if path not in self._sources:
            try:
                self._sources[path] = Path(path).read_bytes()
            except OSError:
                return None
        return self._sources[path]

    def text(self, node: DeclNode) -> Optional[str]:
        """Source text covered by node's range"""
        offsets = node.offsets
        path = node.range_file or node.file
        if offsets is None or not path:
            return None
        source = self.source(path)
        if source is None:
            return None
        begin, end = offsets
        if begin < 0 or end > len(source) or begin > end:
            return None
        return source[begin:end].decode('utf-8', errors='replace')
