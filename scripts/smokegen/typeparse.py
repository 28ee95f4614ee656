"""
Type spelling parser

clang's JSON AST describes every declared type by its spelling
(``qualType``), e.g. ``const char *const *`` or ``int (*)(char, ...)``.
This module turns such a spelling into a small tree of RawType nodes, the
raw type descriptor the type registry canonicalizes.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .errors import TypeSpellingError


class RawKind(Enum):
    NAMED = 'named'
    VALUE = 'value'  # non-type template argument
    POINTER = 'pointer'
    LVALUE_REF = 'lvalue_ref'
    RVALUE_REF = 'rvalue_ref'
    ARRAY = 'array'
    FUNCTION = 'function'
    MEMBER_POINTER = 'member_pointer'


@dataclass
class RawType:
    """One layer of a parsed type spelling"""
    kind: RawKind
    name: str = ''
    inner: Optional['RawType'] = None
    is_const: bool = False
    is_volatile: bool = False
    template_args: list['RawType'] = field(default_factory=list)
    length: Optional[int] = None
    params: list['RawType'] = field(default_factory=list)
    is_variadic: bool = False
    is_anonymous: bool = False
    tag: str = ''  # elaborated keyword (struct, enum, ...)

    def leaf(self) -> 'RawType':
        """Innermost layer (the named type or value)"""
        node = self
        while node.inner is not None:
            node = node.inner
        return node

    def walk(self):
        """Yield every layer, parameter and template argument"""
        yield self
        if self.inner is not None:
            yield from self.inner.walk()
        for p in self.params:
            yield from p.walk()
        for arg in self.template_args:
            yield from arg.walk()

    def has_rvalue_ref(self) -> bool:
        return self.kind == RawKind.RVALUE_REF


# Words that combine into a builtin type name ("unsigned long long")
BUILTIN_WORDS = {
    'void', 'bool', 'char', 'wchar_t', 'char8_t', 'char16_t', 'char32_t',
    'short', 'int', 'long', 'signed', 'unsigned', 'float', 'double',
    '__int128', '_Bool', '__fp16', '_Float16', '__bf16',
}

ELABORATED_KEYWORDS = {'struct', 'class', 'union', 'enum', 'typename'}

_TOKEN_RE = re.compile(r"""
    \s*(?:
        (?P<memptr>(?:::)?[A-Za-z_]\w*(?:\s*<[^()]*?>)?(?:::[A-Za-z_]\w*)*\s*::\s*\*)
      | (?P<ident>(?:::)?[A-Za-z_~]\w*(?:::[A-Za-z_~]\w*)*)
      | (?P<number>\d[\w.']*)
      | (?P<punct>\.\.\.|&&|::|[*&()\[\]<>,=+\-/|^!~%:.?])
      | (?P<string>"(?:[^"\\]|\\.)*")
    )""", re.VERBOSE)

# clang's spelling of unnamed aggregates, "(unnamed struct at f.h:3:5)" or
# "(anonymous union at f.h:7:3)", and of anonymous namespaces in qualified names
_ANONYMOUS_RE = re.compile(r'\((?:unnamed|anonymous) (?:struct|class|union|enum) at [^()]*\)')
_ANONYMOUS_NAMESPACE = '(anonymous namespace)'
_ANONYMOUS_NAMESPACE_TOKEN = '__anonymous_namespace__'


def tokenize(spelling: str) -> list[str]:
    tokens = []
    pos = 0
    text = spelling.strip()
    while pos < len(text):
        m = _TOKEN_RE.match(text, pos)
        if m is None or m.end() == pos:
            raise TypeSpellingError(spelling, f'unexpected character at {pos}')
        tok = m.group(m.lastgroup)
        if m.lastgroup == 'memptr':
            tok = re.sub(r'\s+', '', tok)
        tokens.append(tok)
        pos = m.end()
        while pos < len(text) and text[pos].isspace():
            pos += 1
    return tokens


class _Parser:
    """Recursive descent over the tokens of one type spelling"""

    def __init__(self, tokens: list[str], spelling: str):
        self.tokens = tokens
        self.spelling = spelling
        self.pos = 0

    def peek(self, offset: int = 0) -> Optional[str]:
        i = self.pos + offset
        return self.tokens[i] if i < len(self.tokens) else None

    def next(self) -> str:
        tok = self.peek()
        if tok is None:
            self.fail('unexpected end')
        self.pos += 1
        return tok

    def expect(self, tok: str):
        got = self.next()
        if got != tok:
            self.fail(f'expected {tok!r}, got {got!r}')

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def fail(self, reason: str):
        raise TypeSpellingError(self.spelling, reason)

    def skip_balanced(self):
        """Advance to the ')' matching an already consumed '('"""
        depth = 1
        while True:
            tok = self.next()
            if tok in ('(', '['):
                depth += 1
            elif tok in (')', ']'):
                depth -= 1
                if depth == 0:
                    self.pos -= 1
                    return

    # type := specifiers declarator
    def parse_type(self) -> RawType:
        base = self.specifiers()
        return self.declarator(base)

    def specifiers(self) -> RawType:
        is_const = is_volatile = False
        words: list[str] = []
        name = ''
        template_args: list[RawType] = []
        tag = ''

        while not self.at_end():
            tok = self.peek()
            if tok == 'const':
                self.next()
                is_const = True
            elif tok == 'volatile':
                self.next()
                is_volatile = True
            elif tok in ELABORATED_KEYWORDS:
                self.next()
                if tok != 'typename':
                    tag = tok
            elif tok in BUILTIN_WORDS and not name:
                words.append(self.next())
            elif _is_identifier(tok) and not name and not words:
                name = self.next()
                while self.peek() == '<':
                    self.next()
                    template_args = self.template_arguments()
                    if self.peek() is not None and self.peek().startswith('::') and _is_identifier(self.peek()):
                        # A<int>::B, the arguments belong to the scope, keep them in the name
                        name = f'{name}<{", ".join(_render(a) for a in template_args)}>{self.next()}'
                        template_args = []
            else:
                break

        if words:
            name = ' '.join(words)
        if not name:
            self.fail('missing type name')
        return RawType(RawKind.NAMED, name=name.lstrip(':') if name.startswith('::') else name,
                       is_const=is_const, is_volatile=is_volatile,
                       template_args=template_args, tag=tag)

    def template_arguments(self) -> list[RawType]:
        args = []
        current: list[str] = []
        depth = 0
        while True:
            tok = self.next()
            if tok in ('<', '(', '['):
                depth += 1
            elif tok in (')', ']'):
                depth -= 1
            elif tok == '>':
                if depth == 0:
                    if current:
                        args.append(self._template_argument(current))
                    return args
                depth -= 1
            elif tok == ',' and depth == 0:
                args.append(self._template_argument(current))
                current = []
                continue
            current.append(tok)

    def _template_argument(self, tokens: list[str]) -> RawType:
        if not tokens:
            self.fail('empty template argument')
        if _looks_like_value(tokens):
            return RawType(RawKind.VALUE, name=''.join(tokens))
        sub = _Parser(tokens, self.spelling)
        try:
            arg = sub.parse_type()
            if not sub.at_end():
                raise TypeSpellingError(self.spelling, 'trailing tokens')
        except TypeSpellingError:
            return RawType(RawKind.VALUE, name=''.join(tokens))
        return arg

    def cv(self) -> tuple[bool, bool]:
        is_const = is_volatile = False
        while self.peek() in ('const', 'volatile', '__restrict', 'restrict'):
            tok = self.next()
            if tok == 'const':
                is_const = True
            elif tok == 'volatile':
                is_volatile = True
        return is_const, is_volatile

    def declarator(self, base: RawType) -> RawType:
        tok = self.peek()
        if tok == '*':
            self.next()
            is_const, is_volatile = self.cv()
            return self.declarator(RawType(RawKind.POINTER, inner=base,
                                           is_const=is_const, is_volatile=is_volatile))
        if tok in ('&', '&&'):
            self.next()
            kind = RawKind.LVALUE_REF if tok == '&' else RawKind.RVALUE_REF
            return self.declarator(RawType(kind, inner=base))
        if tok is not None and tok.endswith('::*'):
            self.next()
            is_const, is_volatile = self.cv()
            return self.declarator(RawType(RawKind.MEMBER_POINTER, name=tok[:-3], inner=base,
                                           is_const=is_const, is_volatile=is_volatile))
        return self.direct(base)

    def direct(self, base: RawType) -> RawType:
        if self.peek() == '(' and self._is_group():
            self.next()
            start = self.pos
            self.skip_balanced()
            end = self.pos
            self.expect(')')
            # suffixes after the group bind tighter than the grouped declarator
            outer = self.suffixes(base)
            sub = _Parser(self.tokens[start:end], self.spelling)
            result = sub.declarator(outer)
            if not sub.at_end():
                self.fail('trailing tokens in declarator group')
            return result
        return self.suffixes(base)

    def _is_group(self) -> bool:
        nxt = self.peek(1)
        return nxt in ('*', '&', '&&', '(') or (nxt is not None and nxt.endswith('::*'))

    def suffixes(self, base: RawType) -> RawType:
        tok = self.peek()
        if tok == '[':
            self.next()
            length = None
            if self.peek() != ']':
                size = self.next()
                try:
                    length = int(size.rstrip('uUlL'), 0)
                except ValueError:
                    self.fail(f'bad array length {size!r}')
            self.expect(']')
            element = self.suffixes(base)
            return RawType(RawKind.ARRAY, inner=element, length=length)
        if tok == '(':
            self.next()
            params, variadic = self.parameters()
            is_const, is_volatile = self.cv()
            self._skip_function_trailer()
            return RawType(RawKind.FUNCTION, inner=base, params=params, is_variadic=variadic,
                           is_const=is_const, is_volatile=is_volatile)
        return base

    def parameters(self) -> tuple[list[RawType], bool]:
        params = []
        variadic = False
        if self.peek() == ')':
            self.next()
            return params, variadic
        while True:
            if self.peek() == '...':
                self.next()
                variadic = True
            else:
                params.append(self.parse_type())
            tok = self.next()
            if tok == ')':
                break
            if tok != ',':
                self.fail(f'unexpected {tok!r} in parameter list')
        if len(params) == 1 and params[0].kind == RawKind.NAMED and params[0].name == 'void' \
                and not params[0].is_const:
            params = []
        return params, variadic

    def _skip_function_trailer(self):
        while self.peek() in ('&', '&&', 'noexcept', 'throw'):
            tok = self.next()
            if tok in ('noexcept', 'throw') and self.peek() == '(':
                self.next()
                self.skip_balanced()
                self.expect(')')


def _is_identifier(tok: Optional[str]) -> bool:
    return tok is not None and re.match(r'^(?:::)?[A-Za-z_~]', tok) is not None \
        and tok not in ('const', 'volatile')


def _looks_like_value(tokens: list[str]) -> bool:
    first = tokens[0]
    if first[0].isdigit() or first in ('-', '+', '!', '~', 'true', 'false', 'nullptr'):
        return True
    if first.startswith('"'):
        return True
    # C-style cast of an integral value: (Color)1
    if first == '(' and ')' in tokens:
        close = tokens.index(')')
        return close + 1 < len(tokens)
    return False


def _render(raw: RawType) -> str:
    """Render a raw type back to a spelling (used for scoped template names)"""
    if raw.kind == RawKind.VALUE:
        return raw.name
    if raw.kind == RawKind.NAMED:
        text = raw.name
        if raw.template_args:
            text += '<' + ', '.join(_render(a) for a in raw.template_args) + '>'
        if raw.is_const:
            text = 'const ' + text
        return text
    if raw.kind == RawKind.POINTER:
        return _render(raw.inner) + ' *' + (' const' if raw.is_const else '')
    if raw.kind == RawKind.LVALUE_REF:
        return _render(raw.inner) + ' &'
    if raw.kind == RawKind.RVALUE_REF:
        return _render(raw.inner) + ' &&'
    if raw.kind == RawKind.ARRAY:
        return _render(raw.inner) + f'[{raw.length if raw.length is not None else ""}]'
    if raw.kind == RawKind.FUNCTION:
        return _render(raw.inner) + '(' + ', '.join(_render(p) for p in raw.params) + ')'
    return _render(raw.inner) + f' {raw.name}::*'


def render(raw: RawType) -> str:
    return _render(raw)


def parse_type(spelling: str) -> RawType:
    """Parse a C++ type spelling into a RawType tree

    Examples:
        'const char *' -> POINTER(NAMED const char)
        'int (*)(char)' -> POINTER(FUNCTION(int; char))
        'QList<int> &' -> LVALUE_REF(NAMED QList<int>)
    """
    anonymous: dict[str, str] = {}

    def stash(m: re.Match) -> str:
        key = f'__anonymous_{len(anonymous)}__'
        anonymous[key] = m.group(0)
        return key

    text = _ANONYMOUS_RE.sub(stash, spelling)
    text = text.replace(_ANONYMOUS_NAMESPACE, _ANONYMOUS_NAMESPACE_TOKEN)
    tokens = tokenize(text)
    if not tokens:
        raise TypeSpellingError(spelling, 'empty spelling')
    parser = _Parser(tokens, spelling)
    raw = parser.parse_type()
    if not parser.at_end():
        raise TypeSpellingError(spelling, f'trailing tokens {parser.tokens[parser.pos:]}')

    for layer in raw.walk():
        if layer.kind not in (RawKind.NAMED, RawKind.VALUE, RawKind.MEMBER_POINTER):
            continue
        if layer.name in anonymous:
            original = anonymous[layer.name]
            layer.name = f'{layer.tag} {original}' if layer.tag else original
            layer.is_anonymous = True
        layer.name = layer.name.replace(_ANONYMOUS_NAMESPACE_TOKEN, _ANONYMOUS_NAMESPACE)
    return raw
