import pytest

from smokegen.errors import TypeSpellingError
from smokegen.typeparse import RawKind, parse_type, render


def test_builtin_words_combine():
    raw = parse_type('unsigned long long')
    assert raw.kind == RawKind.NAMED
    assert raw.name == 'unsigned long long'


def test_const_pointer_levels():
    raw = parse_type('const char *const *')
    assert raw.kind == RawKind.POINTER
    assert not raw.is_const
    assert raw.inner.kind == RawKind.POINTER
    assert raw.inner.is_const
    leaf = raw.leaf()
    assert leaf.name == 'char'
    assert leaf.is_const


def test_east_const():
    raw = parse_type('QString const &')
    assert raw.kind == RawKind.LVALUE_REF
    assert raw.inner.name == 'QString'
    assert raw.inner.is_const


def test_rvalue_reference():
    raw = parse_type('QString &&')
    assert raw.has_rvalue_ref()
    assert not parse_type('QString &').has_rvalue_ref()


def test_nested_templates():
    raw = parse_type('QMap<QString, QList<int> >')
    assert raw.name == 'QMap'
    assert [a.name for a in raw.template_args] == ['QString', 'QList']
    assert raw.template_args[1].template_args[0].name == 'int'


def test_non_type_template_arguments():
    raw = parse_type('Flags<3, (Color)1>')
    assert [a.kind for a in raw.template_args] == [RawKind.VALUE, RawKind.VALUE]
    assert raw.template_args[0].name == '3'
    assert raw.template_args[1].name == '(Color)1'


def test_scope_with_template_arguments_stays_in_name():
    raw = parse_type('typename QList<int>::iterator')
    assert raw.name == 'QList<int>::iterator'
    assert raw.template_args == []


def test_function_pointer():
    raw = parse_type('int (*)(char, ...)')
    assert raw.kind == RawKind.POINTER
    fn = raw.inner
    assert fn.kind == RawKind.FUNCTION
    assert fn.inner.name == 'int'
    assert [p.name for p in fn.params] == ['char']
    assert fn.is_variadic


def test_method_type_with_trailing_const():
    raw = parse_type('const QString &(int) const noexcept')
    assert raw.kind == RawKind.FUNCTION
    assert raw.is_const
    assert raw.inner.kind == RawKind.LVALUE_REF


def test_void_parameter_list_is_empty():
    raw = parse_type('void (void)')
    assert raw.params == []


def test_arrays():
    raw = parse_type('float [4][3]')
    assert raw.kind == RawKind.ARRAY
    assert raw.length == 4
    assert raw.inner.kind == RawKind.ARRAY
    assert raw.inner.length == 3


def test_pointer_to_array():
    raw = parse_type('int (*)[4]')
    assert raw.kind == RawKind.POINTER
    assert raw.inner.kind == RawKind.ARRAY


def test_member_pointer():
    raw = parse_type('void (QObject::*)(int)')
    assert raw.kind == RawKind.MEMBER_POINTER
    assert raw.name == 'QObject'


def test_elaborated_keyword_is_kept_as_tag():
    raw = parse_type('struct Foo *')
    assert raw.inner.name == 'Foo'
    assert raw.inner.tag == 'struct'
    assert parse_type('typename T').tag == ''


@pytest.mark.parametrize('spelling', [
    'struct (unnamed struct at test.h:3:5)',
    '(anonymous union at test.h:7:3)',
])
def test_anonymous_aggregates(spelling):
    assert parse_type(spelling).leaf().is_anonymous


def test_anonymous_pointee():
    raw = parse_type('struct (unnamed struct at test.h:3:5) *')
    assert raw.kind == RawKind.POINTER
    assert raw.leaf().is_anonymous


def test_global_scope_prefix_is_dropped():
    assert parse_type('::Foo::Bar').name == 'Foo::Bar'


def test_render():
    assert render(parse_type('QList<int>')) == 'QList<int>'


@pytest.mark.parametrize('spelling', ['', 'int (', '@foo'])
def test_unparseable(spelling):
    with pytest.raises(TypeSpellingError):
        parse_type(spelling)
