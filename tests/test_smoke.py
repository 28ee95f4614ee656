import os

import pytest

from ast_builders import build, namespace, record, base

from smokegen.model import Access, BaseClassSpecifier, Model
from smokegen.smoke import CastPath, Direction, DispatchTable, SmokeGenerator, split_parts


def make_class(model, name, *bases, virtual=False, **attrs):
    attrs.setdefault('is_forward_decl', False)
    klass = model.register_class(name, name.split('::')[-1], **attrs)
    for b in bases:
        klass.base_classes.append(BaseClassSpecifier(b, Access.PUBLIC, virtual))
    return klass


@pytest.fixture
def simple():
    model = Model()
    base = make_class(model, 'Base', file_name='/inc/base.h')
    make_class(model, 'Derived', base, file_name='/inc/derived.h')
    model.freeze()
    return model


def test_indices_are_dense_and_sorted():
    model = Model()
    for name in ('Zeta', 'Alpha', 'Mid'):
        make_class(model, name)
    make_class(model, 'Fwd', is_forward_decl=True)
    make_class(model, 'Tmpl', is_template=True)
    table = DispatchTable(model)
    assert table.index == {'Alpha': 1, 'Mid': 2, 'Zeta': 3}
    assert table.class_at(2).name == 'Mid'
    assert table.class_at(0) is None
    assert table.class_at(4) is None


def test_selected_classes_only():
    model = Model()
    make_class(model, 'A')
    make_class(model, 'B')
    make_class(model, 'Tmpl', is_template=True)
    make_class(model, 'Fwd', is_forward_decl=True)
    table = DispatchTable(model, ['B', 'Tmpl', 'Fwd'])
    assert table.index == {'B': 1, 'Tmpl': 2}
    assert table.index_of(model.find_class('A')) == 0


def test_selected_namespace_is_indexed_without_bases():
    model = build(
        record('QObject'),
        namespace('Qt', record('Inner', bases=[base('QObject')])),
    )
    table = DispatchTable(model, ['Qt', 'QObject', 'Qt::Inner'])
    assert table.index == {'QObject': 1, 'Qt': 2, 'Qt::Inner': 3}
    ns = model.find_class('Qt')
    assert [(i, p.direction) for i, p in table.entries(ns)] == [(2, Direction.IDENTITY)]
    flat, offsets = table.inheritance_list()
    assert offsets['Qt'] == 0
    assert flat[offsets['Qt::Inner']:] == [1, 0]

    text = SmokeGenerator().class_file(table.classes)
    assert 'class x_Qt__Inner : public Qt::Inner {' in text
    assert 'public Qt {' not in text


def test_adjust_up_and_down(simple):
    table = DispatchTable(simple)
    up = table.adjust(2, 1)
    assert up.direction == Direction.UP
    assert up.expression() == '(void*)(Base*)(Derived*)xptr'
    down = table.adjust(1, 2)
    assert down.direction == Direction.DOWN
    assert down.expression() == '(void*)(Derived*)(Base*)xptr'
    assert (down.source, down.target) == (up.target, up.source)


def test_identity_and_unrelated():
    model = Model()
    a = make_class(model, 'A')
    make_class(model, 'B')
    table = DispatchTable(model)
    same = table.adjust(1, 1)
    assert same.direction == Direction.IDENTITY
    assert same.source is same.target is a
    assert same.expression() == '(void*)(A*)xptr'
    assert table.adjust(1, 2) is None
    assert table.adjust(1, 9) is None


def test_up_then_down_returns_to_source():
    model = Model()
    a = make_class(model, 'A')
    b = make_class(model, 'B', a)
    c = make_class(model, 'C', b)
    table = DispatchTable(model)
    up = table.path(c, a)
    down = table.path(a, c)
    assert up.chain == (c, b, a)
    assert down.chain == (a, b, c)
    assert down.reversed() == up


def test_multiple_inheritance_chain():
    model = Model()
    a = make_class(model, 'A')
    b = make_class(model, 'B')
    c = make_class(model, 'C', a, b)
    d = make_class(model, 'D', c)
    table = DispatchTable(model)
    assert table.path(d, b).expression() == '(void*)(B*)(C*)(D*)xptr'
    assert table.path(b, d).expression() == '(void*)(D*)(C*)(B*)xptr'
    assert table.path(a, b) is None


def test_downcast_through_virtual_base():
    model = Model()
    a = make_class(model, 'A')
    make_class(model, 'B', a, virtual=True)
    table = DispatchTable(model)
    assert table.adjust(2, 1).expression() == '(void*)(A*)(B*)xptr'
    assert table.adjust(1, 2).expression() == '(void*)dynamic_cast<B*>((A*)xptr)'


def test_cast_path_reversed_keeps_edges():
    model = Model()
    a = make_class(model, 'A')
    b = make_class(model, 'B')
    path = CastPath(Direction.UP, (b, a), (True,))
    assert path.reversed() == CastPath(Direction.DOWN, (a, b), (True,))


def test_entries(simple):
    table = DispatchTable(simple)
    base, derived = table.classes
    assert [(i, p.direction) for i, p in table.entries(base)] == \
        [(1, Direction.IDENTITY), (2, Direction.DOWN)]
    assert [(i, p.direction) for i, p in table.entries(derived)] == \
        [(1, Direction.UP), (2, Direction.IDENTITY)]


def test_diamond_ancestor_listed_once():
    model = Model()
    a = make_class(model, 'A')
    b = make_class(model, 'B', a)
    c = make_class(model, 'C', a)
    d = make_class(model, 'D', b, c)
    table = DispatchTable(model)
    entries = table.entries(d)
    assert [i for i, _ in entries] == [2, 1, 3, 4]
    # first depth-first path wins
    assert dict(entries)[1].chain == (d, b, a)


def test_inheritance_list_shares_identical_bases():
    model = Model()
    a = make_class(model, 'A')
    b = make_class(model, 'B')
    make_class(model, 'C', a, b)
    make_class(model, 'D', a, b)
    make_class(model, 'E', a)
    table = DispatchTable(model)
    flat, offsets = table.inheritance_list()
    assert flat == [0, 1, 2, 0, 1, 0]
    assert offsets == {'A': 0, 'B': 0, 'C': 1, 'D': 1, 'E': 4}


@pytest.mark.parametrize('count, parts, sizes', [
    (7, 3, [3, 2, 2]),
    (2, 4, [1, 1, 0, 0]),
    (0, 2, [0, 0]),
    (5, 0, [5]),
])
def test_split_parts(count, parts, sizes):
    groups = split_parts(list(range(count)), parts)
    assert [len(g) for g in groups] == sizes
    assert [x for g in groups for x in g] == list(range(count))


def test_generate_writes_every_part(simple, tmp_path):
    written = SmokeGenerator('qt', parts=20).generate(simple, str(tmp_path), ['/inc/all.h'])
    names = [os.path.basename(p) for p in written]
    assert names == [f'x_{i}.cpp' for i in range(1, 21)] + ['smokedata.cpp']
    assert all(os.path.exists(p) for p in written)

    first = (tmp_path / 'x_1.cpp').read_text()
    assert '#include <qt_smoke.h>' in first
    assert '#include <base.h>' in first
    assert 'class x_Base : public Base {' in first
    assert '};' in first
    assert 'Derived' in (tmp_path / 'x_2.cpp').read_text()
    assert 'class ' not in (tmp_path / 'x_20.cpp').read_text()


def test_class_stub_mangles_nested_names():
    model = Model()
    klass = make_class(model, 'KIO::Job')
    text = SmokeGenerator().class_file([klass])
    assert 'class x_KIO__Job : public KIO::Job {' in text
    assert '    SmokeBinding* _binding;' in text


def test_smokedata(simple):
    table = DispatchTable(simple)
    text = SmokeGenerator('kde').smokedata(table, ['/inc/all.h'])
    assert '#include <all.h>' in text
    assert 'static const char *kde_classNames[] = {' in text
    assert '"Derived",\t// 2' in text
    assert '1,\t// 2 Derived' in text
    assert 'static void *kde_cast(void *xptr, Smoke::Index from, Smoke::Index to) {' in text
    assert 'case 1: return (void*)(Base*)(Derived*)xptr;' in text
    assert 'case 2: return (void*)(Derived*)(Base*)xptr;' in text
    assert 'static Smoke::Index kde_inheritanceList[] = {' in text
    assert '1, 0,\t// 1: Base' in text
    assert text.endswith('};\n')
