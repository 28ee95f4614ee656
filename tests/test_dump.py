import json

from ast_builders import build, record, base, method, param, field, enum, typedef, function, namespace

from smokegen.dump import JsonGenerator, model_to_dict


def sample_model():
    model = build(
        namespace('ns', enum('Color', 'Red', 'Green', scoped=True)),
        record('Base', method('f', 'int', [param('x', 'int')], virtual=True)),
        record('Derived', field('x', 'double'), bases=[base('Base')]),
        typedef('Handle', 'Base *'),
        function('make', 'Base *'),
    )
    model.freeze()
    return model


def test_model_to_dict():
    outp = model_to_dict(sample_model())
    assert set(outp['classes']) == {'Base', 'Derived', 'ns'}
    assert 'methods' not in outp['classes']['ns']

    derived = outp['classes']['Derived']
    assert derived['bases'] == [{'class': 'Base', 'access': 'public', 'virtual': False}]
    assert derived['fields'] == [{'name': 'x', 'type': 'double', 'access': 'public', 'static': False}]

    (f,) = outp['classes']['Base']['methods']
    assert f['flags'] == ['virtual']
    assert f['params'] == [{'name': 'x', 'type': 'int'}]

    assert outp['enums']['ns::Color']['members'] == ['Color::Red', 'Color::Green']
    assert outp['typedefs']['Handle']['resolved'] == 'Base*'
    assert outp['functions'][0]['name'] == 'make'


def test_class_filter():
    outp = model_to_dict(sample_model(), ['Derived'])
    assert list(outp['classes']) == ['Derived']


def test_json_generator_writes_model(tmp_path):
    written = JsonGenerator('kde').generate(sample_model(), str(tmp_path), ['/inc/all.h'])
    assert written == [str(tmp_path / 'model.json')]
    data = json.loads((tmp_path / 'model.json').read_text())
    assert data['module'] == 'kde'
    assert data['headers'] == ['all.h']
    assert 'Derived' in data['classes']
