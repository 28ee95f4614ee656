import json
import logging
import subprocess
from pathlib import Path

import pytest

from ast_builders import tu, record, base, dtor, field

from smokegen.cli import build_parser, main, options_from_args


@pytest.fixture
def fake_clang(monkeypatch):
    dump = json.dumps(tu(
        record('Base', dtor('Base', virtual=True)),
        record('Derived', field('x', 'int'), bases=[base('Base')]),
    )).encode()

    def run(cmd, capture_output):
        return subprocess.CompletedProcess(cmd, 0, dump, b'')
    monkeypatch.setattr(subprocess, 'run', run)


def test_options_from_args(tmp_path):
    config = tmp_path / 'config.xml'
    config.write_text('<config><generator>json</generator><parts>4</parts>'
                      '<classList><class>QObject</class></classList></config>')
    args = build_parser().parse_args([
        '-config', str(config), '-I', '/inc', '-dm', 'A,B', '-c', 'QWidget',
        '-qt', '--no-resolve-typedefs', '-o', str(tmp_path), '-m', 'kde', 'a.h', 'b.h',
    ])
    options = options_from_args(args)
    assert options.generator == 'json'
    assert options.parts == 4
    assert options.include_dirs == [Path('/inc')]
    assert options.drop_macros == ['A', 'B']
    assert options.class_list == ['QObject', 'QWidget']
    assert options.qt_mode
    assert not options.resolve_typedefs
    assert options.output_dir == tmp_path
    assert options.module_name == 'kde'
    assert options.headers == [Path('a.h'), Path('b.h')]


def test_generator_flag_overrides_config(tmp_path):
    config = tmp_path / 'config.xml'
    config.write_text('<config><generator>json</generator></config>')
    args = build_parser().parse_args(['-config', str(config), '-g', 'smoke', 'a.h'])
    assert options_from_args(args).generator == 'smoke'


def test_no_headers_prints_usage(capsys):
    assert main([]) == 0
    assert 'usage' in capsys.readouterr().out


def test_smoke_run(fake_clang, tmp_path, capsys):
    assert main(['-o', str(tmp_path), '-p', '2', 'all.h']) == 0
    out = capsys.readouterr().out
    assert '=== Generating smoke output for module qt:' in out
    assert 'all.h => parsed' in out
    assert sorted(p.name for p in tmp_path.iterdir()) == \
        ['generator.log', 'smokedata.cpp', 'x_1.cpp', 'x_2.cpp']
    assert 'class x_Derived : public Derived {' in (tmp_path / 'x_2.cpp').read_text()


def test_json_run(fake_clang, tmp_path):
    assert main(['-g', 'json', '-o', str(tmp_path), 'all.h']) == 0
    data = json.loads((tmp_path / 'model.json').read_text())
    assert set(data['classes']) == {'Base', 'Derived'}


def test_unknown_generator(fake_clang, tmp_path, capsys):
    assert main(['-g', 'lua', '-o', str(tmp_path), 'all.h']) == 1
    assert "error: unknown generator 'lua'" in capsys.readouterr().err


def test_frontend_failure(monkeypatch, tmp_path, capsys):
    def run(cmd, capture_output):
        return subprocess.CompletedProcess(cmd, 1, b'', b'fatal error')
    monkeypatch.setattr(subprocess, 'run', run)
    assert main(['-o', str(tmp_path), 'all.h']) == 1
    assert 'fatal error' in capsys.readouterr().err


@pytest.mark.parametrize('argv', [['all.h'], ['-g', 'lua', 'all.h']])
def test_root_logger_restored(fake_clang, tmp_path, argv):
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    root.setLevel(logging.WARNING)
    try:
        main(['-o', str(tmp_path)] + argv)
        assert root.level == logging.WARNING
        assert root.handlers == handlers
    finally:
        root.setLevel(level)
