"""
Code generation utilities

Line buffer with indentation for emitting C++ source, plus the name
mangling used for generated identifiers.
"""


class CodeGen:
    """C++ source buffer with indentation support"""

    def __init__(self, indent_str: str = '    '):
        self._lines: list[str] = []
        self._indent: int = 0
        self._indent_str = indent_str

    def line(self, text: str = ''):
        """Add a line with current indentation"""
        if text:
            self._lines.append(self._indent_str * self._indent + text)
        else:
            self._lines.append('')

    def comment(self, text: str):
        self.line(f'// {text}')

    def include(self, header: str):
        self.line(f'#include <{header}>')

    def indent(self):
        self._indent += 1

    def dedent(self):
        if self._indent > 0:
            self._indent -= 1

    def block(self, header: str, footer: str = '}'):
        """Context manager for an indented block between header and footer"""
        return _BlockContext(self, header, footer)

    def initializer(self, declaration: str):
        """Block for a static array initializer, closed by '};'"""
        return _BlockContext(self, f'{declaration} = {{', '};')

    def output(self) -> str:
        """Generated code, newline terminated"""
        return '\n'.join(self._lines) + '\n' if self._lines else ''


class _BlockContext:

    def __init__(self, gen: CodeGen, header: str, footer: str):
        self._gen = gen
        self._header = header
        self._footer = footer

    def __enter__(self):
        self._gen.line(self._header)
        self._gen.indent()
        return self

    def __exit__(self, *args):
        self._gen.dedent()
        self._gen.line(self._footer)


def mangle(qualified_name: str) -> str:
    """Identifier-safe form of a qualified C++ name

    Examples:
        QObject -> QObject
        KIO::Job -> KIO__Job
    """
    return qualified_name.replace('::', '__')
