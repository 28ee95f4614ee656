"""
Smoke dispatch table generator

Gives every selected class a dense 1-based index (sorted by qualified
name) and emits, for each (from, to) index pair related by inheritance,
the pointer adjustment a binding runtime has to apply: a chain of casts
through every class on the inheritance path, so multiple inheritance
offsets are applied by the C++ compiler.

Output:
    x_1.cpp ... x_N.cpp   one stub class per selected class, N = parts
    smokedata.cpp         class table, <module>_cast(), <module>_inheritanceList
"""

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .codegen import CodeGen, mangle
from .hierarchy import ClassHierarchy, participates
from .model import Model, Class

logger = logging.getLogger(__name__)

HEADER_COMMENT = '//Auto-generated by smokegen. DO NOT EDIT.'


class Direction(Enum):
    IDENTITY = 'identity'
    UP = 'up'
    DOWN = 'down'


@dataclass(frozen=True)
class CastPath:
    """Pointer adjustment from one class to a related one

    chain lists the classes the pointer is viewed as, source first and
    target last; virtual_edges[i] tells whether the step from chain[i] to
    chain[i + 1] crosses a virtual inheritance edge.
    """
    direction: Direction
    chain: tuple[Class, ...]
    virtual_edges: tuple[bool, ...] = ()

    @property
    def source(self) -> Class:
        return self.chain[0]

    @property
    def target(self) -> Class:
        return self.chain[-1]

    def reversed(self) -> 'CastPath':
        direction = {
            Direction.UP: Direction.DOWN,
            Direction.DOWN: Direction.UP,
            Direction.IDENTITY: Direction.IDENTITY,
        }[self.direction]
        return CastPath(direction, tuple(reversed(self.chain)), tuple(reversed(self.virtual_edges)))

    def expression(self, var: str = 'xptr') -> str:
        """C++ expression adjusting the void pointer var along the path

        Downcasts across a virtual base need dynamic_cast; every other
        step is a plain C-style cast.
        """
        expr = f'({self.chain[0].to_string()}*){var}'
        for klass, is_virtual in zip(self.chain[1:], self.virtual_edges):
            name = klass.to_string()
            if is_virtual and self.direction == Direction.DOWN:
                expr = f'dynamic_cast<{name}*>({expr})'
            else:
                expr = f'({name}*){expr}'
        return f'(void*){expr}'


class DispatchTable:
    """Class index plus the cast paths between indexed classes"""

    def __init__(self, model: Model, classes: Optional[list[str]] = None,
                 hierarchy: Optional[ClassHierarchy] = None):
        self.model = model
        self.hierarchy = hierarchy or ClassHierarchy(model)
        self.index: dict[str, int] = {}
        self.classes: list[Class] = []

        # an explicit selection indexes every defined class, namespaces and
        # templates included; otherwise only classes taking part in the closure
        wanted = set(classes) if classes else None
        names = []
        for name, klass in model.classes.items():
            if wanted is None:
                if participates(klass):
                    names.append(name)
            elif name in wanted:
                if klass.has_definition():
                    names.append(name)
                else:
                    logger.debug(f'not indexing {name}: forward declared')
        for i, name in enumerate(sorted(names), start=1):
            self.index[name] = i
            self.classes.append(model.classes[name])

    def __len__(self) -> int:
        return len(self.classes)

    def class_at(self, index: int) -> Optional[Class]:
        return self.classes[index - 1] if 1 <= index <= len(self.classes) else None

    def index_of(self, klass: Class) -> int:
        """Index of klass, 0 when it is not part of the table"""
        return self.index.get(klass.qualified_name, 0)

    def up_path(self, klass: Class, ancestor: Class) -> Optional[CastPath]:
        steps = self.hierarchy.path_between(klass, ancestor)
        if steps is None:
            return None
        chain = (klass,) + tuple(step.base_class for step in steps)
        return CastPath(Direction.UP, chain, tuple(step.is_virtual for step in steps))

    def path(self, source: Class, target: Class) -> Optional[CastPath]:
        """Adjustment from source to target, None for unrelated classes"""
        if source is target:
            return CastPath(Direction.IDENTITY, (source,))
        up = self.up_path(source, target)
        if up is not None:
            return up
        down = self.up_path(target, source)
        if down is not None:
            return down.reversed()
        return None

    def adjust(self, from_index: int, to_index: int) -> Optional[CastPath]:
        source, target = self.class_at(from_index), self.class_at(to_index)
        if source is None or target is None:
            return None
        return self.path(source, target)

    def entries(self, klass: Class) -> list[tuple[int, CastPath]]:
        """(target index, path) for ancestors, klass itself, then descendants

        An ancestor reached by several inheritance paths is listed once,
        with its first depth-first path.
        """
        result = []
        seen = set()
        related = self.hierarchy.ancestors(klass) + [klass] + self.hierarchy.descendants(klass)
        for target in related:
            index = self.index_of(target)
            if not index or index in seen:
                continue
            seen.add(index)
            result.append((index, self.path(klass, target)))
        return result

    def base_indices(self, klass: Class) -> list[int]:
        """Indices of the direct bases of klass, in declaration order"""
        indices = []
        if not participates(klass):
            return indices
        for base in self.hierarchy.bases(klass):
            index = self.index_of(base.base_class)
            if index:
                indices.append(index)
        return indices

    def inheritance_list(self) -> tuple[list[int], dict[str, int]]:
        """Flat 0-terminated base index lists and each class's offset into it

        Offset 0 is the shared empty list; classes with the same bases
        share one list.
        """
        flat = [0]
        offsets: dict[str, int] = {}
        groups: dict[tuple[int, ...], int] = {}
        for klass in self.classes:
            bases = tuple(self.base_indices(klass))
            if not bases:
                offsets[klass.qualified_name] = 0
                continue
            if bases not in groups:
                groups[bases] = len(flat)
                flat.extend(bases)
                flat.append(0)
            offsets[klass.qualified_name] = groups[bases]
        return flat, offsets


def split_parts(items: list, parts: int) -> list[list]:
    """Split items into parts contiguous groups differing in size by at most one"""
    parts = max(parts, 1)
    size, extra = divmod(len(items), parts)
    groups = []
    start = 0
    for i in range(parts):
        end = start + size + (1 if i < extra else 0)
        groups.append(items[start:end])
        start = end
    return groups


def _include_name(path: str) -> str:
    return os.path.basename(path)


class SmokeGenerator:
    """Writes the smoke class stubs and dispatch data"""

    def __init__(self, module_name: str = 'qt', parts: int = 20):
        self.module_name = module_name
        self.parts = parts

    def generate(self, model: Model, output_dir: str, headers: list[str],
                 classes: Optional[list[str]] = None) -> list[str]:
        table = DispatchTable(model, classes)
        logger.debug(f'{len(table)} classes indexed')
        written = []
        for i, group in enumerate(split_parts(table.classes, self.parts), start=1):
            path = os.path.join(output_dir, f'x_{i}.cpp')
            self._write(path, self.class_file(group))
            written.append(path)
        path = os.path.join(output_dir, 'smokedata.cpp')
        self._write(path, self.smokedata(table, headers))
        written.append(path)
        return written

    @staticmethod
    def _write(path: str, text: str):
        with open(path, 'w', newline='\n') as f:
            f.write(text)

    def class_file(self, classes: list[Class]) -> str:
        gen = CodeGen()
        gen.line(HEADER_COMMENT)
        gen.include('smoke.h')
        gen.include(f'{self.module_name}_smoke.h')
        for include in sorted({_include_name(k.file_name) for k in classes if k.file_name}):
            gen.include(include)
        gen.line()
        for klass in classes:
            self._write_class(gen, klass)
        return gen.output()

    @staticmethod
    def _write_class(gen: CodeGen, klass: Class):
        if klass.is_namespace:
            # indexed, but a namespace cannot be derived from
            return
        class_name = klass.to_string()
        with gen.block(f'class x_{mangle(class_name)} : public {class_name} {{', '};'):
            gen.line('SmokeBinding* _binding;')
        gen.line()

    def smokedata(self, table: DispatchTable, headers: list[str]) -> str:
        module = self.module_name
        gen = CodeGen()
        gen.line(HEADER_COMMENT)
        for header in headers:
            gen.include(_include_name(header))
        gen.line()
        gen.include('smoke.h')
        gen.include(f'{module}_smoke.h')
        gen.line()

        flat, offsets = table.inheritance_list()

        gen.comment('Class names, by index')
        with gen.initializer(f'static const char *{module}_classNames[]'):
            gen.line('0,\t// 0 (no class)')
            for i, klass in enumerate(table.classes, start=1):
                gen.line(f'"{klass.qualified_name}",\t// {i}')
        gen.line()

        gen.comment(f"Offset of each class's super class list in {module}_inheritanceList")
        with gen.initializer(f'static Smoke::Index {module}_classParents[]'):
            gen.line('0,\t// 0 (no class)')
            for i, klass in enumerate(table.classes, start=1):
                gen.line(f'{offsets[klass.qualified_name]},\t// {i} {klass.qualified_name}')
        gen.line()

        self._write_cast(gen, table)
        gen.line()

        gen.comment('Group of Indexes (0 separated) used as super class lists.')
        gen.comment('Classes with super classes have an index into this array.')
        with gen.initializer(f'static Smoke::Index {module}_inheritanceList[]'):
            gen.line('0,\t// 0: (no super class)')
            start = 1
            while start < len(flat):
                end = flat.index(0, start)
                names = ', '.join(table.class_at(i).qualified_name for i in flat[start:end])
                values = ', '.join(str(i) for i in flat[start:end + 1])
                gen.line(f'{values},\t// {start}: {names}')
                start = end + 1
        return gen.output()

    def _write_cast(self, gen: CodeGen, table: DispatchTable):
        gen.line(f'static void *{self.module_name}_cast(void *xptr, Smoke::Index from, Smoke::Index to) {{')
        gen.indent()
        with gen.block('switch(from) {'):
            for i, klass in enumerate(table.classes, start=1):
                gen.line(f'case {i}:   //{klass.qualified_name}')
                gen.indent()
                with gen.block('switch(to) {'):
                    for index, path in table.entries(klass):
                        gen.line(f'case {index}: return {path.expression()};')
                    gen.line('default: return xptr;')
                gen.dedent()
            gen.line('default: return xptr;')
        gen.dedent()
        gen.line('}')
