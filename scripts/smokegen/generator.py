"""
Main generator module

Orchestrates one run: parse every header with the front end, visit the
declaration trees into a single Model, freeze it and hand it to the
selected backend.
"""

import logging
import os
from typing import Optional

from .config import ParserOptions
from .decltree import DeclTree
from .dump import JsonGenerator
from .errors import GeneratorError
from .frontend import ClangFrontend
from .model import Model
from .smoke import SmokeGenerator
from .visitor import DeclarationVisitor

logger = logging.getLogger(__name__)

# backend name => backend class
GENERATORS = {
    'smoke': SmokeGenerator,
    'json': JsonGenerator,
}


def get_generator(name: str, options: ParserOptions):
    """Instantiate the backend registered under name"""
    try:
        backend = GENERATORS[name]
    except KeyError:
        known = ', '.join(sorted(GENERATORS))
        raise GeneratorError(f'unknown generator {name!r} (known: {known})') from None
    return backend(module_name=options.module_name, parts=options.parts)


class Generator:
    """Runs the front end, the visitor and a backend"""

    def __init__(self, options: ParserOptions, frontend: Optional[ClangFrontend] = None):
        self.options = options
        self.frontend = frontend or ClangFrontend(options)
        self.model = Model()
        self.visitor = DeclarationVisitor(self.model, options)

    def parse(self, trees: Optional[list[DeclTree]] = None) -> Model:
        """Visit the given trees, or parse every configured header"""
        if trees is None:
            trees = []
            for header in self.options.headers:
                trees.append(self.frontend.parse(str(header)))
                print(f'  {header} => parsed')
        for tree in trees:
            self.visitor.visit(tree)
        self.model.freeze()
        return self.model

    def generate(self, trees: Optional[list[DeclTree]] = None) -> list[str]:
        options = self.options
        backend = get_generator(options.generator, options)
        print(f'=== Generating {options.generator} output for module {options.module_name}:')

        self.parse(trees)
        logger.info(f'{len(self.model.classes)} classes, {len(self.model.enums)} enums, '
                    f'{len(self.model.functions)} functions, {len(self.model.typedefs)} typedefs')

        output_dir = str(options.output_dir)
        headers = [str(h) for h in options.headers]
        try:
            os.makedirs(output_dir, exist_ok=True)
            written = backend.generate(self.model, output_dir, headers, options.class_list)
        except OSError as e:
            raise GeneratorError(f'{options.generator}: {e}') from e
        for path in written:
            print(f'  => {path}')
        return written
