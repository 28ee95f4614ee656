"""
clang front end

Produces the declaration tree of a header by running clang's JSON AST
dump. The compiler binary comes from $CLANGPP (default clang++).
"""

import json
import logging
import os
import subprocess
from typing import Optional

from .config import ParserOptions, read_defines
from .decltree import DeclTree
from .errors import FrontendError

logger = logging.getLogger(__name__)


class ClangFrontend:
    """Runs clang on one header at a time"""

    def __init__(self, options: ParserOptions, clangpp: Optional[str] = None):
        self.options = options
        self.clangpp = clangpp or os.environ.get('CLANGPP', 'clang++')
        self._defines: Optional[list[str]] = None

    @property
    def defines(self) -> list[str]:
        if self._defines is None:
            self._defines = read_defines(self.options.defines_file)
        return self._defines

    def command(self, header: str) -> list[str]:
        """clang command line dumping the AST of header"""
        cmd = [self.clangpp, '-x', 'c++', '-std=c++17']
        for d in self.options.existing_include_dirs():
            cmd.append(f'-I{d}')
        for d in self.options.framework_dirs:
            cmd.extend(['-iframework', str(d)])
        for define in self.defines:
            cmd.append(f'-D{define}')
        for macro in self.options.drop_macros:
            # defined away to nothing
            cmd.append(f'-D{macro}=')
        cmd.extend(['-fsyntax-only', '-Xclang', '-ast-dump=json'])
        cmd.extend(self.options.clang_options)
        cmd.append(os.path.abspath(header))
        return cmd

    def parse(self, header: str) -> DeclTree:
        """Declaration tree of header; FrontendError when none can be produced"""
        cmd = self.command(header)
        logger.debug('running ' + ' '.join(cmd))
        try:
            proc = subprocess.run(cmd, capture_output=True)
        except OSError as e:
            raise FrontendError(f'cannot run {self.clangpp}: {e}') from e
        if proc.returncode != 0:
            message = proc.stderr.decode('utf-8', errors='replace').strip()
            raise FrontendError(f'{header}: {self.clangpp} exited with {proc.returncode}\n{message}')
        try:
            data = json.loads(proc.stdout)
        except ValueError as e:
            raise FrontendError(f'{header}: unreadable AST dump ({e})') from e
        return DeclTree.from_dict(data)
