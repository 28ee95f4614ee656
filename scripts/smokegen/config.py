"""
Configuration module

ParserOptions collects everything that steers one translation run: where
headers are found, which macros are defined or dropped, which backend runs
and how its output is shaped. Options come from the command line and from
an optional XML config file:

    <config>
        <resolveTypedefs>true</resolveTypedefs>
        <qtMode>true</qtMode>
        <generator>smoke</generator>
        <includeDirs>
            <dir>/usr/include/qt</dir>
            <framework>/Library/Frameworks</framework>
        </includeDirs>
        <definesList>defines.txt</definesList>
        <dropMacros><name>Q_DECL_DEPRECATED</name></dropMacros>
        <classList><class>QObject</class></classList>
        <parts>20</parts>
        <moduleName>qt</moduleName>
    </config>
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class ParserOptions:
    include_dirs: list[Path] = field(default_factory=list)
    framework_dirs: list[Path] = field(default_factory=list)
    defines_file: Optional[Path] = None
    drop_macros: list[str] = field(default_factory=list)
    generator: str = 'smoke'
    qt_mode: bool = False
    resolve_typedefs: bool = True
    output_dir: Path = Path('.')
    module_name: str = 'qt'
    parts: int = 20
    class_list: list[str] = field(default_factory=list)
    clang_options: list[str] = field(default_factory=list)
    headers: list[Path] = field(default_factory=list)

    def existing_include_dirs(self) -> list[Path]:
        """Include dirs that exist on disk; the others are dropped with a warning"""
        dirs = []
        for d in self.include_dirs:
            if d.is_dir():
                dirs.append(d)
            else:
                logger.warning(f"include directory {d} doesn't exist")
        return dirs


def _flag(elem: ET.Element) -> bool:
    return (elem.text or '').strip() == 'true'


def _children_text(elem: ET.Element, tag: str) -> list[str]:
    return [(child.text or '').strip() for child in elem if child.tag == tag and child.text]


def load_config(path: Path, options: ParserOptions, keep_generator: bool = False) -> ParserOptions:
    """Merge the XML config file at path into options

    keep_generator is set when the generator was chosen on the command
    line, which takes precedence over the file. A missing file only warns.
    """
    path = Path(path)
    if not path.exists():
        logger.warning(f"couldn't find config file {path}")
        return options
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as e:
        raise ConfigError(f'{path}: {e}') from e

    for elem in root:
        text = (elem.text or '').strip()
        if elem.tag == 'resolveTypedefs':
            options.resolve_typedefs = _flag(elem)
        elif elem.tag == 'qtMode':
            options.qt_mode = _flag(elem)
        elif elem.tag == 'generator':
            if not keep_generator:
                options.generator = text
        elif elem.tag == 'includeDirs':
            options.include_dirs += [Path(d) for d in _children_text(elem, 'dir')]
            options.framework_dirs += [Path(d) for d in _children_text(elem, 'framework')]
        elif elem.tag == 'definesList':
            # an external file, so it can be generated
            options.defines_file = Path(text)
        elif elem.tag == 'dropMacros':
            options.drop_macros += _children_text(elem, 'name')
        elif elem.tag == 'classList':
            options.class_list += _children_text(elem, 'class')
        elif elem.tag == 'parts':
            try:
                options.parts = int(text)
            except ValueError:
                raise ConfigError(f'{path}: parts must be an integer, got {text!r}') from None
        elif elem.tag == 'moduleName':
            options.module_name = text
        else:
            logger.debug(f'ignoring config element <{elem.tag}>')
    return options


def read_defines(path: Optional[Path]) -> list[str]:
    """One define per line (NAME or NAME=VALUE), blank lines ignored"""
    if path is None:
        return []
    path = Path(path)
    if not path.exists():
        logger.warning(f"didn't find defines file {path}")
        return []
    with open(path, 'r', encoding='utf-8') as f:
        return [line.strip() for line in f if line.strip()]
