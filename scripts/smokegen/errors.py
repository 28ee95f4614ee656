"""
Error types

Only the conditions that abort a whole run are raised across module
boundaries. Everything the declaration visitor can recover from is a skip
decision and never surfaces as an exception.
"""


class SmokegenError(Exception):
    """Base class for all smokegen errors"""


class FrontendError(SmokegenError):
    """No declaration tree could be obtained for a header"""


class GeneratorError(SmokegenError):
    """Unknown generator backend or a backend failed to write its output"""


class ConfigError(SmokegenError):
    """Malformed configuration file"""


class ModelFrozenError(SmokegenError):
    """Registration attempted after the model was frozen for generation"""


class TypeSpellingError(SmokegenError):
    """A type spelling from the declaration tree could not be parsed"""

    def __init__(self, spelling: str, reason: str):
        super().__init__(f'cannot parse type {spelling!r}: {reason}')
        self.spelling = spelling
        self.reason = reason
