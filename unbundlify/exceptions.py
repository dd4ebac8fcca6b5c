"""Exception hierarchy for unbundlify.

A pattern that does not match is never an error: matching returns ``None``.
Everything below is raised for inputs or rule tables that cannot be handled.
"""


class UnbundlifyError(Exception):
    """Base class for all errors raised by unbundlify."""


class ScriptParseError(UnbundlifyError):
    """Source text could not be parsed into a syntax tree."""


class CompileError(UnbundlifyError):
    """Pattern source is malformed or uses an unknown modifier."""


class FillError(UnbundlifyError):
    """A replacement pattern references a placeholder that has no capture."""


class FormatError(UnbundlifyError):
    """Input is not recognized as any supported bundle format."""


class ShapeError(UnbundlifyError):
    """A bundle was recognized but part of it has an unexpected structure."""


class PathEscapeError(UnbundlifyError):
    """A resolved module path would be written outside the output directory."""
