"""Exception hierarchy for formula_sync."""

from __future__ import annotations


class CLIError(Exception):
    """Raised for user-facing errors; the CLI reports them and exits 1."""


class ConfigurationError(CLIError):
    """Missing credential, required option or local tool."""


class NormalizerUnavailableError(ConfigurationError):
    """The formatter cannot run at all (binary or config missing)."""


class NotFoundError(CLIError):
    """An upstream object (release, tag) does not exist."""


class StructuralError(CLIError):
    """The formula does not have the shape the rewriter needs."""


class FormulaSyntaxError(StructuralError):
    def __init__(self, message: str, offset: int) -> None:
        super().__init__(f"{message} (offset {offset})")
        self.offset = offset


class EditConflictError(StructuralError):
    """Two source edits overlap or fall outside the document."""


class NetworkError(CLIError):
    """An API request, download or commit failed."""


class CommitConflictError(NetworkError):
    """The tap rejected the commit because the formula changed underneath us."""


class NormalizerError(CLIError):
    """The formatter ran but crashed."""
