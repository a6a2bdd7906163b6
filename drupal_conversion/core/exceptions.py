"""Core exceptions for Drupal site conversion."""


class ConversionError(Exception):
    """Base exception for conversion operations."""


class ScanError(ConversionError):
    """Codebase could not be read while scanning."""


class ManifestError(ConversionError):
    """Source dependency manifest is malformed."""


class ConfigurationError(ConversionError):
    """Site configuration validation or loading failed."""


class CommandError(ConversionError):
    """External command execution failed."""


class StepError(ConversionError):
    """A conversion step could not complete its own logic."""


class GitError(ConversionError):
    """A version-control primitive exited with a non-zero status."""

    def __init__(self, op: str, cause: str):
        self.op = op
        self.cause = cause
        super().__init__(f"git {op} failed: {cause}")
