"""Exception hierarchy for zodspec.

All fatal errors inherit from :class:`ZodspecError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`zodspec.exit_codes`.
The top-level error handler in :func:`zodspec.app.main` catches
``ZodspecError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    ZodspecError (exit 1)
    +-- SpecParseError               (exit 7)
    +-- CompilationError             (exit 8)
    |   +-- UnresolvedReferenceError
    |   +-- DuplicateDeclarationError
    |   +-- InternalCycleError
    +-- RenderError                  (exit 9)
    +-- ConfigError                  (exit 1)

Non-fatal problems are reported as :class:`UnsupportedKeywordWarning`
instances collected on the compilation result; they are never raised.
"""

from __future__ import annotations

from typing import Optional

from zodspec.exit_codes import (
    EXIT_COMPILATION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_RENDER_ERROR,
    EXIT_SPEC_PARSE_ERROR,
)


class ZodspecError(Exception):
    """Base exception for all zodspec errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`zodspec.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class SpecParseError(ZodspecError):
    """Raised when the OpenAPI document cannot be loaded or fails validation."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class CompilationError(ZodspecError):
    """Base class for fatal errors raised while compiling a parsed document.

    A compilation that raises produces no partial output.
    """

    exit_code = EXIT_COMPILATION_ERROR


class UnresolvedReferenceError(CompilationError):
    """Raised when a ``$ref`` does not point to a registered schema."""

    def __init__(self, ref: str, reason: str = "no schema is registered under that name"):
        super().__init__(f"Cannot resolve $ref '{ref}': {reason}")
        self.ref = ref


class DuplicateDeclarationError(CompilationError):
    """Raised when two schemas would be declared under the same name or identifier."""

    def __init__(self, name: str, existing: Optional[str] = None):
        if existing is None or existing == name:
            message = f"Schema '{name}' is declared more than once"
        else:
            message = (
                f"Schema '{name}' collides with '{existing}' "
                "after identifier normalisation"
            )
        super().__init__(message)
        self.name = name
        self.existing = existing


class InternalCycleError(CompilationError):
    """Raised when declaration ordering finds a cycle that no lazy reference breaks.

    Cycle breaking happens during translation, so this signals a defect in
    the translator rather than a problem with the input document.
    """

    def __init__(self, names: list[str]):
        cycle = " -> ".join(names)
        super().__init__(f"Unbroken reference cycle between declarations: {cycle}")
        self.names = names


class RenderError(ZodspecError):
    """Raised when the compiled IR cannot be rendered to source text."""

    exit_code = EXIT_RENDER_ERROR


class ConfigError(ZodspecError):
    """Raised for configuration problems (invalid project file or environment values)."""

    exit_code = EXIT_GENERIC_FAILURE


class UnsupportedKeywordWarning(UserWarning):
    """A schema construct that was replaced by a documented fallback.

    Recorded (never raised) for unknown ``type`` values, ``not``, unsupported
    JSON-Schema keywords and malformed constraint values.

    Args:
        message: Human-readable description of what was dropped.
        keyword: The offending keyword (e.g. ``"not"``, ``"type"``).
        location: JSON pointer of the schema that carried the keyword.
    """

    def __init__(self, message: str, keyword: str, location: str = "#"):
        super().__init__(message)
        self.message = message
        self.keyword = keyword
        self.location = location

    def __str__(self) -> str:
        return f"{self.location}: {self.message}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UnsupportedKeywordWarning):
            return NotImplemented
        return (self.message, self.keyword, self.location) == (
            other.message,
            other.keyword,
            other.location,
        )

    def __hash__(self) -> int:
        return hash((self.message, self.keyword, self.location))
