"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~zodspec.exceptions.ZodspecError` subclass.
Build scripts can inspect the exit code to tell a broken document apart
from a compiler defect without parsing stderr.

Example::

    $ zodspec generate openapi.yaml -o client.ts
    $ echo $?
    8   # EXIT_COMPILATION_ERROR -- a $ref could not be resolved
"""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_SPEC_PARSE_ERROR = 7
"""The OpenAPI document could not be loaded or parsed."""

EXIT_COMPILATION_ERROR = 8
"""The document was parsed but could not be compiled (dangling or duplicate declarations)."""

EXIT_RENDER_ERROR = 9
"""The compiled IR could not be rendered to source text."""
