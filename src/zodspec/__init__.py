"""zodspec -- Compile OpenAPI 3.0/3.1 documents into Zod schemas and a Zodios client.

The package turns the ``components/schemas`` of an OpenAPI document into an
ordered set of validation-expression declarations and binds every operation
to a typed endpoint descriptor, then renders both as TypeScript.

Typical workflow::

    zodspec generate openapi.yaml -o src/api.ts
    zodspec inspect schemas openapi.yaml

Modules:
    app: Typer application and CLI entry point.
    models: Pydantic models shared across the entire package.
    parser: Document loading and schema-node parsing.
    compiler: Schema registry, type translator, orderer and endpoint binder.
    emitter: Zod / Zodios TypeScript rendering.
    config: Generator configuration and atomic output writes.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    output: stdout/stderr formatting with Rich support.
"""

__version__ = "0.1.0"
