"""TypeScript emission -- Zod schemas and a Zodios client from a compilation result.

* :func:`render_expression` renders one validation expression.
* :func:`render_client` renders the full client module through Jinja2.
"""

from zodspec.emitter.client import render_client, to_client_path
from zodspec.emitter.zod import render_expression

__all__ = ["render_expression", "render_client", "to_client_path"]
