"""Built-in CLI commands (``generate`` and the ``inspect`` group)."""
