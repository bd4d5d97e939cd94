"""Built-in CLI sub-commands (``verify`` and ``config``)."""
