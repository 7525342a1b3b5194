"""Action failure types."""


class ActionCommandError(Exception):
    """A spawned command exited non-zero.

    ``header`` is the short human summary, ``output`` the full captured
    terminal output.
    """

    def __init__(self, header: str, output: str):
        super().__init__(f"Failed To Execute Shell Command: {header}\n\nOutput:\n{output}")
        self.header = header
        self.output = output


class DatabaseActionError(Exception):
    """A database action was rejected by whoever executes it."""


class ActionAbortedError(Exception):
    """Raised into a waiting action when it is aborted."""
