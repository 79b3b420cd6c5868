"""Exceptions raised by linkretry."""


class InvocationFault(RuntimeError):
    """The checker could not be executed at all.

    Retrying cannot fix a missing or non-executable checker, so this
    aborts the whole run instead of producing a verdict.
    """

    def __init__(self, command: str, reason: str):
        super().__init__(f"Cannot run checker '{command}': {reason}")
        self.command = command
        self.reason = reason
