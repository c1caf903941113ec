"""Exceptions raised by the FXP core."""


class FxpError(Exception):
    """Base class for every error raised by the client core."""

    # Partial FxpSession that owns an already opened progress connection,
    # set when a negotiation fails after the progress connection was created.
    session = None


class InvalidArgument(FxpError, ValueError):
    def __init__(self, name: str):
        super().__init__(f"Required parameter is null or blank: {name}")
        self.name = name


class CommandFailed(FxpError):
    """A command's reply indicated failure. Carries the offending reply."""

    def __init__(self, reply):
        super().__init__(f"{reply.code} {reply.message}")
        self.reply = reply


class MalformedResponse(FxpError):
    """A reply could not be parsed into the structure we expected."""

    def __init__(self, raw: str, reason: str = "Malformed PASV response"):
        super().__init__(f"{reason}: {raw}")
        self.raw = raw


class OperationCancelled(FxpError):
    pass


class ConnectionFailed(FxpError, ConnectionError):
    pass
