"""Exception types raised at the message-ingestion boundary."""


class TonStatError(Exception):
    """Base class for errors raised by tonstat."""


class MalformedMessageError(TonStatError):
    """A feed message could not be decoded into a JSON object."""

    def __init__(self, reason: str, raw: str = ""):
        self.reason = reason
        self.raw = raw[:200]
        super().__init__(f"{reason}: {self.raw!r}")
