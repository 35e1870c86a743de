from __future__ import annotations


class PushChannelError(Exception):
    """Base class for push channel failures."""
    pass
class RegistrationError(PushChannelError):
    """Raised when the server accepted a registration but its reply is unusable."""
    pass
class ChannelStateError(PushChannelError):
    """Raised when a channel is asked to open twice."""
    pass
