"""Client side of the relay: push-channel subscription and call correlation."""
from toolrelay.client.correlator import ClientState, PendingCall, ToolClient

__all__ = [
    "ClientState",
    "PendingCall",
    "ToolClient",
]
