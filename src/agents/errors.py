"""Domain-specific exceptions for the call bridge.

None of these is fatal to the process: the unit of failure isolation is a
single call. They are safe to import from API layers.
"""

from __future__ import annotations


class BridgeError(Exception):
    default_detail: str = "Bridge error"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.default_detail)
        self.detail = detail or self.default_detail


class DecodeError(BridgeError):
    """A wire payload could not be decoded. Skipped and logged."""

    default_detail = "Malformed wire payload."

    def __init__(self, raw: str | bytes, detail: str | None = None) -> None:
        super().__init__(detail)
        self.raw = raw

    def preview(self, limit: int = 200) -> str:
        text = self.raw.decode("utf-8", "replace") if isinstance(self.raw, bytes) else str(self.raw)
        return text[:limit]


class HandshakeError(BridgeError):
    default_detail = "Realtime backend handshake failed."


class ToolArgumentError(BridgeError):
    default_detail = "Tool call arguments could not be parsed."

    def __init__(self, arguments: str, detail: str | None = None) -> None:
        super().__init__(detail)
        self.arguments = arguments


class TransportClosedError(BridgeError):
    default_detail = "Send attempted on a closed connection."


class SessionStateError(BridgeError):
    default_detail = "Illegal session state transition."
