from typing import Protocol


class Notifier(Protocol):
    def send(self, mobile_number: str, message: str) -> None:
        """Best-effort delivery. Must return promptly and never raise."""
        ...


class MessageChannel(Protocol):
    name: str

    def is_configured(self) -> bool:
        ...

    def send(self, destination: str, text: str) -> None:
        """Deliver synchronously; raise on failure."""
        ...
