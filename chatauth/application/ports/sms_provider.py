from typing import Protocol


class SmsProvider(Protocol):
    def send(self, phone: str, code: str) -> None:
        """Deliver ``code`` to ``phone``; raises SmsDispatchError on failure."""
        ...
