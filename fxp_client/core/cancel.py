import threading

from .errors import OperationCancelled


class CancelToken:
    """Cooperative cancellation flag shared between a caller and an operation.

    The core checks it before every command send, every reply read and
    before opening a progress connection.
    """

    def __init__(self):
        self._event = threading.Event()
        self.reason = None

    def cancel(self, reason: str = "Operation cancelled"):
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise OperationCancelled(self.reason)


def check(token):
    if token is not None:
        token.raise_if_cancelled()
