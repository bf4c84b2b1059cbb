import threading

from fleet_rental.utils.exceptions import OperationCancelledException


class CancellationToken:
    """
    Cooperative cancellation flag shared between a caller and a running
    engine operation. The operation checks it at safe points before commit;
    once commit has started the flag is ignored.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperationCancelledException()


def check_cancelled(token: CancellationToken | None) -> None:
    if token is not None:
        token.raise_if_cancelled()
