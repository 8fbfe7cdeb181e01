"""TransactionExecutor: one single-register read or write per call, with outcome classification."""

import logging

from .errors import NoDataError, RequestFailedError, TransportError
from .tracker import ResponsivenessTracker
from .transport import Transport
from .types import RegisterDescriptor

logger = logging.getLogger(__name__)


class TransactionExecutor:
    """
    Issues exactly one transaction against the transport and reports successes
    to the responsiveness tracker. Retry policy belongs to the caller.
    """

    def __init__(
        self,
        transport: Transport,
        peripheral_id: int = 1,
        tracker: ResponsivenessTracker | None = None,
    ) -> None:
        self._transport = transport
        self._peripheral_id = peripheral_id
        self._tracker = tracker

    @property
    def peripheral_id(self) -> int:
        return self._peripheral_id

    def read(self, descriptor: RegisterDescriptor) -> int:
        """Read one register and return the raw 16-bit word."""
        try:
            values = self._transport.request_read(
                self._peripheral_id, descriptor.address_space, descriptor.address, count=1
            )
        except TransportError as e:
            logger.warning(
                "Failed to read %s register %d (%s): %s",
                descriptor.address_space.value,
                descriptor.address,
                descriptor.name,
                e,
            )
            raise RequestFailedError(
                str(e),
                address=descriptor.address,
                address_space=descriptor.address_space.value,
                cause=e.cause or e,
            ) from e
        if not values:
            logger.warning("No values received for register %d (%s)", descriptor.address, descriptor.name)
            raise NoDataError(
                "No values received",
                address=descriptor.address,
                address_space=descriptor.address_space.value,
            )
        raw = int(values[0])
        logger.debug("Read register %d (%s): 0b%s", descriptor.address, descriptor.name, format(raw, "016b"))
        self._succeeded()
        return raw

    def write(self, descriptor: RegisterDescriptor, word: int) -> None:
        """Write one raw 16-bit word; the request/acknowledge pair succeeds or fails as a whole."""
        logger.debug("Writing register %d (%s): 0b%s", descriptor.address, descriptor.name, format(word, "016b"))
        try:
            self._transport.request_write(
                self._peripheral_id, descriptor.address_space, descriptor.address, word
            )
        except TransportError as e:
            logger.warning(
                "Write to %s register %d (%s) failed: %s",
                descriptor.address_space.value,
                descriptor.address,
                descriptor.name,
                e,
            )
            raise RequestFailedError(
                str(e),
                address=descriptor.address,
                address_space=descriptor.address_space.value,
                cause=e.cause or e,
            ) from e
        self._succeeded()

    def _succeeded(self) -> None:
        if self._tracker is not None:
            self._tracker.record_success()
