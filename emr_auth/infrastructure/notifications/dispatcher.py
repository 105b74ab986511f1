import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Optional, Sequence

from ...application.ports.notifier import MessageChannel, Notifier
from ...exceptions import DeliveryDegraded
from ...utils import mask_phone_number, truncate

logger = logging.getLogger(__name__)


class NotificationDispatcher(Notifier):
    """Fire-and-forget text delivery over an ordered list of channels.

    Channels are tried in order (primary first) and the first one that accepts
    the message wins. A channel that is unconfigured is skipped, a channel that
    raises hands over to the next one. When no channel is configured at all the
    message is only logged, which is how development setups see their codes.

    ``send`` never raises and never waits for network I/O: delivery runs on a
    worker pool.
    """

    def __init__(self, channels: Sequence[MessageChannel], executor: Optional[Executor] = None, max_workers: int = 4):
        self.channels = list(channels)
        self._executor = executor or ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notify")

    def send(self, mobile_number: str, message: str) -> None:
        try:
            self._executor.submit(self._deliver_quietly, mobile_number, message)
        except Exception as e:
            # e.g. executor already shut down
            logger.error(f"Could not schedule message to {mask_phone_number(mobile_number)}: {truncate(str(e))}")

    def _deliver_quietly(self, mobile_number: str, message: str) -> Optional[str]:
        try:
            return self.deliver(mobile_number, message)
        except DeliveryDegraded as e:
            logger.error(f"Message to {mask_phone_number(mobile_number)} not delivered: {e}")
        except Exception as e:
            logger.error(f"Unexpected delivery error for {mask_phone_number(mobile_number)}: {truncate(str(e))}", exc_info=True)
        return None

    def deliver(self, mobile_number: str, message: str) -> Optional[str]:
        """Synchronous delivery. Returns the channel used, or None for the log-only fallback."""
        configured = [c for c in self.channels if c.is_configured()]
        if not configured:
            logger.warning(f"No messaging channel configured. Mock message to {mask_phone_number(mobile_number)}: {message}")
            return None

        failures = []
        for channel in configured:
            try:
                channel.send(mobile_number, message)
                logger.info(f"Message sent via {channel.name} to {mask_phone_number(mobile_number)}")
                return channel.name
            except Exception as e:
                reason = truncate(str(e))
                failures.append(f"{channel.name}: {reason}")
                logger.warning(f"{channel.name} delivery to {mask_phone_number(mobile_number)} failed: {reason}")

        raise DeliveryDegraded("; ".join(failures))

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
