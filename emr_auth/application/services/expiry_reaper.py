import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from ..ports.challenge_repo import ChallengeRepository
from ...utils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class ExpiryReaper:
    """Garbage-collects expired challenges. Verification never depends on it having run."""

    repo: ChallengeRepository
    clock: Callable[[], datetime] = field(default=utcnow)

    def sweep(self) -> int:
        try:
            deleted = self.repo.delete_expired(self.clock())
        except Exception as e:
            # retried on the next tick
            logger.error(f"Error cleaning up expired OTPs: {e}", exc_info=True)
            return 0
        if deleted:
            logger.info(f"Expired OTPs cleaned up: {deleted}")
        else:
            logger.debug("No expired OTPs to clean up")
        return deleted
