import logging
import threading
from typing import Optional

from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client
from twilio.http.http_client import TwilioHttpClient

from ...core.config import PLACEHOLDER_VALUES
from ...application.ports.notifier import MessageChannel

logger = logging.getLogger(__name__)


class TwilioClientProvider:
    """Process-wide Twilio REST client, built on first use and shared by every channel."""

    def __init__(self, account_sid: str, auth_token: str, timeout: int = 15):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.timeout = timeout
        self._client: Optional[Client] = None
        self._lock = threading.Lock()

    @property
    def configured(self) -> bool:
        return self.account_sid not in PLACEHOLDER_VALUES and self.auth_token not in PLACEHOLDER_VALUES

    def get(self) -> Client:
        if not self.configured:
            raise RuntimeError("Twilio credentials not configured")
        if self._client is None:
            with self._lock:
                if self._client is None:
                    # No retries here: the dispatcher's fallback channel is the only retry
                    self._client = Client(
                        self.account_sid,
                        self.auth_token,
                        http_client=TwilioHttpClient(timeout=self.timeout),
                    )
                    logger.info("Twilio client initialized")
        return self._client


class TwilioSmsChannel(MessageChannel):
    name = "sms"

    def __init__(self, provider: TwilioClientProvider, from_number: str):
        self.provider = provider
        self.from_number = from_number

    def is_configured(self) -> bool:
        return self.provider.configured and self.from_number not in PLACEHOLDER_VALUES

    def _addresses(self, destination: str):
        return destination, self.from_number

    def send(self, destination: str, text: str) -> None:
        to, from_ = self._addresses(destination)
        try:
            message = self.provider.get().messages.create(to=to, from_=from_, body=text)
        except TwilioRestException as e:
            logger.error(f"Twilio {self.name} REST error: {e.code} - {e.msg}")
            raise
        logger.debug(f"Twilio {self.name} message queued, SID: {message.sid}")


class TwilioWhatsAppChannel(TwilioSmsChannel):
    name = "whatsapp"

    def _addresses(self, destination: str):
        return f"whatsapp:{destination}", f"whatsapp:{self.from_number}"
