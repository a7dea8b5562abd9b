import logging
from typing import Optional

from twilio.rest import Client

logger = logging.getLogger(__name__)


class SmsService:
    """Sends text messages from the Wanda number through Twilio."""

    def __init__(
        self,
        account_sid: Optional[str],
        auth_token: Optional[str],
        from_number: Optional[str],
        client: Optional[Client] = None,
    ):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self._client = client

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = Client(self.account_sid, self.auth_token)
        return self._client

    def send(self, to: str, body: str) -> str:
        """Sends `body` to `to` and returns the Twilio message SID."""
        if not self.from_number:
            raise ValueError("TWILIO_PHONE_NUMBER is not configured")
        message = self.client.messages.create(to=to, from_=self.from_number, body=body)
        logger.info(f"SMS sent successfully to {to}. SID: {message.sid}")
        return message.sid
