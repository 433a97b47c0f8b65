import logging

from ...application.ports.sms_provider import SmsProvider
from ...utils import hash_phone_number

logger = logging.getLogger(__name__)


class ConsoleSmsProvider(SmsProvider):
    """Development stand-in that writes codes to the log instead of sending them."""

    def send(self, phone: str, code: str) -> None:
        logger.warning(f"[DEV SMS] verification code for phone {hash_phone_number(phone)}: {code}")
