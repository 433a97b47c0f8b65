import logging
from typing import Optional

from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.http.http_client import TwilioHttpClient
from twilio.rest import Client

from ...core.config import settings
from ...application.ports.sms_provider import SmsProvider
from ...exceptions import SmsDispatchError
from ...utils import hash_phone_number, normalize_phone_number

logger = logging.getLogger(__name__)

# Twilio REST error codes grouped by what the caller can do about them
CONTENT_REJECTED_CODES = {30007}
DAILY_LIMIT_CODES = {63038}
THROTTLED_CODES = {14107, 20429}
INVALID_NUMBER_CODES = {21211, 21614, 60200, 60202}
AUTH_FAILURE_CODES = {20003}


def map_twilio_error(error: TwilioRestException) -> SmsDispatchError:
    code = getattr(error, "code", None)
    if code in CONTENT_REJECTED_CODES:
        return SmsDispatchError(
            "SMS content contains sensitive words. Please contact support.",
            code="SMS_CONTENT_REJECTED",
        )
    if code in DAILY_LIMIT_CODES:
        return SmsDispatchError(
            "Daily SMS limit reached for this phone number. Please try again tomorrow.",
            code="SMS_DAILY_LIMIT",
        )
    if code in THROTTLED_CODES:
        return SmsDispatchError(
            "Please wait at least 30 seconds before requesting another verification code.",
            code="SMS_THROTTLED",
        )
    if code in INVALID_NUMBER_CODES:
        return SmsDispatchError(
            "Invalid phone number. Please check and try again.",
            code="SMS_INVALID_NUMBER",
        )
    if code in AUTH_FAILURE_CODES:
        return SmsDispatchError(
            "SMS service authentication failed. Please contact support.",
            code="SMS_AUTH_FAILED",
            status_code=500,
        )
    return SmsDispatchError()


class TwilioSmsProvider(SmsProvider):
    def __init__(self, client: Optional[Client] = None, from_number: Optional[str] = None, timeout_seconds: int = settings.SMS_REQUEST_TIMEOUT_SECONDS, code_ttl_minutes: int = settings.SMS_CODE_TIMEOUT_MINUTES):
        self.from_number = from_number or settings.TWILIO_PHONE_NUMBER
        self.code_ttl_minutes = code_ttl_minutes
        if client is not None:
            self.client = client
        elif settings.TWILIO_ACCOUNT_SID and settings.TWILIO_AUTH_TOKEN:
            # Explicit timeout and no retries: a slow provider fails the request instead of stalling it
            self.client = Client(
                settings.TWILIO_ACCOUNT_SID,
                settings.TWILIO_AUTH_TOKEN,
                http_client=TwilioHttpClient(timeout=timeout_seconds),
            )
        else:
            self.client = None

    def send(self, phone: str, code: str) -> None:
        if self.client is None or not self.from_number:
            logger.error("Twilio SMS provider is not configured")
            raise SmsDispatchError(
                "SMS service is not configured. Please contact support.",
                code="SMS_NOT_CONFIGURED",
                status_code=500,
            )

        to = normalize_phone_number(phone, settings.SMS_DEFAULT_COUNTRY_CODE)
        body = f"Your verification code is {code}. It expires in {self.code_ttl_minutes} minutes."
        phone_hash = hash_phone_number(phone)
        try:
            message = self.client.messages.create(to=to, from_=self.from_number, body=body)
        except TwilioRestException as e:
            logger.error(f"Twilio REST error for phone {phone_hash}: {e.code} - {e.msg}")
            raise map_twilio_error(e)
        except TwilioException as e:
            logger.error(f"Twilio error for phone {phone_hash}: {e}")
            raise SmsDispatchError()
        logger.info(f"Verification SMS sent to phone {phone_hash}, SID: {getattr(message, 'sid', None)}")
