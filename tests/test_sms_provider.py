import pytest
from twilio.base.exceptions import TwilioRestException

from chatauth.exceptions import SmsDispatchError
from chatauth.infrastructure.sms.console_provider import ConsoleSmsProvider
from chatauth.infrastructure.sms.twilio_provider import TwilioSmsProvider, map_twilio_error
from chatauth.utils import hash_phone_number


class FakeMessages:
    def __init__(self, error=None):
        self.error = error
        self.created = []

    def create(self, **kwargs):
        if self.error is not None:
            raise self.error
        self.created.append(kwargs)

        class _Msg:
            sid = "SM123"
        return _Msg()


class FakeTwilioClient:
    def __init__(self, error=None):
        self.messages = FakeMessages(error)


def _rest_error(code):
    return TwilioRestException(status=400, uri="/Messages", msg="provider detail", code=code)


def test_send_normalizes_number_and_uses_sender():
    client = FakeTwilioClient()
    provider = TwilioSmsProvider(client=client, from_number="+15550000000", code_ttl_minutes=2)
    provider.send("13800138000", "042917")

    sent = client.messages.created[0]
    assert sent["to"] == "+8613800138000"
    assert sent["from_"] == "+15550000000"
    assert "042917" in sent["body"]


@pytest.mark.parametrize("code, expected_code, status", [
    (30007, "SMS_CONTENT_REJECTED", 400),
    (63038, "SMS_DAILY_LIMIT", 400),
    (14107, "SMS_THROTTLED", 400),
    (21211, "SMS_INVALID_NUMBER", 400),
    (20003, "SMS_AUTH_FAILED", 500),
    (99999, "SMS_FAILED", 400),
])
def test_provider_errors_map_to_safe_messages(code, expected_code, status):
    provider = TwilioSmsProvider(client=FakeTwilioClient(_rest_error(code)), from_number="+15550000000")
    with pytest.raises(SmsDispatchError) as exc:
        provider.send("13800138000", "123456")
    assert exc.value.code == expected_code
    assert exc.value.status_code == status
    assert "provider detail" not in exc.value.message


def test_throttle_message():
    err = map_twilio_error(_rest_error(14107))
    assert err.message == "Please wait at least 30 seconds before requesting another verification code."


def test_unconfigured_provider_fails_cleanly():
    provider = TwilioSmsProvider(client=None, from_number="")
    with pytest.raises(SmsDispatchError) as exc:
        provider.send("13800138000", "123456")
    assert exc.value.code == "SMS_NOT_CONFIGURED"
    assert exc.value.status_code == 500


def test_console_provider_logs_code_with_hashed_phone(caplog):
    with caplog.at_level("WARNING", logger="chatauth.infrastructure.sms.console_provider"):
        ConsoleSmsProvider().send("13800138000", "123456")
    assert "123456" in caplog.text
    assert hash_phone_number("13800138000") in caplog.text
    assert "13800138000" not in caplog.text
