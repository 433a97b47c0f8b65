from datetime import timedelta

import pytest
from pydantic import ValidationError

from chatauth.core.config import DEFAULT_ACCESS_SECRET, DEFAULT_REFRESH_SECRET, ConfigurationError, Settings


def test_expiry_strings_parse_to_timedeltas():
    s = Settings(ACCESS_TOKEN_EXPIRY="15Minutes", REFRESH_TOKEN_EXPIRY="30Days")
    assert s.access_token_ttl == timedelta(minutes=15)
    assert s.refresh_token_ttl == timedelta(days=30)


def test_invalid_expiry_fails_at_load():
    with pytest.raises(ValidationError):
        Settings(ACCESS_TOKEN_EXPIRY="soon")


def test_production_requires_real_secrets_and_twilio():
    s = Settings(
        ENVIRONMENT="production",
        JWT_PRIVATE_KEY=DEFAULT_ACCESS_SECRET,
        JWT_REFRESH_SECRET=DEFAULT_REFRESH_SECRET,
    )
    with pytest.raises(ConfigurationError) as exc:
        s.validate_for_production()
    assert "JWT_PRIVATE_KEY" in str(exc.value)
    assert "Twilio" in str(exc.value)


def test_production_rejects_auth_bypass():
    s = Settings(
        ENVIRONMENT="production",
        JWT_PRIVATE_KEY="a" * 32,
        JWT_REFRESH_SECRET="b" * 32,
        TWILIO_ACCOUNT_SID="AC123",
        TWILIO_AUTH_TOKEN="token",
        TWILIO_PHONE_NUMBER="+15550000000",
        REQUIRES_AUTH=False,
    )
    assert s.auth_bypass_enabled is False
    with pytest.raises(ConfigurationError, match="REQUIRES_AUTH"):
        s.validate_for_production()


def test_valid_production_configuration_passes():
    s = Settings(
        ENVIRONMENT="production",
        JWT_PRIVATE_KEY="a" * 32,
        JWT_REFRESH_SECRET="b" * 32,
        TWILIO_ACCOUNT_SID="AC123",
        TWILIO_AUTH_TOKEN="token",
        TWILIO_PHONE_NUMBER="+15550000000",
        PASSWORD_HASH_ROUNDS=12,
    )
    s.validate_for_production()


def test_bypass_only_outside_production():
    assert Settings(ENVIRONMENT="development", REQUIRES_AUTH=False).auth_bypass_enabled is True
    assert Settings(ENVIRONMENT="development", REQUIRES_AUTH=True).auth_bypass_enabled is False
