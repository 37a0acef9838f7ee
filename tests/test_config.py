from treasury.config import Settings


def test_cors_origins_are_normalized():
    settings = Settings(cors_origins=[" http://localhost:3000/ ", "http://localhost:3000", "https://kas.example.com"])

    assert settings.cors_allow_origins == ["http://localhost:3000", "https://kas.example.com"]


def test_whatsapp_requires_token_and_phone_number():
    assert not Settings(whatsapp_token="token").whatsapp_is_configured
    assert Settings(whatsapp_token="token", whatsapp_phone_number_id="1234").whatsapp_is_configured


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("DEFAULT_DUES_AMOUNT", "75000")
    monkeypatch.setenv("LOG_FORMAT", "plain")

    settings = Settings()

    assert settings.default_dues_amount == 75000
    assert settings.log_format == "plain"
    assert settings.default_currency == "IDR"
