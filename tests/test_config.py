from card_control import config
from card_control.firebase import FirebaseClient


def test_environment_wins(monkeypatch):
    monkeypatch.setenv("FIREBASE_DATABASE_URL", "https://real.firebaseio.com")
    assert config.get_setting("FIREBASE_DATABASE_URL", "x") == "https://real.firebaseio.com"


def test_default_when_unset(monkeypatch):
    monkeypatch.delenv("CARD_CONTROL_UNSET", raising=False)
    assert config.get_setting("CARD_CONTROL_UNSET", "fallback") == "fallback"
    assert config.get_setting("CARD_CONTROL_UNSET") is None


def test_placeholder_client_is_detected():
    client = FirebaseClient(
        database_url=config.PLACEHOLDER_DATABASE_URL,
        api_key=config.PLACEHOLDER_API_KEY,
    )
    assert client.is_placeholder
    assert not FirebaseClient(database_url="https://real.firebaseio.com", api_key="k").is_placeholder
