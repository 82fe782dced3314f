from conduit.agent.character import Character, load_character
from conduit.config import load_settings


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("PORT", "8080")
    monkeypatch.setenv("MEMORY_BACKEND", "JSON")
    monkeypatch.setenv("ROUTER_CONFIDENCE_THRESHOLD", "0.5")
    monkeypatch.setenv("SERIALIZE_ROOMS", "false")

    settings = load_settings()

    assert settings.port == 8080
    assert settings.memory_backend == "json"
    assert settings.router_confidence_threshold == 0.5
    assert settings.serialize_rooms is False


def test_settings_defaults(monkeypatch):
    for name in ("PORT", "MEMORY_LIMIT", "MEMORY_SCOPE", "CONTRACT_CANCEL_WINDOW_HOURS"):
        monkeypatch.delenv(name, raising=False)

    settings = load_settings()

    assert settings.port == 3000
    assert settings.memory_limit == 100
    assert settings.memory_scope == "user"
    assert settings.contract_cancel_window_hours == 2


def test_character_from_camel_case_json(tmp_path):
    path = tmp_path / "coach.json"
    path.write_text(
        '{"name": "Coach", "agentId": "coach", "system": "You coach.",'
        ' "messageExamples": [[{"user": "a", "content": {"text": "hi"}}]],'
        ' "style": {"chat": ["brief"]}}',
        encoding="utf-8",
    )

    character = load_character(path)

    assert isinstance(character, Character)
    assert character.agent_id == "coach"
    assert character.message_examples[0][0].text == "hi"
    assert character.style.chat == ["brief"]
    assert character.bio == []
