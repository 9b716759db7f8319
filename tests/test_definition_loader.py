"""
Tests for DefinitionLoader and ConfigLoader

Covers every definition source (bundled name, path, file:// and http(s)://),
schema validation and building forms with bindings and messages.
"""
from pathlib import Path

import pytest
import requests

from reactive_forms import (
    ConfigLoader,
    DefinitionError,
    DefinitionLoader,
    ManualClock,
    TimerQueue,
    UnknownValidatorError,
)

FIXTURES = Path(__file__).parent / "fixtures"


@pytest.fixture
def config_loader(tmp_path):
    """ConfigLoader whose definition cache lives in a temporary directory."""
    config_file = tmp_path / "settings.yaml"
    config_file.write_text(
        f"definition_cache_dir: {tmp_path / 'cache'}\n"
        "message_debounce_seconds: 0.5\n"
        "messages:\n"
        "  required: Required.\n"
    )
    return ConfigLoader(str(config_file))


@pytest.fixture
def loader(config_loader):
    return DefinitionLoader(config_loader)


class FakeResponse:
    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


class TestConfigLoader:
    """Test bundled defaults and overrides."""

    def test_defaults(self):
        config = ConfigLoader()
        assert config.get_message_debounce() == 1.0
        assert config.get_strict_types() is False
        assert "required" in config.get_messages()

    def test_override_is_deep_merged(self, config_loader):
        assert config_loader.get_message_debounce() == 0.5
        messages = config_loader.get_messages()
        assert messages["required"] == "Required."
        assert "email" in messages

    def test_override_must_be_mapping(self, tmp_path):
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("- not\n- a mapping\n")
        with pytest.raises(ValueError):
            ConfigLoader(str(config_file))


class TestLoad:
    """Test definition sources."""

    def test_bundled_definition(self, loader):
        definition = loader.load("customer")
        assert definition["name"] == "customer"
        assert "emailGroup" in definition["controls"]

    def test_path(self, loader):
        definition = loader.load(str(FIXTURES / "signup.yaml"))
        assert definition["name"] == "signup"

    def test_file_uri(self, loader):
        definition = loader.load((FIXTURES / "signup.yaml").resolve().as_uri())
        assert definition["name"] == "signup"

    def test_missing_definition(self, loader):
        with pytest.raises(DefinitionError):
            loader.load("no-such-form")

    def test_invalid_yaml(self, loader, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("controls: [unclosed\n")
        with pytest.raises(DefinitionError):
            loader.load(str(path))

    def test_http_fetch_is_cached(self, loader, monkeypatch):
        """Test that remote definitions are fetched once and then cached."""
        calls = []

        def fake_get(url, timeout):
            calls.append(url)
            return FakeResponse((FIXTURES / "signup.yaml").read_text())

        monkeypatch.setattr(requests, "get", fake_get)
        uri = "https://forms.example.com/signup.yaml"

        assert loader.load(uri)["name"] == "signup"
        assert loader.load(uri)["name"] == "signup"
        assert calls == [uri]

        loader.load(uri, refresh=True)
        assert len(calls) == 2

    def test_http_failure(self, loader, monkeypatch):
        monkeypatch.setattr(requests, "get", lambda url, timeout: FakeResponse("", 404))
        with pytest.raises(DefinitionError):
            loader.load("https://forms.example.com/missing.yaml")


class TestValidate:
    """Test schema validation of definitions."""

    def test_missing_controls(self, loader):
        with pytest.raises(DefinitionError):
            loader.validate({"name": "empty"})

    def test_unknown_top_level_key(self, loader):
        with pytest.raises(DefinitionError):
            loader.validate({"controls": {"a": ""}, "layout": "grid"})

    def test_bad_control_entry(self, loader):
        with pytest.raises(DefinitionError) as exc:
            loader.validate({"controls": {"a": {"value": "", "type": "date"}}})
        assert "controls" in str(exc.value)

    def test_binding_requires_when(self, loader):
        with pytest.raises(DefinitionError):
            loader.validate({
                "controls": {"a": "", "b": ""},
                "bindings": [{"trigger": "a", "target": "b"}],
            })


class TestBuild:
    """Test building forms from definitions."""

    @pytest.fixture
    def signup(self, loader):
        clock = ManualClock()
        form = loader.build(
            loader.load(str(FIXTURES / "signup.yaml")),
            scheduler=TimerQueue(clock=clock),
        )
        yield form
        form.destroy()

    def test_controls_and_values(self, signup):
        assert signup.value == {
            "username": "",
            "passwords": {"password": "", "repeat": ""},
            "age": None,
            "contactBy": "email",
            "phone": "",
            "terms": False,
        }
        assert signup.get("age").value_type == "number"

    def test_validators_are_resolved(self, signup):
        signup.get("username").set_value("Jo!")
        assert set(signup.get("username").errors) == {"pattern"}
        signup.get("age").set_value(9)
        assert signup.get("age").errors == {"range": True}
        assert signup.get("terms").errors == {"required": True}

    def test_group_validator(self, signup):
        passwords = signup.get("passwords")
        passwords.patch_value({"password": "correct horse", "repeat": "battery"})
        passwords.mark_touched()
        passwords.revalidate()
        assert passwords.errors == {"mismatch": True}
        assert signup.message_for("passwords") == "The passwords do not match."

    def test_binding(self, signup):
        assert len(signup.bindings) == 1
        assert signup.bindings[0].slot == "contact-phone"
        signup.get("contactBy").set_value("phone")
        assert signup.get("phone").errors == {"required": True}

    def test_messages_layered_over_config(self, signup):
        assert signup.messages["required"] == "Required."
        assert signup.messages["mismatch"] == "The passwords do not match."
        assert signup.message_debounce == 0.5

    def test_unknown_validator(self, loader):
        with pytest.raises(UnknownValidatorError):
            loader.build({"controls": {"a": {"value": "", "validators": ["postcode"]}}})

    def test_binding_to_missing_control(self, loader):
        with pytest.raises(DefinitionError):
            loader.build({
                "controls": {"a": ""},
                "bindings": [{"trigger": "a", "target": "b", "when": "x"}],
            })

    def test_strict_types(self, loader):
        from reactive_forms import TypeMismatchError

        form = loader.build({"controls": {"n": 1}}, strict_types=True)
        with pytest.raises(TypeMismatchError):
            form.get("n").set_value("one")
