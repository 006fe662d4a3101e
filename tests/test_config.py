import os

import pytest

from sessionkit.config import BasketSettings, Theme
from sessionkit.connectors.ga4 import GA4Auth

REQUIRED = {"min_support": 0.01, "min_confidence": 0.3, "min_size": 2, "min_items": 2}


def test_basket_settings_require_thresholds():
    with pytest.raises(ValueError, match="min_items"):
        BasketSettings.from_mapping({"min_support": 0.01, "min_confidence": 0.3, "min_size": 2})


def test_overrides_win_and_none_is_ignored():
    s = BasketSettings.from_mapping(REQUIRED, min_support=0.05, min_confidence=None, marker=None)
    assert s.min_support == 0.05
    assert s.min_confidence == 0.3
    assert s.marker == "ENTRANCE-"
    assert s.min_lift is None and s.max_rules is None


@pytest.mark.parametrize(
    "key,value",
    [("min_support", 0), ("min_support", 1.5), ("min_confidence", -0.1), ("min_size", 0), ("min_items", 0)],
)
def test_invalid_thresholds(key, value):
    with pytest.raises(ValueError, match=key):
        BasketSettings.from_mapping({**REQUIRED, key: value})


def test_unknown_setting_rejected():
    with pytest.raises(ValueError, match="min_suport"):
        BasketSettings.from_mapping({**REQUIRED, "min_suport": 0.1})


def test_from_yaml_nested_and_flat(tmp_path):
    nested = tmp_path / "nested.yaml"
    nested.write_text("basket:\n  min_support: 0.02\n  min_confidence: 0.4\n  min_size: 2\n  min_items: 3\n  max_rules: 10\n")
    s = BasketSettings.from_yaml(nested)
    assert (s.min_support, s.min_confidence, s.min_items, s.max_rules) == (0.02, 0.4, 3, 10)

    flat = tmp_path / "flat.yaml"
    flat.write_text("min_support: 0.02\nmin_confidence: 0.4\nmin_size: 1\nmin_items: 1\nmarker: 'LP:'\n")
    s = BasketSettings.from_yaml(flat, min_confidence=0.9)
    assert s.min_confidence == 0.9
    assert s.marker == "LP:"


def test_from_yaml_missing_file(tmp_path):
    with pytest.raises(RuntimeError):
        BasketSettings.from_yaml(tmp_path / "nope.yaml")


def test_from_yaml_without_file_uses_overrides_only():
    assert BasketSettings.from_yaml(None, **REQUIRED).min_size == 2


def test_theme_overrides():
    theme = Theme().with_overrides(template="plotly_dark", primary=None)
    assert theme.template == "plotly_dark"
    assert theme.primary == Theme().primary


@pytest.fixture()
def isolated_env(monkeypatch):
    env = {k: v for k, v in os.environ.items() if not k.startswith("GA4_")}
    monkeypatch.setattr(os, "environ", env)
    return env


def test_ga4_auth_from_dotenv(tmp_path, isolated_env):
    key = tmp_path / "sa.json"
    key.write_text("{}")
    env_file = tmp_path / ".env"
    env_file.write_text(f"GA4_PROPERTY_ID=999\nGA4_KEY_FILE={key}\n")
    auth = GA4Auth.load(env_file)
    assert auth.property_id == "999"
    assert auth.key_file == key
    assert auth.credentials() is None


def test_process_env_beats_dotenv(tmp_path, isolated_env):
    key = tmp_path / "sa.json"
    key.write_text("{}")
    env_file = tmp_path / ".env"
    env_file.write_text(f"GA4_PROPERTY_ID=999\nGA4_KEY_FILE={key}\n")
    isolated_env["GA4_PROPERTY_ID"] = "111"
    isolated_env["GOOGLE_APPLICATION_CREDENTIALS"] = "preset.json"
    auth = GA4Auth.load(env_file)
    assert auth.property_id == "111"
    assert isolated_env["GOOGLE_APPLICATION_CREDENTIALS"] == "preset.json"


def test_ga4_auth_errors(tmp_path, isolated_env):
    missing_env = tmp_path / "missing.env"
    with pytest.raises(RuntimeError, match="GA4_PROPERTY_ID"):
        GA4Auth.load(missing_env)

    isolated_env["GA4_PROPERTY_ID"] = "properties/1"
    with pytest.raises(RuntimeError, match="numeric"):
        GA4Auth.load(missing_env)

    isolated_env["GA4_PROPERTY_ID"] = "123"
    isolated_env["GA4_KEY_FILE"] = str(tmp_path / "absent.json")
    with pytest.raises(RuntimeError, match="GA4 key not found"):
        GA4Auth.load(missing_env)


def test_ga4_auth_falls_back_to_client_file(tmp_path, isolated_env):
    client = tmp_path / "client_secret.json"
    client.write_text("{}")
    isolated_env.update({
        "GA4_PROPERTY_ID": "123",
        "GA4_KEY_FILE": str(tmp_path / "absent.json"),
        "GA4_CLIENT_FILE": str(client),
    })
    auth = GA4Auth.load(tmp_path / "missing.env")
    assert auth.key_file is None
    assert auth.client_file == client


def test_from_yaml_empty_basket_section_uses_overrides(tmp_path):
    cfg = tmp_path / "basket.yaml"
    cfg.write_text("basket:\n  # min_support: 0.01\n")
    s = BasketSettings.from_yaml(cfg, **REQUIRED)
    assert s.min_support == 0.01
    assert s.min_items == 2


def test_from_yaml_basket_section_must_be_mapping(tmp_path):
    cfg = tmp_path / "basket.yaml"
    cfg.write_text("basket:\n  - 0.01\n  - 0.3\n")
    with pytest.raises(ValueError, match="mapping"):
        BasketSettings.from_yaml(cfg, **REQUIRED)
