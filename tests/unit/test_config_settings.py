import pytest
import yaml

from techaccess.config.settings import (
    DEFAULT_TRANSPORT_MODES,
    ClientConfig,
    TransportMode,
    load_settings,
    save_host,
)


def test_defaults_without_file_or_env(tmp_path):
    cfg = load_settings(tmp_path / "missing.yaml")

    assert cfg.host == ""
    assert cfg.request_timeout == 30
    assert cfg.case_sensitive_match is True
    assert cfg.transport_modes == DEFAULT_TRANSPORT_MODES
    assert cfg.credential_path == tmp_path / "credentials.enc"


def test_file_values_are_loaded(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "host": "https://tenant.example.test/",
        "request_timeout": 12,
        "case_sensitive_match": False,
        "transport_modes": {"technician.list": "standard", "triplet.list": "form_body"},
    }))

    cfg = load_settings(path)

    assert cfg.host == "https://tenant.example.test"
    assert cfg.request_timeout == 12.0
    assert cfg.case_sensitive_match is False
    assert cfg.transport_mode("technician.list") is TransportMode.STANDARD
    assert cfg.transport_mode("triplet.list") is TransportMode.FORM_BODY
    assert cfg.transport_mode("agent.list") is TransportMode.FORM_BODY


def test_environment_overrides_file(monkeypatch, tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"host": "https://from-file.example", "request_timeout": 12}))
    monkeypatch.setenv("TECHACCESS_HOST", "https://from-env.example")
    monkeypatch.setenv("TECHACCESS_TIMEOUT", "5")
    monkeypatch.setenv("TECHACCESS_CASE_SENSITIVE", "false")

    cfg = load_settings(path)

    assert cfg.host == "https://from-env.example"
    assert cfg.request_timeout == 5.0
    assert cfg.case_sensitive_match is False


def test_config_path_from_environment(monkeypatch, tmp_path):
    path = tmp_path / "alt.yaml"
    path.write_text(yaml.safe_dump({"host": "https://alt.example"}))
    monkeypatch.setenv("TECHACCESS_CONFIG", str(path))

    assert load_settings().host == "https://alt.example"


def test_invalid_timeout_raises(monkeypatch, tmp_path):
    monkeypatch.setenv("TECHACCESS_TIMEOUT", "soon")

    with pytest.raises(ValueError, match="timeout"):
        load_settings(tmp_path / "missing.yaml")


def test_invalid_transport_mode_raises(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"transport_modes": {"technician.list": "carrier-pigeon"}}))

    with pytest.raises(ValueError, match="carrier-pigeon"):
        load_settings(path)


def test_malformed_file_is_ignored(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("host: [unclosed")

    assert load_settings(path).host == ""


def test_save_host_round_trip(tmp_path):
    path = tmp_path / "nested" / "config.yaml"
    path.parent.mkdir()
    path.write_text(yaml.safe_dump({"request_timeout": 9}))

    save_host("https://tenant.example.test/", path)

    cfg = load_settings(path)
    assert cfg.host == "https://tenant.example.test"
    assert cfg.request_timeout == 9.0


def test_save_host_rejects_non_http(tmp_path):
    with pytest.raises(ValueError):
        save_host("tenant.example.test", tmp_path / "config.yaml")


def test_transport_mode_for_unnamed_route():
    assert ClientConfig().transport_mode(None) is TransportMode.STANDARD


def test_configs_do_not_share_transport_tables():
    first = ClientConfig()
    first.transport_modes["technician.list"] = TransportMode.STANDARD

    assert ClientConfig().transport_mode("technician.list") is TransportMode.FORM_BODY
