"""Unit tests for configuration loading.

Tests cover:
- Shipped defaults in config/clusterloom.yaml
- CLUSTERLOOM_CONFIG_DIR relocates the file; a missing file means defaults
- Environment overrides win over YAML values
- Invalid YAML, invalid values and invalid overrides are configuration errors
- reload_configs() drops the cache
"""

import pytest

from clusterloom.core.clusterer.errors import ClustererConfigurationError
from clusterloom.core.config import get_config_value, get_settings, reload_configs


# ── Fixtures ──────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _fresh_config(monkeypatch):
    monkeypatch.delenv("CLUSTERLOOM_CONFIG_DIR", raising=False)
    monkeypatch.delenv("CLUSTERLOOM_ALPHABETICAL_THRESHOLD", raising=False)
    monkeypatch.delenv("CLUSTERLOOM_MAX_REVISITS", raising=False)
    reload_configs()
    yield
    reload_configs()


def _write_config(tmp_path, monkeypatch, text):
    (tmp_path / "clusterloom.yaml").write_text(text)
    monkeypatch.setenv("CLUSTERLOOM_CONFIG_DIR", str(tmp_path))
    reload_configs()


# ── Tests: Defaults ───────────────────────────────────────────────────────


class TestShippedConfig:

    def test_sorter_defaults(self):
        settings = get_settings()
        assert settings.sorter.alphabetical_threshold == 10
        assert settings.sorter.very_high_impact_multiplier == 100000
        assert settings.sorter.lift_exempt_labels == ["Language settings"]

    def test_lift_defaults(self):
        settings = get_settings()
        assert settings.lift.max_revisits == 1
        assert settings.lift.max_path_visits == 2
        assert "d7_paragraphs:paragraphs_item*" in settings.lift.self_reference_families

    def test_entity_types(self):
        mapping = get_settings().entity_type_mapping()
        assert mapping["node"]["bundle_entity_type"] == "node_type"
        assert mapping["user"]["bundle_entity_type"] is None

    def test_raw_lookup(self):
        assert get_config_value("clusterloom", "sorter", "correction_offset") == 100
        assert get_config_value("clusterloom", "missing", default="x") == "x"


# ── Tests: Overrides ──────────────────────────────────────────────────────


class TestOverrides:

    def test_config_dir(self, tmp_path, monkeypatch):
        _write_config(tmp_path, monkeypatch, "clusterloom:\n  sorter:\n    alphabetical_threshold: 3\n")
        settings = get_settings()
        assert settings.sorter.alphabetical_threshold == 3
        assert settings.sorter.correction_offset == 100
        assert settings.entity_types == {}

    def test_missing_file_means_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CLUSTERLOOM_CONFIG_DIR", str(tmp_path))
        settings = get_settings()
        assert settings.sorter.alphabetical_threshold == 10
        assert settings.lift.max_path_visits == 2

    def test_environment_wins(self, tmp_path, monkeypatch):
        _write_config(tmp_path, monkeypatch, "clusterloom:\n  sorter:\n    alphabetical_threshold: 3\n")
        monkeypatch.setenv("CLUSTERLOOM_ALPHABETICAL_THRESHOLD", "25")
        monkeypatch.setenv("CLUSTERLOOM_MAX_REVISITS", "0")
        settings = get_settings()
        assert settings.sorter.alphabetical_threshold == 25
        assert settings.lift.max_path_visits == 1

    def test_settings_cached_until_reload(self, tmp_path, monkeypatch):
        _write_config(tmp_path, monkeypatch, "clusterloom:\n  sorter:\n    alphabetical_threshold: 3\n")
        assert get_settings().sorter.alphabetical_threshold == 3
        (tmp_path / "clusterloom.yaml").write_text("clusterloom:\n  sorter:\n    alphabetical_threshold: 4\n")
        assert get_settings().sorter.alphabetical_threshold == 3
        reload_configs()
        assert get_settings().sorter.alphabetical_threshold == 4


# ── Tests: Errors ─────────────────────────────────────────────────────────


class TestErrors:

    def test_invalid_yaml(self, tmp_path, monkeypatch):
        _write_config(tmp_path, monkeypatch, "clusterloom: [unclosed\n")
        with pytest.raises(ClustererConfigurationError, match="Invalid YAML"):
            get_settings()

    def test_top_level_must_be_mapping(self, tmp_path, monkeypatch):
        _write_config(tmp_path, monkeypatch, "- just\n- a list\n")
        with pytest.raises(ClustererConfigurationError):
            get_settings()

    def test_invalid_value(self, tmp_path, monkeypatch):
        _write_config(tmp_path, monkeypatch, "clusterloom:\n  sorter:\n    correction_offset: -1\n")
        with pytest.raises(ClustererConfigurationError, match="Invalid clusterloom configuration"):
            get_settings()

    def test_non_integer_override(self, monkeypatch):
        monkeypatch.setenv("CLUSTERLOOM_MAX_REVISITS", "many")
        with pytest.raises(ClustererConfigurationError, match="CLUSTERLOOM_MAX_REVISITS"):
            get_settings()
