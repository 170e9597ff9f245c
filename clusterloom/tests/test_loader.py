"""Unit tests for the unit graph loader.

Tests cover:
- JSON and YAML documents
- Destination given as string or mapping
- Dataless units: categorised, and omitted when fully processed
- Document entity types become a catalog
- Malformed input raises UnitGraphError
"""

import json

import pytest
import yaml

from clusterloom.core.clusterer.errors import UnitGraphError
from clusterloom.core.loader import build_units, load_document, load_units, parse_document


# ── Fixtures ──────────────────────────────────────────────────────────────


def _document():
    return {
        "entity_types": {
            "node": {"label": "Content", "plural_label": "content items", "bundle_entity_type": "node_type"},
        },
        "units": [
            {
                "id": "d7_node_complete:article",
                "label": "Article",
                "required": ["d7_node_type:article"],
                "tags": ["Drupal 7", "Content"],
                "destination": "entity_complete:node",
                "source": {"plugin": "d7_node_complete", "configuration": {"node_type": "article"}},
                "row_count": 12,
            },
            {
                "id": "d7_node_type:article",
                "tags": ["Configuration"],
                "destination": {"plugin_id": "entity:node_type"},
                "row_count": 1,
            },
            {
                "id": "d7_empty_config",
                "tags": ["Configuration"],
                "destination": "config",
                "row_count": 0,
            },
            {
                "id": "d7_done_config",
                "tags": ["Configuration"],
                "destination": "config",
                "row_count": 0,
                "all_rows_processed": True,
            },
            {
                "id": "d7_node_complete:page",
                "tags": ["Content"],
                "destination": "entity_complete:node",
                "row_count": 0,
                "all_rows_processed": True,
            },
        ],
    }


# ── Tests: Reading ────────────────────────────────────────────────────────


class TestLoadDocument:

    def test_json(self, tmp_path):
        path = tmp_path / "units.json"
        path.write_text(json.dumps(_document()))
        document = load_document(path)
        assert len(document.units) == 5
        assert document.units[0].source.configuration == {"node_type": "article"}

    def test_yaml(self, tmp_path):
        path = tmp_path / "units.yaml"
        path.write_text(yaml.safe_dump(_document()))
        units, catalog = load_units(path)
        assert "d7_node_complete:article" in [u.id for u in units]
        assert catalog.plural_label("node") == "content items"

    def test_missing_file(self, tmp_path):
        with pytest.raises(UnitGraphError, match="Cannot read"):
            load_document(tmp_path / "missing.json")

    def test_unparseable_file(self, tmp_path):
        path = tmp_path / "units.json"
        path.write_text("{not json")
        with pytest.raises(UnitGraphError, match="Cannot parse"):
            load_document(path)


class TestParseDocument:

    def test_not_a_mapping(self):
        with pytest.raises(UnitGraphError):
            parse_document(["units"])

    def test_units_required(self):
        with pytest.raises(UnitGraphError, match="Invalid unit graph"):
            parse_document({"entity_types": {}})

    def test_unit_without_id(self):
        with pytest.raises(UnitGraphError):
            parse_document({"units": [{"label": "No id"}]})


# ── Tests: Building units ─────────────────────────────────────────────────


class TestBuildUnits:

    def test_work_unit_fields(self):
        units = {u.id: u for u in build_units(parse_document(_document()))}
        article = units["d7_node_complete:article"]
        assert article.label == "Article"
        assert article.required_dependencies == ["d7_node_type:article"]
        assert article.tags == frozenset({"Drupal 7", "Content"})
        assert article.destination.entity_type_id == "node"
        assert article.source.get("node_type") == "article"
        assert article.row_count == 12

    def test_destination_mapping(self):
        units = {u.id: u for u in build_units(parse_document(_document()))}
        assert units["d7_node_type:article"].destination.plugin_id == "entity:node_type"
        assert units["d7_node_type:article"].label == "d7_node_type:article"

    def test_dataless_units(self):
        units = {u.id: u for u in build_units(parse_document(_document()))}
        assert units["d7_empty_config"].metadata.category == "no_data"
        assert units["d7_node_type:article"].metadata.category is None
        # Fully processed and dataless, but content: kept.
        assert "d7_node_complete:page" in units
        assert "d7_done_config" not in units
