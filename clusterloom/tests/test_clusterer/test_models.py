"""Unit tests for clusterer data contracts.

Tests cover:
- Write-once cluster assignment (and explicit override)
- Empty labels rejected at assignment time
- Group ID generation, validation and label recovery
- Destination and unit ID helpers
- Group properties and serialisation
"""

import pytest

from clusterloom.core.clusterer.errors import ClusterAlreadyAssignedError, ClusterLabelError
from clusterloom.core.clusterer.models import (
    ClusterAssignment,
    DestinationDescriptor,
    Group,
    SourceDescriptor,
    UnitMetadata,
    WorkUnit,
    generate_group_id,
    is_valid_group_id,
    label_for_group_id,
)


# ── Tests: Cluster assignment ─────────────────────────────────────────────


class TestAssignCluster:

    def test_first_assignment_is_stored(self):
        meta = UnitMetadata()
        meta.assign_cluster("a", ClusterAssignment("Article", assigned_by="entity_bundles"))
        assert meta.cluster.label == "Article"
        assert meta.is_clustered

    def test_second_assignment_raises(self):
        meta = UnitMetadata()
        meta.assign_cluster("a", ClusterAssignment("Article"))
        with pytest.raises(ClusterAlreadyAssignedError) as exc:
            meta.assign_cluster("a", ClusterAssignment("Page"))
        assert exc.value.existing == "Article"
        assert exc.value.attempted == "Page"
        assert meta.cluster.label == "Article"

    def test_override_replaces(self):
        meta = UnitMetadata()
        meta.assign_cluster("a", ClusterAssignment("Article"))
        meta.assign_cluster("a", ClusterAssignment("Page", lifted=True), override=True)
        assert meta.cluster == ClusterAssignment("Page", lifted=True)

    def test_empty_label_raises(self):
        meta = UnitMetadata()
        with pytest.raises(ClusterLabelError):
            meta.assign_cluster("a", ClusterAssignment("", assigned_by="x"))
        assert meta.cluster is None


# ── Tests: Group IDs ──────────────────────────────────────────────────────


class TestGroupIds:

    def test_id_is_digest_plus_label(self):
        group_id = generate_group_id("Article")
        digest, label = group_id.split("-", 1)
        assert len(digest) == 32
        assert label == "Article"
        assert is_valid_group_id(group_id)

    def test_id_is_stable(self):
        assert generate_group_id("Article") == generate_group_id("Article")
        assert generate_group_id("Article") != generate_group_id("Page")

    def test_slashes_are_replaced(self):
        group_id = generate_group_id("Terms/Tags")
        assert "/" not in group_id
        assert label_for_group_id(group_id) == "Terms-Tags"
        assert is_valid_group_id(group_id)

    def test_long_labels_are_truncated(self):
        label = "x" * 300
        group_id = generate_group_id(label)
        assert len(label_for_group_id(group_id)) == 192
        assert is_valid_group_id(group_id)

    def test_invalid_ids(self):
        assert not is_valid_group_id("Article")
        assert not is_valid_group_id("abc-Article")
        assert not is_valid_group_id("0" * 32 + "-")

    def test_label_for_id_on_group(self):
        group = Group.for_label("Shared structure for content items")
        assert Group.label_for_id(group.id) == "Shared structure for content items"


# ── Tests: Descriptors and units ──────────────────────────────────────────


class TestDescriptors:

    def test_entity_destination_type(self):
        assert DestinationDescriptor("entity_complete:node").entity_type_id == "node"
        assert DestinationDescriptor("entity:taxonomy_term").entity_type_id == "taxonomy_term"
        assert DestinationDescriptor("entity_reference_revisions:paragraph").entity_type_id == "paragraph"

    def test_non_entity_destination(self):
        assert DestinationDescriptor("config").entity_type_id is None
        assert DestinationDescriptor("entity").entity_type_id is None
        assert DestinationDescriptor("component_entity_display").base_id == "component_entity_display"

    def test_source_constants(self):
        source = SourceDescriptor("d7_field", {"constants": {"entity_type": "node"}})
        assert source.constant("entity_type") == "node"
        assert source.constant("missing") is None
        assert source.get("missing", "x") == "x"

    def test_unit_defaults(self):
        unit = WorkUnit(id="d7_node_complete:article", tags=["Content"])
        assert unit.label == "d7_node_complete:article"
        assert unit.base_id == "d7_node_complete"
        assert unit.derivative_parts == ["article"]
        assert unit.tags == frozenset({"Content"})
        assert unit.destination.plugin_id == "null"
        assert unit.cluster is None


# ── Tests: Groups ─────────────────────────────────────────────────────────


class TestGroup:

    def test_structural_members(self):
        group = Group.for_label("Article")
        group.members = ["node_type", "field", "node", "alias"]
        group.data_members = ["node", "alias"]
        assert group.structural_members == ["node_type", "field"]

    def test_supporting_config_only(self):
        assert Group.for_label("Language settings").is_supporting_config_only
        assert Group.for_label("Shared structure for media items").is_supporting_config_only
        assert not Group.for_label("Article").is_supporting_config_only

    def test_preselectable(self):
        group = Group.for_label("Article")
        assert not group.is_preselectable

        group.members = group.data_members = ["d7_node:article", "d7_node_revision:article"]
        assert not group.is_preselectable

        group.members = ["d7_node_type:article", "d7_node:article"]
        group.data_members = ["d7_node:article"]
        assert group.is_preselectable

    def test_to_dict(self):
        group = Group.for_label("Article")
        group.members = ["a", "b"]
        group.data_members = ["b"]
        group.dependencies = {"dep-id": ["x"]}
        data = group.to_dict()
        assert data["id"] == group.id
        assert data["label"] == "Article"
        assert data["members"] == ["a", "b"]
        assert data["dependencies"] == {"dep-id": ["x"]}
        assert data["skipped_by_default"] is False
        assert data["preselectable"] is True
