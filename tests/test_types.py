"""Tests for the value types."""

import pytest

from statute_graph.core import Node, NodeDetail

from .conftest import PRE


def test_node_defaults_to_empty_properties():
    node = Node(id="s1", name="§ 1", node_type="section", time=PRE)
    assert node.properties == {}
    assert node.to_dict()["properties"] == {}


def test_default_properties_are_read_only():
    node = Node(id="s1", name="§ 1", node_type="section")
    with pytest.raises(TypeError):
        node.properties["x"] = 1


def test_unavailable_detail_has_empty_fields():
    detail = NodeDetail.unavailable("s9", PRE)
    assert detail.fields == {}
    assert detail.to_dict()["fields"] == {}
