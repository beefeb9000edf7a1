"""Tests for the bottom-up network builder."""

import pytest

from statute_graph.core import (
    EDGE_TYPES,
    NODE_TYPES,
    BuilderRequest,
    InvalidRequestError,
    Link,
    Node,
    ScopedGraph,
    build_network,
    validate_request,
)

from .conftest import PRE


def node(node_id, degree=0, text="", node_type="section", **kwargs):
    return Node(id=node_id, name=node_id, node_type=node_type, time=PRE, degree=degree, text=text, **kwargs)


def link(source, target, edge_type="reference"):
    return Link(source=source, target=target, edge_type=edge_type, action=edge_type, time=PRE)


def graph(nodes, links=()):
    return ScopedGraph(scope=PRE, nodes=tuple(nodes), links=tuple(links))


def request(keywords, **kwargs):
    kwargs.setdefault("search_fields", ("text",))
    kwargs.setdefault("allowed_node_types", NODE_TYPES)
    kwargs.setdefault("allowed_edge_types", EDGE_TYPES)
    return BuilderRequest.from_keywords(keywords, **kwargs)


def ids(result):
    return [n.id for n in result.nodes]


class TestValidation:
    def test_empty_fields_rejected(self):
        with pytest.raises(InvalidRequestError):
            validate_request(request("tax", search_fields=()))

    def test_blank_keywords_rejected(self):
        with pytest.raises(InvalidRequestError):
            validate_request(request(" , ,"))

    @pytest.mark.parametrize("kwargs", [
        {"search_fields": ("body",)},
        {"allowed_node_types": ("statute",)},
        {"allowed_edge_types": ("cites",)},
        {"match_logic": "xor"},
        {"ranking_mode": "pagerank"},
        {"expansion_depth": -1},
        {"max_nodes_per_expansion": 0},
        {"max_total_nodes": 0},
    ])
    def test_bad_parameters_rejected(self, kwargs):
        with pytest.raises(InvalidRequestError):
            validate_request(request("tax", **kwargs))

    def test_terms_normalized(self):
        assert validate_request(request(" Tax ,INCOME")) == ("tax", "income")


class TestMatching:
    NODES = [
        node("x", text="income", full_name="Tax code"),
        node("y", text="income"),
        node("z", text="tax"),
        node("w", text="unrelated"),
    ]

    def test_and_requires_every_term_across_fields(self):
        result = build_network(
            graph(self.NODES),
            request("tax, income", search_fields=("text", "full_name"), match_logic="and", expansion_depth=0),
        )
        assert ids(result) == ["x"]
        assert result.matched_count == 1

    def test_or_accepts_any_term(self):
        result = build_network(
            graph(self.NODES),
            request("tax, income", search_fields=("text", "full_name"), expansion_depth=0),
        )
        assert sorted(ids(result)) == ["x", "y", "z"]
        assert result.matched_count == 3

    def test_matching_is_case_insensitive(self):
        result = build_network(graph(self.NODES), request("INCOME", expansion_depth=0))
        assert sorted(ids(result)) == ["x", "y"]

    def test_only_selected_fields_are_searched(self):
        result = build_network(graph(self.NODES), request("tax code", expansion_depth=0))
        assert result.matched_count == 0

    def test_node_type_field_matches_kind(self):
        nodes = [node("e", node_type="entity"), node("s")]
        result = build_network(graph(nodes), request("entity", search_fields=("node_type",), expansion_depth=0))
        assert ids(result) == ["e"]

    def test_seed_node_type_must_be_allowed(self):
        nodes = [node("e", text="tax", node_type="entity"), node("s", text="tax")]
        result = build_network(graph(nodes), request("tax", allowed_node_types=("entity",), expansion_depth=0))
        assert ids(result) == ["e"]

    def test_zero_matches_is_empty(self):
        result = build_network(graph(self.NODES), request("estate"))
        assert result.nodes == ()
        assert result.links == ()
        assert result.matched_count == 0
        assert not result.truncated


class TestExpansion:
    def _hub(self):
        nodes = [
            node("hub", degree=4, text="seedterm"),
            node("n1", degree=5),
            node("n2", degree=9),
            node("n3", degree=7),
            node("n4", degree=1),
        ]
        links = [link("hub", "n1"), link("hub", "n2"), link("n3", "hub"), link("hub", "n4")]
        return graph(nodes, links)

    def test_admits_top_ranked_neighbours_per_node(self):
        result = build_network(self._hub(), request("seedterm", max_nodes_per_expansion=2))

        assert ids(result) == ["hub", "n2", "n3"]
        assert result.truncated
        assert {(l.source, l.target) for l in result.links} == {("hub", "n2"), ("n3", "hub")}

    def test_expansion_is_deterministic(self):
        scoped = self._hub()
        req = request("seedterm", max_nodes_per_expansion=2)
        assert build_network(scoped, req) == build_network(scoped, req)

    def test_not_truncated_when_everything_fits(self):
        result = build_network(self._hub(), request("seedterm", max_nodes_per_expansion=10))
        assert ids(result) == ["hub", "n2", "n3", "n1", "n4"]
        assert not result.truncated
        assert len(result.links) == 4

    def test_depth_zero_keeps_only_seeds(self):
        result = build_network(self._hub(), request("seedterm", expansion_depth=0))
        assert ids(result) == ["hub"]
        assert result.links == ()

    def test_second_level_expands_from_admitted_nodes(self):
        nodes = [node("s", degree=1, text="seedterm"), node("a", degree=2), node("b", degree=1)]
        links = [link("s", "a"), link("a", "b")]

        one = build_network(graph(nodes, links), request("seedterm", expansion_depth=1))
        two = build_network(graph(nodes, links), request("seedterm", expansion_depth=2))

        assert ids(one) == ["s", "a"]
        assert ids(two) == ["s", "a", "b"]

    def test_only_allowed_edge_types_are_followed(self):
        nodes = [node("s", text="seedterm"), node("d"), node("r")]
        links = [link("s", "d", edge_type="definition"), link("s", "r")]
        result = build_network(graph(nodes, links), request("seedterm", allowed_edge_types=("reference",)))

        assert ids(result) == ["s", "r"]
        assert all(l.edge_type == "reference" for l in result.links)

    def _two_seeds(self, with_a1=True):
        nodes = [
            node("A", degree=3, text="seedterm"),
            node("B", degree=2, text="seedterm"),
            node("a1", degree=3),
            node("a2", degree=9),
            node("a3", degree=5),
            node("b1", degree=4),
            node("b2", degree=2),
        ]
        links = [link("A", "a2"), link("a3", "A"), link("B", "b1"), link("b2", "B")]
        if with_a1:
            links.append(link("A", "a1"))
        return graph(nodes, links)

    def test_each_seed_admits_its_own_top_two(self):
        req = request("seedterm", max_nodes_per_expansion=2, expansion_depth=1)
        result = build_network(self._two_seeds(), req)

        assert ids(result) == ["A", "B", "a2", "a3", "b1", "b2"]
        assert result.matched_count == 2
        assert result.truncated
        assert {(l.source, l.target) for l in result.links} == {
            ("A", "a2"), ("a3", "A"), ("B", "b1"), ("b2", "B"),
        }

    def test_not_truncated_when_no_seed_exceeds_cap(self):
        req = request("seedterm", max_nodes_per_expansion=2, expansion_depth=1)
        result = build_network(self._two_seeds(with_a1=False), req)

        assert ids(result) == ["A", "B", "a2", "a3", "b1", "b2"]
        assert not result.truncated


class TestCaps:
    def test_seed_overflow_keeps_highest_ranked(self):
        nodes = [node("a", degree=1, text="tax"), node("b", degree=5, text="tax"), node("c", degree=3, text="tax")]
        result = build_network(graph(nodes), request("tax", max_total_nodes=2))

        assert ids(result) == ["b", "c"]
        assert result.matched_count == 3
        assert result.truncated

    def test_total_cap_trims_admitted_nodes(self):
        nodes = [node("h", degree=10, text="seedterm")] + [
            node(f"p{i}", degree=6 - i) for i in range(1, 6)
        ]
        links = [link("h", f"p{i}") for i in range(1, 6)]
        result = build_network(graph(nodes, links), request("seedterm", max_total_nodes=3))

        assert ids(result) == ["h", "p1", "p2"]
        assert result.truncated
        assert len(result.links) == 2


class TestRankingModes:
    def _graph(self):
        nodes = [node("s", degree=3, text="seedterm"), node("x", degree=10), node("y", degree=2)]
        # y is linked to the seed twice
        links = [link("s", "x"), link("s", "y"), link("y", "s")]
        return graph(nodes, links)

    def test_global_mode_prefers_dataset_hubs(self):
        result = build_network(self._graph(), request("seedterm", max_nodes_per_expansion=1))
        assert ids(result) == ["s", "x"]

    def test_subgraph_mode_prefers_local_connections(self):
        result = build_network(
            self._graph(),
            request("seedterm", max_nodes_per_expansion=1, ranking_mode="subgraph"),
        )
        assert ids(result) == ["s", "y"]
        assert len(result.links) == 2
