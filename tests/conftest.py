"""Shared fixtures: a small two-scope dataset written to a temp directory."""

import json
from pathlib import Path

import pytest

from statute_graph.config import ExplorerConfig
from statute_graph.core import ConsistencyController, FileDatasetSource, GraphCache
from statute_graph.explorer import GraphExplorer

PRE = "pre-OBBBA"
POST = "post-OBBBA"


def make_node(node_id, name, node_type="section", time=PRE, **extra):
    return {"id": node_id, "name": name, "node_type": node_type, "time": time, **extra}


def make_link(source, target, edge_type="reference", time=PRE, **extra):
    return {"source": source, "target": target, "edge_type": edge_type, "time": time, **extra}


TITLE_26 = {
    "nodes": [
        make_node("s1", "26 U.S.C. § 1", display_label="§ 1", full_name="Tax imposed",
                  text="There is hereby imposed on the taxable income of every individual a tax"),
        make_node("s2", "26 U.S.C. § 61", display_label="§ 61", full_name="Gross income defined",
                  text="gross income means all income from whatever source derived"),
        make_node("s3", "26 U.S.C. § 63", display_label="§ 63", full_name="Taxable income defined",
                  text="taxable income means gross income minus deductions"),
        make_node("e1", "individual", node_type="entity", display_label="Individual"),
        make_node("c1", "gross income", node_type="concept",
                  properties={"definition": "all income from whatever source derived"}),
        make_node("i1", "Index: Income tax", node_type="index", text="income tax"),
        make_node("s1", "26 U.S.C. § 1", time=POST, display_label="§ 1",
                  text="There is hereby imposed on the taxable income of every individual a tax, as amended"),
        make_node("s2", "26 U.S.C. § 61", time=POST, display_label="§ 61",
                  text="gross income means all income from whatever source derived"),
        make_node("s4", "26 U.S.C. § 224", time=POST, full_name="Qualified tips",
                  text="no tax on tips"),
    ],
    "links": [
        make_link("s1", "s3"),
        make_link("s3", "s2"),
        make_link("s1", "e1", edge_type="definition", action="defines"),
        make_link("s2", "c1", edge_type="definition"),
        make_link("i1", "s1", edge_type="hierarchy"),
        make_link("s1", "s2", time=POST),
        make_link({"id": "s4", "name": "26 U.S.C. § 224"}, "s1", time=POST),
        make_link("s1", "e1", time=POST),
        make_link("s4", "s2"),
    ],
}

TITLE_42_PART_1 = {
    "nodes": [
        make_node("a", "A first"),
        make_node("b", "B"),
    ],
    "links": [make_link("a", "b")],
}

TITLE_42_PART_2 = {
    "nodes": [
        make_node("a", "A second"),
        make_node("a", "A post", time=POST),
        make_node("c", "C"),
    ],
    "links": [make_link("a", "b"), make_link("b", "c")],
}

MANIFEST = {
    "version": 1,
    "titles": [
        {"id": "7", "kind": "single", "file": "title-7.json"},
        {"id": "8", "kind": "single", "file": "title-8.json"},
        {"id": "26", "kind": "single", "file": "title-26.json", "label": "Internal Revenue Code"},
        {"id": "42", "kind": "split", "meta": "title-42.meta.json"},
    ],
}


def write_json(directory: Path, name: str, data):
    with open(directory / name, "w") as f:
        json.dump(data, f)


@pytest.fixture
def dataset_dir(tmp_path):
    write_json(tmp_path, "titles-manifest.json", MANIFEST)
    write_json(tmp_path, "title-26.json", TITLE_26)
    write_json(tmp_path, "title-42.meta.json", {
        "parts": [{"file": "title-42.part1.json"}, {"file": "title-42.part2.json"}]
    })
    write_json(tmp_path, "title-42.part1.json", TITLE_42_PART_1)
    write_json(tmp_path, "title-42.part2.json", TITLE_42_PART_2)
    # title-7.json is deliberately missing
    write_json(tmp_path, "title-8.json", {"nodes": [{"id": "x", "name": "no type"}], "links": []})
    return tmp_path


class CountingSource(FileDatasetSource):
    """File source that records every fetched path."""

    def __init__(self, root):
        super().__init__(root)
        self.fetched: list[str] = []

    async def fetch_json(self, rel_path):
        self.fetched.append(rel_path)
        return await super().fetch_json(rel_path)


@pytest.fixture
def source(dataset_dir):
    return CountingSource(dataset_dir)


@pytest.fixture
def cache(source):
    return GraphCache(source)


@pytest.fixture
def controller(cache):
    return ConsistencyController(cache, scope=PRE)


@pytest.fixture
def explorer(dataset_dir):
    config = ExplorerConfig(data_dir=dataset_dir, load_on_startup=False)
    return GraphExplorer(config)
