"""Dataset loader and the process-wide graph cache."""

import asyncio
import logging
from collections.abc import Callable
from types import MappingProxyType
from typing import Any

from pydantic import ValidationError

from .constants import DEFAULT_EDGE_TYPE, MANIFEST_FILE
from .exceptions import DatasetNotLoadedError, FetchFailureError, TitleNotFoundError
from .ranking import degree_map
from .schema import Manifest, ManifestEntry, RawGraph, RawLink, RawNode, SplitMeta
from .sources import DatasetSource
from .types import CachedGraph, Link, Node
from .utils import link_endpoints, normalize_title_id, scoped_key

logger = logging.getLogger(__name__)


def _parse(model, data: Any, rel_path: str):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise FetchFailureError(rel_path, f"schema mismatch: {e.error_count()} errors")


def merge_parts(parts: list[RawGraph]) -> tuple[list[RawNode], list[RawLink], int]:
    """
    Merge dataset parts in listed order.

    A node is kept only on the first occurrence of its (time, id) key; links
    are concatenated without deduplication. Returns (nodes, links, dropped).
    """
    nodes: list[RawNode] = []
    links: list[RawLink] = []
    seen: set[str] = set()
    dropped = 0

    for part in parts:
        for node in part.nodes:
            key = scoped_key(node.time, node.id)
            if key in seen:
                dropped += 1
                continue
            seen.add(key)
            nodes.append(node)
        links.extend(part.links)

    return nodes, links, dropped


def _to_node(raw: RawNode, degree: int) -> Node:
    props = raw.properties
    return Node(
        id=raw.id,
        name=raw.name,
        node_type=raw.node_type,
        time=raw.time,
        degree=degree,
        source_title=raw.source_title,
        display_label=raw.display_label,
        full_name=raw.full_name,
        text=raw.text if raw.text is not None else props.get("text"),
        definition=props.get("definition") or raw.definition,
        term_type=raw.term_type,
        title=raw.title,
        subtitle=raw.subtitle,
        part=raw.part,
        chapter=raw.chapter,
        subchapter=raw.subchapter,
        section=raw.section,
        subsection=raw.subsection,
        properties=MappingProxyType(dict(props)),
    )


def _to_link(raw: RawLink) -> Link:
    edge_type = raw.edge_type or DEFAULT_EDGE_TYPE
    return Link(
        source=raw.source,
        target=raw.target,
        edge_type=edge_type,
        action=raw.action or edge_type,
        time=raw.time,
        weight=raw.weight if raw.weight is not None else 1,
        source_title=raw.source_title,
        definition=raw.definition,
        location=raw.location,
        timestamp=raw.timestamp,
    )


def assemble_graph(title_id: str, parts: list[RawGraph]) -> CachedGraph:
    """Merge parts and attach dataset-wide degree to every node."""
    raw_nodes, raw_links, dropped = merge_parts(parts)
    links = tuple(_to_link(l) for l in raw_links)

    # Keyed by raw id across every scope
    degrees = degree_map(links, link_endpoints)
    nodes = tuple(_to_node(n, degrees.get(n.id, 0)) for n in raw_nodes)

    if dropped:
        logger.debug(f"Title {title_id}: dropped {dropped} duplicate nodes during merge")
    return CachedGraph(title_id=title_id, nodes=nodes, links=links)


class GraphCache:
    """
    Single-owner store for the loaded graph.

    Holds exactly one CachedGraph at a time. Loads replace it wholesale; a
    failed load leaves the previous graph in place.
    """

    def __init__(self, source: DatasetSource, manifest_file: str = MANIFEST_FILE):
        self.source = source
        self.manifest_file = manifest_file
        self._graph: CachedGraph | None = None

    @property
    def loaded(self) -> bool:
        return self._graph is not None

    @property
    def graph(self) -> CachedGraph:
        """The current snapshot. Raises DatasetNotLoadedError before the first load."""
        if self._graph is None:
            raise DatasetNotLoadedError()
        return self._graph

    @property
    def title_id(self) -> str:
        return self.graph.title_id

    async def manifest(self) -> Manifest:
        data = await self.source.fetch_json(self.manifest_file)
        return _parse(Manifest, data, self.manifest_file)

    async def load(
        self,
        title_id: str | int,
        should_commit: Callable[[], bool] | None = None,
    ) -> CachedGraph:
        """
        Load a title, replacing the cached graph.

        Returns the existing snapshot (by identity) if the title is already
        loaded. When `should_commit` returns False once the fetch completes,
        the new graph is returned but not installed.
        """
        title_id = normalize_title_id(title_id)
        current = self._graph
        if current is not None and current.title_id == title_id:
            return current

        manifest = await self.manifest()
        entry = manifest.find(title_id)
        if entry is None:
            raise TitleNotFoundError(title_id)

        parts = await self._fetch_parts(entry)
        graph = assemble_graph(title_id, parts)

        if should_commit is not None and not should_commit():
            logger.debug(f"Discarding superseded load of title {title_id}")
            return graph

        self._graph = graph
        logger.info(
            f"Loaded title {title_id}: {len(parts)} files, "
            f"{len(graph.nodes)} nodes, {len(graph.links)} links"
        )
        return graph

    async def _fetch_parts(self, entry: ManifestEntry) -> list[RawGraph]:
        if entry.kind == "single":
            data = await self.source.fetch_json(entry.file)
            return [_parse(RawGraph, data, entry.file)]

        meta = _parse(SplitMeta, await self.source.fetch_json(entry.meta), entry.meta)
        payloads = await asyncio.gather(
            *(self.source.fetch_json(p.file) for p in meta.parts)
        )
        return [_parse(RawGraph, data, p.file) for p, data in zip(meta.parts, payloads)]
