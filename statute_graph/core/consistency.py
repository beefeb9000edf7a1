"""Consistency controller: last-request-wins arbitration of async results."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace

from .builder import build_network, validate_request
from .constants import DEFAULT_LINK_LIMIT, DEFAULT_NODE_BUDGET, DEFAULT_SCOPE
from .exceptions import NodeNotFoundError
from .loader import GraphCache
from .projector import node_ids_in_scope, project
from .ranking import truncate_links
from .types import BuilderRequest, BuilderResult, CachedGraph, DisplayState, ScopedGraph, Selection
from .utils import link_endpoints, normalize_title_id, validate_scope

logger = logging.getLogger(__name__)

CommitHook = Callable[[dict], Awaitable[None]]


@dataclass(frozen=True)
class Ticket:
    """Generation captured when an async operation starts."""
    generation: int


def apply_link_limit(result: BuilderResult, limit: int) -> tuple[BuilderResult, bool]:
    """
    Cap a builder result's links hub-first.

    Nodes are pruned only when the cap actually cut links: then any node no
    kept link touches is dropped. Under the cap the result is returned as is,
    so a seed with no links stays visible.
    """
    links, limited = truncate_links(result.links, limit, link_endpoints)
    if not limited:
        return result, False

    touched = set()
    for link in links:
        touched.add(link.source)
        touched.add(link.target)

    return BuilderResult(
        nodes=tuple(n for n in result.nodes if n.id in touched),
        links=tuple(links),
        truncated=True,
        matched_count=result.matched_count,
    ), True


def default_view(scoped: ScopedGraph, node_cap: int, link_limit: int) -> tuple[BuilderResult, bool]:
    """
    Capped view of a whole scope, shown while no search is active.

    Keeps the first `node_cap` nodes in load order and the links among them,
    cut to the first `link_limit`.
    """
    nodes = scoped.nodes[:node_cap]
    kept = {n.id for n in nodes}
    links = [l for l in scoped.links if l.source in kept and l.target in kept]

    links_capped = len(links) > link_limit
    if links_capped:
        links = links[:link_limit]

    nodes_capped = len(nodes) < len(scoped.nodes)
    return BuilderResult(
        nodes=tuple(nodes),
        links=tuple(links),
        truncated=nodes_capped or links_capped,
        matched_count=len(nodes),
    ), links_capped


class ConsistencyController:
    """
    Owns the user-visible state: active scope, selection, active search and
    the committed display.

    A single generation counter is bumped once per rendered display. Every
    async operation captures it on start and may only commit while it is still
    current; superseded results run to completion and are dropped. Commits and
    their broadcasts are serialized, so listeners see generations in order.
    """

    def __init__(
        self,
        cache: GraphCache,
        scope: str = DEFAULT_SCOPE,
        link_limit: int = DEFAULT_LINK_LIMIT,
        on_commit: CommitHook | None = None,
        node_cap: int = DEFAULT_NODE_BUDGET,
    ):
        validate_scope(scope)
        self.cache = cache
        self.scope = scope
        self.link_limit = link_limit
        self.node_cap = node_cap
        self.on_commit = on_commit

        self.generation = 0
        self.selection: Selection | None = None
        self.active_search: BuilderRequest | None = None
        self.display = DisplayState(scope=scope)

        self._reloads = 0
        self._commit_lock = asyncio.Lock()

    # ========================================================================
    # Generations
    # ========================================================================

    def begin(self) -> Ticket:
        self.generation += 1
        return Ticket(self.generation)

    def is_current(self, ticket: Ticket) -> bool:
        return ticket.generation == self.generation

    async def _commit(self, state: DisplayState) -> bool:
        """Install a display state unless a newer generation has started."""
        async with self._commit_lock:
            if state.generation != self.generation:
                logger.debug(f"Dropping commit for generation {state.generation} (current {self.generation})")
                return False
            self.display = state
            await self._notify("display_committed")
        return True

    async def _notify(self, event_type: str):
        if self.on_commit:
            await self.on_commit({"type": event_type, "state": self.display.to_dict()})

    # ========================================================================
    # Views
    # ========================================================================

    @property
    def actionable_selection(self) -> Selection | None:
        """The selection, only while it belongs to the active scope."""
        if self.selection and self.selection.scope == self.scope:
            return self.selection
        return None

    def _revalidate_selection(self, graph: CachedGraph, scope: str) -> Selection | None:
        if self.selection is None:
            return None
        if self.selection.node_id in node_ids_in_scope(graph, scope):
            return Selection(self.selection.node_id, scope)
        logger.debug(f"Clearing selection '{self.selection.node_id}': not present in {scope}")
        return None


    # ========================================================================
    # Operations
    # ========================================================================

    async def search(self, request: BuilderRequest) -> bool:
        """
        Run the network builder under the active scope and commit if still
        current. Returns True if this run's result was committed.
        """
        validate_request(request)
        graph = self.cache.graph

        self.active_search = request
        ticket = self.begin()
        scope = self.scope

        scoped = project(graph, scope)
        result = await asyncio.to_thread(build_network, scoped, request)
        result, limited = apply_link_limit(result, self.link_limit)

        if not self.is_current(ticket):
            logger.debug(f"Discarding stale search result (generation {ticket.generation} < {self.generation})")
            return False

        return await self._commit(DisplayState(
            generation=ticket.generation,
            title_id=graph.title_id,
            scope=scope,
            result=result,
            link_limit_truncated=limited,
            switching=False,
            selection=self.selection,
        ))

    async def _refresh(self) -> bool:
        """Re-render the display for the loaded title and active scope."""
        if not self.cache.loaded:
            ticket = self.begin()
            return await self._commit(DisplayState(
                generation=ticket.generation,
                scope=self.scope,
                selection=self.selection,
            ))

        if self.active_search is not None:
            return await self.search(self.active_search)

        graph = self.cache.graph
        ticket = self.begin()
        result, limited = default_view(project(graph, self.scope), self.node_cap, self.link_limit)
        return await self._commit(DisplayState(
            generation=ticket.generation,
            title_id=graph.title_id,
            scope=self.scope,
            result=result,
            link_limit_truncated=limited,
            selection=self.selection,
        ))

    async def switch_scope(self, scope: str) -> bool:
        """
        Change the active scope.

        The selection survives only if its node exists in the new scope. An
        active search is re-run under the new scope while the previous result
        stays on display; otherwise the capped scope view is shown.
        """
        validate_scope(scope)
        self.scope = scope

        if self.cache.loaded:
            self.selection = self._revalidate_selection(self.cache.graph, scope)
        else:
            self.selection = None

        logger.info(f"Switched scope to {scope}")

        if self.cache.loaded and self.active_search is not None:
            self.display = replace(self.display, switching=True, selection=self.selection)
        return await self._refresh()

    async def reload_title(self, title_id: str | int) -> bool:
        """
        Load a title and re-render the display against it.

        Failures propagate and leave all state untouched. Only a newer reload
        supersedes a load: searches and scope switches issued while it was in
        flight are re-applied to the new graph once it is installed.
        """
        title_id = normalize_title_id(title_id)
        self._reloads += 1
        reload_id = self._reloads

        def latest() -> bool:
            return reload_id == self._reloads

        graph = await self.cache.load(title_id, should_commit=latest)

        if not latest():
            logger.debug(f"Discarding load of title {title_id}: superseded by a newer reload")
            return False

        self.selection = self._revalidate_selection(graph, self.scope)
        return await self._refresh()

    async def select(self, node_id: str | None) -> Selection | None:
        """Select a node in the active scope; selecting it again clears it."""
        if node_id is None:
            self.selection = None
        elif self.selection == Selection(node_id, self.scope):
            self.selection = None
        else:
            if node_id not in node_ids_in_scope(self.cache.graph, self.scope):
                raise NodeNotFoundError(self.scope, node_id)
            self.selection = Selection(node_id, self.scope)

        async with self._commit_lock:
            self.display = replace(self.display, selection=self.selection)
            await self._notify("selection_changed")
        return self.selection

    async def clear_search(self) -> bool:
        """Drop the active search and show the capped scope view."""
        self.active_search = None
        return await self._refresh()
