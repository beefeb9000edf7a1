"""Custom exceptions for statute graph operations."""


class GraphError(Exception):
    """Base exception for statute graph operations."""
    pass


class TitleNotFoundError(GraphError):
    """Raised when a title id has no manifest entry."""
    def __init__(self, title_id: str):
        self.title_id = title_id
        super().__init__(f"Title {title_id} not found in manifest")


class FetchFailureError(GraphError):
    """Raised when a dataset file cannot be fetched or does not parse."""
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to fetch: {path} ({reason})")


class InvalidRequestError(GraphError):
    """Raised when a builder request or scope change is malformed."""
    pass


class DatasetNotLoadedError(GraphError):
    """Raised when an operation needs a dataset before any load succeeded."""
    def __init__(self):
        super().__init__("Graph not loaded yet. Load a title first.")


class NodeNotFoundError(GraphError):
    """Raised when a node is not found."""
    def __init__(self, scope: str, node_id: str):
        self.scope = scope
        self.node_id = node_id
        super().__init__(f"Node '{node_id}' not found in {scope} scope")
