"""Constants for statute graph operations."""

# Time scopes (dataset variants before/after the amendment)
TIME_SCOPES = ("pre-OBBBA", "post-OBBBA")
DEFAULT_SCOPE = "pre-OBBBA"

# Node and edge vocabularies
NODE_TYPES = ("section", "entity", "concept", "index")
EDGE_TYPES = ("definition", "reference", "hierarchy")
DEFAULT_EDGE_TYPE = "reference"

# Fields the network builder may match search terms against
SEARCH_FIELDS = ("text", "full_name", "display_label", "definition", "node_type")

MATCH_LOGIC = ("and", "or")
RANKING_MODES = ("global", "subgraph")

# Dataset files
MANIFEST_FILE = "titles-manifest.json"
MANIFEST_VERSION = 1
DEFAULT_TITLE = "26"

# Size budgets
DEFAULT_LINK_LIMIT = 4000
DEFAULT_NODE_BUDGET = 2000
DEFAULT_MAX_PER_EXPANSION = 100
DEFAULT_MAX_TOTAL_NODES = 500
NODE_SEARCH_LIMIT = 20

# Fetching
FETCH_TIMEOUT_SECONDS = 30.0

NO_DETAILS_MESSAGE = "No details available"
NO_TEXT_MESSAGE = "No text available for this node."
