# app/core/exceptions.py
class GraphEngineException(Exception):
    """Base class for every error raised by the graph engine."""
    code = "graph_error"

    def __init__(self, message="Graph operation failed."):
        self.message = message
        super().__init__(self.message)


# --- Validation errors ---

class GraphValidationException(GraphEngineException):
    code = "invalid_graph"


class DuplicateVertexException(GraphValidationException):
    """Raised when two vertices of a creation batch share an external id."""
    code = "duplicate_vertex"

    def __init__(self, vertex_id):
        self.vertex_id = vertex_id
        super().__init__(f"Vertex {vertex_id} already exists in this graph.")


class DuplicateEdgeException(GraphValidationException):
    """Raised when two edges of a creation batch share the same ordered pair."""
    code = "duplicate_edge"

    def __init__(self, origin_id, destiny_id):
        self.origin_id = origin_id
        self.destiny_id = destiny_id
        super().__init__(f"An edge between {origin_id} and {destiny_id} already exists.")


class DanglingEdgeReferenceException(GraphValidationException):
    """Raised when an edge references a vertex missing from its batch."""
    code = "dangling_edge_reference"

    def __init__(self, origin_id, destiny_id):
        self.origin_id = origin_id
        self.destiny_id = destiny_id
        super().__init__(
            f"Edge {origin_id} -> {destiny_id} references a vertex not found in the vertices list."
        )


class InvalidWeightException(GraphValidationException):
    code = "invalid_weight"

    def __init__(self, origin_id, destiny_id, weight):
        self.origin_id = origin_id
        self.destiny_id = destiny_id
        self.weight = weight
        super().__init__(
            f"Edge {origin_id} -> {destiny_id} has invalid weight {weight}; weights must be non-negative."
        )


# --- Lookup errors ---

class GraphLookupException(GraphEngineException):
    code = "not_found"


class GraphNotFoundException(GraphLookupException):
    """Raised when a graph is not found for a given ID."""
    code = "graph_not_found"

    def __init__(self, graph_id):
        self.graph_id = graph_id
        super().__init__(f"Graph {graph_id} not found.")


class UnknownVertexException(GraphLookupException):
    code = "unknown_vertex"

    def __init__(self, vertex_id):
        self.vertex_id = vertex_id
        super().__init__(f"Vertex {vertex_id} does not belong to this graph.")


# --- Search outcomes ---

class NoPathExistsException(GraphEngineException):
    """A well-formed query whose destiny is unreachable from its origin."""
    code = "no_path_exists"

    def __init__(self, origin_id, destiny_id):
        self.origin_id = origin_id
        self.destiny_id = destiny_id
        super().__init__(f"No path from {origin_id} to {destiny_id}.")


class PathLimitExceededException(GraphEngineException):
    code = "path_limit_exceeded"

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Path enumeration exceeded the limit of {limit} paths.")


# --- Storage boundary ---

class MalformedRecordException(GraphEngineException):
    """Raised when a stored row cannot be read back as a typed record."""
    code = "malformed_record"

    def __init__(self, kind: str, detail: str):
        self.kind = kind
        self.detail = detail
        super().__init__(f"Malformed {kind} record: {detail}")


class GraphPersistenceException(GraphEngineException):
    code = "persistence_failed"
