"""Extract ontology records from Elixir syntax trees."""

__version__ = "0.1.0"

from .dispatch import ExtractedRecord, classify, extract_file, extract_node, extract_source, extract_tree
from .errors import ExtractionError, ExtractionFailure, Result
from .nodes import (
    FALSE,
    NIL,
    TRUE,
    Atom,
    Call,
    Float,
    Integer,
    ListNode,
    MapNode,
    RemoteCall,
    Str,
    TupleNode,
    Variable,
)

__all__ = [
    "__version__",
    "Atom",
    "Call",
    "ExtractedRecord",
    "ExtractionError",
    "ExtractionFailure",
    "FALSE",
    "Float",
    "Integer",
    "ListNode",
    "MapNode",
    "NIL",
    "RemoteCall",
    "Result",
    "Str",
    "TRUE",
    "TupleNode",
    "Variable",
    "classify",
    "extract_file",
    "extract_node",
    "extract_source",
    "extract_tree",
]
