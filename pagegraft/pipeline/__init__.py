"""Import pipeline stages: pre-registration, scheduling, materialization, resolution."""

from .materializer import InsertionMode, PageMaterializer, select_insertion_target, serialize_node
from .preregister import collect_identifiers, preregister
from .resolver import ReferenceResolver
from .scheduler import ImportScheduler, no_yield, sleep_yield

__all__ = [
    "ImportScheduler",
    "InsertionMode",
    "PageMaterializer",
    "ReferenceResolver",
    "collect_identifiers",
    "no_yield",
    "preregister",
    "select_insertion_target",
    "serialize_node",
    "sleep_yield",
]
