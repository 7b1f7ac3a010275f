from ygolookup.parsers.markup import (
    MarkupNode,
    get_node_text,
    parse,
    select_by_absolute_path,
)

__all__ = [
    "MarkupNode",
    "get_node_text",
    "parse",
    "select_by_absolute_path",
]
