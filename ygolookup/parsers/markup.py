"""
Minimal tolerant HTML scanner.

Builds a small element/text tree from one page shape (a card search results
page) and answers fixed-depth tag-path queries such as `html/body/div[2]/h3`.
It is NOT a general HTML engine: no CSS, no XPath, no implied tags, no
error recovery beyond ignoring closing tags that match nothing.

=============================================================================
SCAN RULES
=============================================================================

- Single left-to-right pass with an explicit open-element stack.
- `<!-- ... -->` comments and other `<!...>` / `<?...>` declarations are skipped.
- `</x>` closes the nearest open `x` and everything above it; unmatched
  closing tags are ignored.
- Void elements and `<x ... />` are attached but never opened.
- `<script>` and `<style>` bodies are skipped without being scanned.
- Text runs are whitespace-collapsed; empty runs are dropped.
"""

import html as html_lib
import re
from dataclasses import dataclass, field
from typing import Literal

NodeKind = Literal["root", "element", "text"]

VOID_ELEMENTS = frozenset({"br", "img", "meta", "link", "input"})
RAW_TEXT_ELEMENTS = frozenset({"script", "style"})

_TAG_NAME = re.compile(r"[A-Za-z][A-Za-z0-9:_-]*")
_ATTRIBUTE = re.compile(
    r"""([^\s"'=<>/]+)"""  # name
    r"""(?:\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'=<>`]+)))?"""  # optional value
)
_RAW_TEXT_END = {
    tag: re.compile(rf"</{tag}\b[^>]*>", re.IGNORECASE) for tag in RAW_TEXT_ELEMENTS
}
_PATH_STEP = re.compile(r"^([A-Za-z][A-Za-z0-9:_-]*)(?:\[(\d+)\])?$")


@dataclass(frozen=True, slots=True)
class MarkupNode:
    """
    A node of the scanned tree.

    Children are filled in while scanning and never touched once `parse`
    has returned.

    Attributes:
        kind: "root", "element" or "text"
        tag: Lower-cased tag name (elements only)
        attrs: Attributes in source order (elements only)
        children: Child nodes in source order
        text: Collapsed text (text nodes only)
    """

    kind: NodeKind
    tag: str = ""
    attrs: dict[str, str] = field(default_factory=dict)
    children: list["MarkupNode"] = field(default_factory=list)
    text: str = ""

    def elements(self) -> list["MarkupNode"]:
        """Direct element children."""
        return [child for child in self.children if child.kind == "element"]


def _collapse(text: str) -> str:
    return " ".join(text.split())


def _append_text(parent: MarkupNode, raw: str) -> None:
    text = _collapse(html_lib.unescape(raw))
    if text:
        parent.children.append(MarkupNode(kind="text", text=text))


def _find_tag_end(source: str, start: int) -> int:
    """Index of the `>` closing the tag opened before `start`, honoring quotes."""
    quote: str | None = None
    for index in range(start, len(source)):
        char = source[index]
        if quote:
            if char == quote:
                quote = None
        elif char in "\"'":
            quote = char
        elif char == ">":
            return index
    return -1


def _parse_attributes(raw: str) -> dict[str, str]:
    attrs: dict[str, str] = {}
    for match in _ATTRIBUTE.finditer(raw):
        name = match.group(1).lower()
        value = next((v for v in match.group(2, 3, 4) if v is not None), "")
        attrs.setdefault(name, html_lib.unescape(value))
    return attrs


def _close(stack: list[MarkupNode], tag: str) -> None:
    # Never pop the root (index 0)
    for depth in range(len(stack) - 1, 0, -1):
        if stack[depth].tag == tag:
            del stack[depth:]
            return


def parse(source: str) -> MarkupNode:
    """
    Scan HTML text into a tree.

    Args:
        source: Raw HTML

    Returns:
        Root node. Never raises on malformed markup.
    """
    root = MarkupNode(kind="root")
    stack: list[MarkupNode] = [root]
    pos = 0
    length = len(source)

    while pos < length:
        lt = source.find("<", pos)
        if lt == -1:
            _append_text(stack[-1], source[pos:])
            break
        if lt > pos:
            _append_text(stack[-1], source[pos:lt])

        if source.startswith("<!--", lt):
            end = source.find("-->", lt + 4)
            pos = length if end == -1 else end + 3
            continue

        gt = _find_tag_end(source, lt + 1)
        if gt == -1:
            # Unterminated tag: the rest is text
            _append_text(stack[-1], source[lt:])
            break

        body = source[lt + 1 : gt]

        if body.startswith(("!", "?")):
            pos = gt + 1
            continue

        if body.startswith("/"):
            pos = gt + 1
            closing = _TAG_NAME.match(body[1:].strip())
            if closing:
                _close(stack, closing.group(0).lower())
            continue

        name = _TAG_NAME.match(body)
        if not name:
            # "a < b" style stray bracket: keep it as text and rescan after it
            _append_text(stack[-1], "<")
            pos = lt + 1
            continue

        pos = gt + 1
        tag = name.group(0).lower()
        rest = body[name.end() :]
        self_closing = rest.rstrip().endswith("/")
        if self_closing:
            rest = rest.rstrip()[:-1]

        element = MarkupNode(kind="element", tag=tag, attrs=_parse_attributes(rest))
        stack[-1].children.append(element)

        if self_closing or tag in VOID_ELEMENTS:
            continue

        if tag in RAW_TEXT_ELEMENTS:
            end = _RAW_TEXT_END[tag].search(source, pos)
            if end is None:
                break
            pos = end.end()
            continue

        stack.append(element)

    return root


def select_by_absolute_path(root: MarkupNode, path: str) -> MarkupNode | None:
    """
    Follow a slash-separated tag path from `root`.

    Each step is `tag` or `tag[N]` (1-based) and picks the Nth direct element
    child with that tag name. No wildcards, no descendant search.

    Args:
        root: Node to start from (usually the parse root)
        path: Path such as "html/body/div[2]/h3"

    Returns:
        The selected node, or None if any step has too few matches or is malformed.
    """
    node = root
    for step in path.strip("/").split("/"):
        if not step:
            continue
        match = _PATH_STEP.match(step.strip())
        if not match:
            return None
        tag = match.group(1).lower()
        position = int(match.group(2) or 1)
        if position < 1:
            return None

        candidates = [child for child in node.elements() if child.tag == tag]
        if len(candidates) < position:
            return None
        node = candidates[position - 1]

    return node


def get_node_text(node: MarkupNode) -> str:
    """Depth-first, space-joined text of every text node under `node`."""
    parts: list[str] = []
    pending = [node]
    while pending:
        current = pending.pop()
        if current.kind == "text":
            parts.append(current.text)
            continue
        # Reverse so the leftmost child is visited first
        pending.extend(reversed(current.children))
    return _collapse(" ".join(parts))
