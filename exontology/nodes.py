"""
Node model for Elixir syntax trees.

The shapes mirror the quoted form produced by the Elixir compiler front end,
made explicit as a closed set of value types:

- Atom / Integer / Float / Str: scalar literals
- Call: the generic tagged node (operators, definitions, control flow, calls)
- RemoteCall: qualified call ``Receiver.function(args)`` (function is None for ``f.(x)``)
- Variable: bare identifier with an optional lexical context
- ListNode / TupleNode / MapNode: compound literals

Positional metadata lives in ``meta`` dicts that never take part in equality
or hashing, so two trees parsed from differently formatted sources compare
equal when their structure is the same.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Union


def _meta_field():
    return field(default_factory=dict, compare=False, hash=False, repr=False)


@dataclass(frozen=True)
class Atom:
    """Atom literal. Booleans and nil are the atoms ``true``, ``false`` and ``nil``."""

    name: str


@dataclass(frozen=True)
class Integer:
    value: int


@dataclass(frozen=True)
class Float:
    value: float


@dataclass(frozen=True)
class Str:
    value: str


@dataclass(frozen=True)
class Call:
    """Generic tagged node: ``{tag, meta, args}`` in quoted form."""

    tag: str
    args: tuple = ()
    meta: dict = _meta_field()

    def __post_init__(self):
        if not isinstance(self.args, tuple):
            object.__setattr__(self, "args", tuple(self.args))


@dataclass(frozen=True)
class RemoteCall:
    """Qualified call ``receiver.function(args)``.

    ``function`` is None for anonymous function invocation ``fun.(args)``.
    """

    receiver: "AstNode"
    function: str | None
    args: tuple = ()
    meta: dict = _meta_field()

    def __post_init__(self):
        if not isinstance(self.args, tuple):
            object.__setattr__(self, "args", tuple(self.args))


@dataclass(frozen=True)
class Variable:
    name: str
    context: str | None = None
    meta: dict = _meta_field()


@dataclass(frozen=True)
class ListNode:
    elements: tuple = ()

    def __post_init__(self):
        if not isinstance(self.elements, tuple):
            object.__setattr__(self, "elements", tuple(self.elements))

    def __len__(self) -> int:
        return len(self.elements)

    def __iter__(self):
        return iter(self.elements)


@dataclass(frozen=True)
class TupleNode:
    elements: tuple = ()
    meta: dict = _meta_field()

    def __post_init__(self):
        if not isinstance(self.elements, tuple):
            object.__setattr__(self, "elements", tuple(self.elements))

    def __len__(self) -> int:
        return len(self.elements)


@dataclass(frozen=True)
class MapNode:
    """Map literal ``%{k => v}``; ``update`` holds the base of ``%{base | k: v}``."""

    pairs: tuple = ()
    update: "AstNode | None" = None
    meta: dict = _meta_field()

    def __post_init__(self):
        pairs = tuple(tuple(p) for p in self.pairs)
        object.__setattr__(self, "pairs", pairs)


AstNode = Union[Atom, Integer, Float, Str, Call, RemoteCall, Variable, ListNode, TupleNode, MapNode]

SCALAR_TYPES = (Atom, Integer, Float, Str)

TRUE = Atom("true")
FALSE = Atom("false")
NIL = Atom("nil")


# =============================================================================
# Shape predicates and accessors
# =============================================================================


def is_atom(node: Any, name: str | None = None) -> bool:
    if not isinstance(node, Atom):
        return False
    return name is None or node.name == name


def is_boolean(node: Any) -> bool:
    return isinstance(node, Atom) and node.name in ("true", "false")


def is_nil(node: Any) -> bool:
    return isinstance(node, Atom) and node.name == "nil"


def atom_value(node: Atom) -> Any:
    """Python value for an atom: booleans and nil map to True/False/None."""
    if node.name == "true":
        return True
    if node.name == "false":
        return False
    if node.name == "nil":
        return None
    return node.name


def is_call(node: Any, tag: str | None = None, arity: int | None = None) -> bool:
    if not isinstance(node, Call):
        return False
    if tag is not None and node.tag != tag:
        return False
    return arity is None or len(node.args) == arity


def call_tag(node: Any) -> str | None:
    return node.tag if isinstance(node, Call) else None


def meta_of(node: Any) -> dict:
    return getattr(node, "meta", None) or {}


def is_alias(node: Any) -> bool:
    return isinstance(node, Call) and node.tag == "__aliases__"


def is_pair(node: Any) -> bool:
    return isinstance(node, TupleNode) and len(node.elements) == 2


def is_keyword_list(node: Any) -> bool:
    """True when every element is a 2-tuple whose first element is an atom."""
    if not isinstance(node, ListNode):
        return False
    return all(
        is_pair(element) and isinstance(element.elements[0], Atom)
        for element in node.elements
    )


def keyword_items(node: Any) -> list[tuple[str, Any]]:
    """(key, value) pairs of a keyword list, skipping entries of any other shape."""
    if not isinstance(node, ListNode):
        return []
    items = []
    for element in node.elements:
        if is_pair(element) and isinstance(element.elements[0], Atom):
            items.append((element.elements[0].name, element.elements[1]))
    return items


def keyword_get(node: Any, key: str, default: Any = None) -> Any:
    for item_key, value in keyword_items(node):
        if item_key == key:
            return value
    return default


def keyword_has(node: Any, key: str) -> bool:
    return any(item_key == key for item_key, _ in keyword_items(node))


def keyword_keys(node: Any) -> list[str]:
    return [key for key, _ in keyword_items(node)]


def keyword(**items) -> ListNode:
    """Build a keyword list; values are node values."""
    return ListNode(tuple(TupleNode((Atom(k), v)) for k, v in items.items()))


def children(node: Any) -> tuple:
    """Direct sub-nodes in source order."""
    if isinstance(node, Call):
        return node.args
    if isinstance(node, RemoteCall):
        return (node.receiver,) + node.args
    if isinstance(node, (ListNode, TupleNode)):
        return node.elements
    if isinstance(node, MapNode):
        flat = [] if node.update is None else [node.update]
        for key, value in node.pairs:
            flat.append(key)
            flat.append(value)
        return tuple(flat)
    return ()


def prewalk(node: Any, descend: Callable[[Any], bool] | None = None) -> Iterator[Any]:
    """Pre-order traversal.

    Args:
        node: Root node.
        descend: Optional predicate; children of a node are skipped when it
            returns False for that node (the node itself is still yielded).
    """
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        if descend is not None and not descend(current):
            continue
        stack.extend(reversed(children(current)))


# =============================================================================
# Bounded rendering (used in error messages)
# =============================================================================

_PLAIN_ATOM = re.compile(r"^[a-z_][a-zA-Z0-9_@]*[?!]?$|^[A-Z][a-zA-Z0-9_.]*$")
_OPERATOR_ATOMS = {
    "+", "-", "*", "/", "==", "!=", "===", "!==", "<", ">", "<=", ">=", "&&", "||",
    "!", "<>", "++", "--", "|>", "=", "&", "^", "@", "|", "::", "<-", "->", "\\\\",
    "..", "..//", ".", "%", "%{}", "{}", "<<>>", "=~", "**", "<<<", ">>>",
}


def _render_atom(name: str) -> str:
    if name in ("true", "false", "nil"):
        return name
    if name.startswith("Elixir."):
        return name[len("Elixir."):]
    if _PLAIN_ATOM.match(name) or name in _OPERATOR_ATOMS:
        return f":{name}"
    return ':"' + name.replace('"', '\\"') + '"'


def _render_string(value: str, printable_limit: int) -> str:
    if len(value) > printable_limit:
        value = value[:printable_limit] + "..."
    escaped = value.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
    return f'"{escaped}"'


def _render_meta(node: Any) -> str:
    line = meta_of(node).get("line")
    return f"[line: {line}]" if line is not None else "[]"


def render(node: Any, limit: int = 20, printable_limit: int = 100, max_depth: int = 8) -> str:
    """Render a node in quoted-form notation with bounded output.

    ``limit`` is one element budget shared by every collection in the tree,
    like the ``:limit`` option of ``inspect``; once it is spent the remaining
    elements are elided with ``...``. Strings show at most ``printable_limit``
    characters and anything nested deeper than ``max_depth`` renders as
    ``...``.
    """
    remaining = [limit]

    def seq(items, depth: int) -> str:
        shown = []
        for item in items:
            if remaining[0] <= 0:
                shown.append("...")
                break
            remaining[0] -= 1
            shown.append(walk(item, depth + 1))
        return ", ".join(shown)

    def keywords(items, depth: int) -> str:
        shown = []
        for key, value in items:
            if remaining[0] <= 0:
                shown.append("...")
                break
            remaining[0] -= 1
            shown.append(f"{key}: {walk(value, depth + 1)}")
        return "[" + ", ".join(shown) + "]"

    def walk(node: Any, depth: int) -> str:
        if isinstance(node, Atom):
            return _render_atom(node.name)
        if isinstance(node, (Integer, Float)):
            return repr(node.value)
        if isinstance(node, Str):
            return _render_string(node.value, printable_limit)
        if isinstance(node, Variable):
            context = node.context if node.context is not None else "nil"
            return f"{{:{node.name}, {_render_meta(node)}, {context}}}"
        if node is None:
            return "nil"
        if depth > max_depth:
            return "..."
        if isinstance(node, Call):
            return f"{{{_render_atom(node.tag)}, {_render_meta(node)}, [{seq(node.args, depth)}]}}"
        if isinstance(node, RemoteCall):
            receiver = walk(node.receiver, depth + 1)
            if node.function is None:
                dot = f"{{:., [], [{receiver}]}}"
            else:
                dot = f"{{:., [], [{receiver}, {_render_atom(node.function)}]}}"
            return f"{{{dot}, {_render_meta(node)}, [{seq(node.args, depth)}]}}"
        if isinstance(node, ListNode):
            if node.elements and is_keyword_list(node):
                return keywords(keyword_items(node), depth)
            return f"[{seq(node.elements, depth)}]"
        if isinstance(node, TupleNode):
            return f"{{{seq(node.elements, depth)}}}"
        if isinstance(node, MapNode):
            pairs = [TupleNode(pair) for pair in node.pairs]
            if node.update is not None:
                inner = f"{{:|, [], [{walk(node.update, depth + 1)}, [{seq(pairs, depth + 1)}]]}}"
                return f"{{:%{{}}, {_render_meta(node)}, [{inner}]}}"
            return f"{{:%{{}}, {_render_meta(node)}, [{seq(pairs, depth)}]}}"
        if isinstance(node, (list, tuple)):
            return f"[{seq(node, depth)}]"
        text = repr(node)
        return text if len(text) <= printable_limit else text[:printable_limit] + "..."

    return walk(node, 0)
