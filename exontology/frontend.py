"""
tree-sitter-elixir front end.

Parses Elixir source with tree-sitter and converts the concrete syntax tree
into the node model of ``exontology.nodes``, following the quoted form the
Elixir compiler produces:

- ``foo`` is a Variable, ``foo(1)`` and ``foo 1`` are Calls
- ``Foo.Bar`` is an ``__aliases__`` Call, ``:foo`` an Atom
- ``Mod.fun(x)``, ``fun.(x)`` and ``map.key`` are RemoteCalls
- do-blocks become a trailing keyword list (``do:``, ``else:``, ``rescue:``, ...)
- ``x -> body`` clauses become ``->`` Calls with a parameter list

Positions are recorded 1-based under ``line``/``column``; parenthesised
calls also record ``closing`` and do-blocks ``end``. Comments are dropped.
"""

import logging
import os
from pathlib import Path
from typing import Any

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

logger = logging.getLogger(__name__)

TREE_SITTER_ELIXIR_AVAILABLE = False
try:
    from tree_sitter import Language, Parser
    import tree_sitter_elixir

    TREE_SITTER_ELIXIR_AVAILABLE = True
except ImportError:
    pass

LANGUAGE = "elixir"

# 5MB; override with EXONTOLOGY_MAX_FILE_SIZE
DEFAULT_MAX_FILE_SIZE = 5_000_000
MAX_FILE_SIZE = int(os.environ.get("EXONTOLOGY_MAX_FILE_SIZE", DEFAULT_MAX_FILE_SIZE))


class FileTooLargeError(Exception):
    """Raised when a file exceeds MAX_FILE_SIZE."""
    def __init__(self, file_path: Path, size: int, limit: int):
        self.file_path = file_path
        self.size = size
        self.limit = limit
        super().__init__(
            f"File {file_path} is {size:,} bytes, exceeds limit of {limit:,} bytes. "
            f"Set EXONTOLOGY_MAX_FILE_SIZE environment variable to increase limit."
        )


class ParseError(Exception):
    """Raised when tree-sitter parsing fails."""
    def __init__(self, file_path: Any, language: str, error: Exception):
        self.file_path = file_path
        self.language = language
        self.original_error = error
        super().__init__(f"Failed to parse {file_path} as {language}: {error}")


_parser_cache: dict[str, Any] = {}


def get_parser():
    """Get or create the tree-sitter parser for Elixir."""
    if not TREE_SITTER_ELIXIR_AVAILABLE:
        raise ImportError("tree-sitter-elixir not available")
    parser = _parser_cache.get(LANGUAGE)
    if parser is None:
        parser = Parser(Language(tree_sitter_elixir.language()))
        _parser_cache[LANGUAGE] = parser
    return parser


def _safe_parse(parser: Any, source: bytes, file_path: Any) -> Any:
    """Safely parse source code, catching tree-sitter errors."""
    try:
        return parser.parse(source)
    except Exception as e:
        logger.error(f"Tree-sitter parse failed for {file_path} ({LANGUAGE}): {e}")
        raise ParseError(file_path, LANGUAGE, e)


def parse_source(source: str | bytes, file_path: Any = "<string>") -> Any:
    """Parse Elixir source into the node model.

    Args:
        source: Source text or UTF-8 bytes.
        file_path: Name used in log messages and errors.

    Returns:
        The root node: a single expression, or a ``__block__`` Call when the
        source holds zero or several top-level expressions.

    Raises:
        ImportError: If tree-sitter-elixir is not available
        ParseError: If tree-sitter raises while parsing
    """
    source_bytes = source.encode("utf-8") if isinstance(source, str) else source
    tree = _safe_parse(get_parser(), source_bytes, file_path)
    return ElixirTreeConverter(source_bytes, file_path).convert_root(tree.root_node)


def parse_file(path: str | Path) -> Any:
    """Parse an Elixir file into the node model.

    Raises:
        FileTooLargeError: If the file exceeds MAX_FILE_SIZE
        ParseError: If tree-sitter raises while parsing
        OSError: If the file cannot be read
    """
    file_path = Path(path)
    file_size = file_path.stat().st_size
    if file_size > MAX_FILE_SIZE:
        raise FileTooLargeError(file_path, file_size, MAX_FILE_SIZE)
    return parse_source(file_path.read_bytes(), file_path)


# =============================================================================
# Escapes
# =============================================================================

_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "s": " ",
    "e": "\x1b",
    "0": "\0",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "d": "\x7f",
}


def unescape(sequence: str) -> str:
    """Value of one escape sequence such as ``\\n``, ``\\x41`` or ``\\u{1F600}``."""
    body = sequence[1:]
    if body in _ESCAPES:
        return _ESCAPES[body]
    if body[:1] in ("x", "u") and len(body) > 1:
        digits = body[1:].strip("{}")
        return chr(int(digits, 16))
    if body in ("\n", "\r\n"):
        return ""
    return body


def _char_value(text: str) -> int:
    """Code point of a ``?a`` / ``?\\n`` char literal."""
    body = text[1:]
    if body.startswith("\\") and len(body) > 1:
        return ord(unescape(body))
    return ord(body)


def _parse_integer(text: str) -> int:
    digits = text.replace("_", "")
    if digits[:2].lower() in ("0x", "0o", "0b"):
        return int(digits, 0)
    return int(digits, 10)


# =============================================================================
# Converter
# =============================================================================

_SECTION_BLOCKS = {
    "else_block": "else",
    "after_block": "after",
    "rescue_block": "rescue",
    "catch_block": "catch",
}

_DELIMITER_TYPES = frozenset({'"', "'", '"""', "'''", "/", "|", "(", "[", "{", "<"})


class ElixirTreeConverter:
    """Converts a tree-sitter-elixir tree into the node model."""

    def __init__(self, source: bytes, file_path: Any = "<string>"):
        self.source = source
        self.file_path = file_path

    def get_node_text(self, node) -> str:
        return self.source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def _meta(self, node, **extra) -> dict:
        meta = self._position(node)
        meta.update(extra)
        return meta

    def _position(self, node) -> dict:
        return {"line": node.start_point[0] + 1, "column": node.start_point[1] + 1}

    def _items(self, node) -> list:
        """Named children that carry meaning: no comments, no error nodes."""
        items = []
        for child in node.named_children:
            if child.type == "comment" or child.is_missing:
                continue
            if child.type == "ERROR":
                logger.warning(
                    f"Skipping unparseable code in {self.file_path} "
                    f"at line {child.start_point[0] + 1}"
                )
                continue
            items.append(child)
        return items

    def _body(self, nodes: list) -> Any:
        expressions = [self.convert(node) for node in nodes]
        if len(expressions) == 1:
            return expressions[0]
        return Call("__block__", tuple(expressions))

    def convert_root(self, root) -> Any:
        if root.has_error:
            logger.warning(f"Syntax errors in {self.file_path}; erroneous code is skipped")
        return self._body(self._items(root))

    def convert(self, node) -> Any:
        handler = getattr(self, f"_convert_{node.type}", None)
        if handler is not None:
            return handler(node)
        logger.debug(f"Unhandled node type {node.type!r} in {self.file_path}, kept as a generic call")
        return Call(node.type, tuple(self.convert(child) for child in self._items(node)), self._meta(node))

    # -------------------------------------------------------------------------
    # Terminals
    # -------------------------------------------------------------------------

    def _convert_identifier(self, node) -> Any:
        return Variable(self.get_node_text(node), meta=self._meta(node))

    def _convert_operator_identifier(self, node) -> Any:
        return Variable(self.get_node_text(node), meta=self._meta(node))

    def _convert_alias(self, node) -> Any:
        text = "".join(self.get_node_text(node).split())
        return Call("__aliases__", tuple(Atom(part) for part in text.split(".")), self._meta(node))

    def _convert_atom(self, node) -> Any:
        return Atom(self.get_node_text(node)[1:])

    def _convert_boolean(self, node) -> Any:
        return TRUE if self.get_node_text(node) == "true" else FALSE

    def _convert_nil(self, node) -> Any:
        return NIL

    def _convert_integer(self, node) -> Any:
        return Integer(_parse_integer(self.get_node_text(node)))

    def _convert_float(self, node) -> Any:
        return Float(float(self.get_node_text(node).replace("_", "")))

    def _convert_char(self, node) -> Any:
        return Integer(_char_value(self.get_node_text(node)))

    # -------------------------------------------------------------------------
    # Quoted content: strings, charlists, quoted atoms, sigils
    # -------------------------------------------------------------------------

    def _segments(self, node, raw_escapes: bool = False) -> list:
        """("text", raw) / ("escape", value) / ("interpolation", node) segments."""
        segments = []
        for child in node.named_children:
            if child.type == "quoted_content":
                segments.append(("text", self.get_node_text(child)))
            elif child.type == "escape_sequence":
                text = self.get_node_text(child)
                if raw_escapes:
                    segments.append(("text", text))
                else:
                    segments.append(("escape", unescape(text)))
            elif child.type == "interpolation":
                inner = self._items(child)
                segments.append(("interpolation", self._body(inner) if inner else Call("__block__", ())))
        return segments

    def _is_heredoc(self, node) -> bool:
        return any(
            not child.is_named and self.get_node_text(child) in ('"""', "'''")
            for child in node.children
        )

    def _closing_indent(self, node) -> int:
        for child in reversed(node.children):
            if not child.is_named and self.get_node_text(child) in ('"""', "'''"):
                return child.start_point[1]
        return 0

    def _dedent(self, segments: list, indent: int) -> list:
        """Heredoc layout: drop the opening newline and the closing line's indentation."""
        result = []
        at_line_start = True
        first = True
        for kind, value in segments:
            if kind != "text":
                result.append((kind, value))
                at_line_start = False
                first = False
                continue
            if first:
                head, newline, rest = value.partition("\n")
                if newline and not head.strip():
                    value = rest
                first = False
            lines = value.split("\n")
            for i, line in enumerate(lines):
                if i > 0 or at_line_start:
                    stripped = line.lstrip(" \t")
                    line = line[min(indent, len(line) - len(stripped)):]
                lines[i] = line
            at_line_start = value.endswith("\n")
            result.append((kind, "\n".join(lines)))
        return result

    def _parts(self, node, raw_escapes: bool = False) -> list:
        """Merged parts: adjacent text becomes one Str, interpolations are wrapped."""
        segments = self._segments(node, raw_escapes)
        if self._is_heredoc(node):
            segments = self._dedent(segments, self._closing_indent(node))
        parts = []
        buffer = ""
        for kind, value in segments:
            if kind == "interpolation":
                if buffer:
                    parts.append(Str(buffer))
                    buffer = ""
                parts.append(self._interpolation(value))
            else:
                buffer += value
        if buffer:
            parts.append(Str(buffer))
        return parts

    def _interpolation(self, expression: Any) -> Call:
        conversion = RemoteCall(
            Atom("Elixir.Kernel"), "to_string", (expression,), {"from_interpolation": True}
        )
        return Call("::", (conversion, Variable("binary")))

    def _convert_string(self, node) -> Any:
        parts = self._parts(node)
        if all(isinstance(part, Str) for part in parts):
            return Str("".join(part.value for part in parts))
        return Call("<<>>", tuple(parts), self._meta(node))

    def _convert_charlist(self, node) -> Any:
        parts = self._parts(node)
        if all(isinstance(part, Str) for part in parts):
            text = "".join(part.value for part in parts)
            return ListNode(tuple(Integer(ord(char)) for char in text))
        elements = tuple(
            part.args[0].args[0] if isinstance(part, Call) else part for part in parts
        )
        return RemoteCall(
            Call("__aliases__", (Atom("List"),)), "to_charlist", (ListNode(elements),), self._meta(node)
        )

    def _convert_quoted_atom(self, node) -> Any:
        parts = self._parts(node)
        if all(isinstance(part, Str) for part in parts):
            return Atom("".join(part.value for part in parts))
        return RemoteCall(
            Atom("erlang"),
            "binary_to_atom",
            (Call("<<>>", tuple(parts)), Atom("utf8")),
            self._meta(node),
        )

    def _convert_sigil(self, node) -> Any:
        name = ""
        delimiter = None
        modifiers = ""
        for child in node.children:
            if child.type == "sigil_name":
                name = self.get_node_text(child)
            elif child.type == "sigil_modifiers":
                modifiers = self.get_node_text(child)
            elif not child.is_named and delimiter is None and child.type in _DELIMITER_TYPES:
                delimiter = self.get_node_text(child)
        parts = self._parts(node, raw_escapes=True)
        content = Call("<<>>", tuple(parts), self._meta(node))
        modifier_codes = ListNode(tuple(Integer(ord(char)) for char in modifiers))
        return Call(f"sigil_{name}", (content, modifier_codes), self._meta(node, delimiter=delimiter))

    # -------------------------------------------------------------------------
    # Keywords and collections
    # -------------------------------------------------------------------------

    def _keyword_key(self, node) -> Any:
        if node.type == "quoted_keyword":
            parts = self._parts(node)
            if all(isinstance(part, Str) for part in parts):
                return Atom("".join(part.value for part in parts))
            return RemoteCall(
                Atom("erlang"), "binary_to_atom", (Call("<<>>", tuple(parts)), Atom("utf8"))
            )
        return Atom(self.get_node_text(node).strip().rstrip(":"))

    def _pair(self, node) -> TupleNode:
        key = node.child_by_field_name("key")
        value = node.child_by_field_name("value")
        return TupleNode((self._keyword_key(key), self.convert(value)))

    def _keyword_pairs(self, node) -> list:
        return [self._pair(child) for child in self._items(node) if child.type == "pair"]

    def _convert_keywords(self, node) -> Any:
        return ListNode(tuple(self._keyword_pairs(node)))

    def _collection(self, node) -> tuple[list, list]:
        """Items of a list/tuple/arguments node, trailing keywords flattened into pairs."""
        elements = []
        keywords = []
        for child in self._items(node):
            if child.type == "keywords":
                keywords.extend(self._keyword_pairs(child))
            else:
                elements.append(self.convert(child))
        return elements, keywords

    def _convert_list(self, node) -> Any:
        elements, keywords = self._collection(node)
        return ListNode(tuple(elements + keywords))

    def _convert_tuple(self, node) -> Any:
        elements, keywords = self._collection(node)
        if keywords:
            elements.append(ListNode(tuple(keywords)))
        return TupleNode(tuple(elements), self._meta(node))

    def _convert_bitstring(self, node) -> Any:
        elements, keywords = self._collection(node)
        if keywords:
            elements.append(ListNode(tuple(keywords)))
        return Call("<<>>", tuple(elements), self._meta(node))

    def _map_items(self, node) -> list:
        items = []
        for child in self._items(node):
            if child.type == "map_content":
                items.extend(self._items(child))
            elif child.type != "struct":
                items.append(child)
        return items

    def _map_entry(self, node) -> list:
        if node.type == "keywords":
            return [tuple(pair.elements) for pair in self._keyword_pairs(node)]
        converted = self.convert(node)
        if isinstance(converted, Call) and converted.tag == "=>" and len(converted.args) == 2:
            return [converted.args]
        if isinstance(converted, ListNode):
            return [tuple(element.elements) for element in converted.elements]
        return [(converted, NIL)]

    def _convert_map(self, node) -> Any:
        items = self._map_items(node)
        update = None
        pairs = []
        if items and items[0].type == "binary_operator" and self._operator(items[0]) == "|":
            update = self.convert(items[0].child_by_field_name("left"))
            pairs.extend(self._map_entry(items[0].child_by_field_name("right")))
            items = items[1:]
        for item in items:
            pairs.extend(self._map_entry(item))
        map_node = MapNode(tuple(pairs), update, self._meta(node))

        struct = next((child for child in node.named_children if child.type == "struct"), None)
        if struct is None:
            return map_node
        name_nodes = self._items(struct)
        name = self.convert(name_nodes[0]) if name_nodes else NIL
        return Call("%", (name, map_node), self._meta(node))

    # -------------------------------------------------------------------------
    # Operators
    # -------------------------------------------------------------------------

    def _operator(self, node) -> str:
        operator = node.child_by_field_name("operator")
        return " ".join(self.get_node_text(operator).split()) if operator is not None else ""

    def _convert_unary_operator(self, node) -> Any:
        operator = self._operator(node)
        operand = self.convert(node.child_by_field_name("operand"))
        if operator == "-" and isinstance(operand, (Integer, Float)):
            return type(operand)(-operand.value)
        if operator == "+" and isinstance(operand, (Integer, Float)):
            return operand
        return Call(operator, (operand,), self._meta(node))

    def _convert_binary_operator(self, node) -> Any:
        operator = self._operator(node)
        left_node = node.child_by_field_name("left")
        left = self.convert(left_node)
        right = self.convert(node.child_by_field_name("right"))
        meta = self._meta(node)
        if operator == "not in":
            return Call("not", (Call("in", (left, right), meta),), meta)
        if operator == "//" and isinstance(left, Call) and left.tag == ".." and len(left.args) == 2:
            return Call("..//", (left.args[0], left.args[1], right), meta)
        if operator == "when" and left_node.type == "arguments":
            # guard on a multi-parameter clause head
            params = [self.convert(child) for child in self._items(left_node)]
            return Call("when", tuple(params) + (right,), meta)
        return Call(operator, (left, right), meta)

    # -------------------------------------------------------------------------
    # Calls
    # -------------------------------------------------------------------------

    def _arguments(self, node) -> tuple[list, dict]:
        """Converted call arguments and position extras (closing paren, no_parens)."""
        arguments = node.child_by_field_name("arguments")
        if arguments is None:
            arguments = next((c for c in node.named_children if c.type == "arguments"), None)
        extra = {}
        if arguments is None:
            extra["no_parens"] = True
            args = []
        else:
            elements, keywords = self._collection(arguments)
            args = elements + ([ListNode(tuple(keywords))] if keywords else [])
            closing = next((c for c in reversed(arguments.children) if c.type == ")"), None)
            if closing is not None:
                extra["closing"] = self._position(closing)
            else:
                extra["no_parens"] = True
        do_block = next((c for c in node.named_children if c.type == "do_block"), None)
        if do_block is not None:
            args.append(self._convert_do_block(do_block))
            end = next((c for c in reversed(do_block.children) if c.type == "end"), None)
            if end is not None:
                extra["end"] = self._position(end)
            extra.pop("no_parens", None)
        return args, extra

    def _convert_call(self, node) -> Any:
        target = node.child_by_field_name("target")
        args, extra = self._arguments(node)
        meta = self._meta(node, **extra)
        if target.type == "dot":
            receiver, function = self._dot_parts(target)
            return RemoteCall(receiver, function, tuple(args), meta)
        return Call(self.get_node_text(target), tuple(args), meta)

    def _dot_parts(self, node) -> tuple[Any, str | None]:
        receiver = self.convert(node.child_by_field_name("left"))
        right = node.child_by_field_name("right")
        if right is None:
            return receiver, None
        if right.type in ("string", "charlist"):
            parts = self._parts(right)
            return receiver, "".join(part.value for part in parts if isinstance(part, Str))
        return receiver, self.get_node_text(right)

    def _convert_dot(self, node) -> Any:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        receiver = self.convert(left)
        if right is not None and right.type == "alias":
            parts = self.get_node_text(right).split(".")
            base = receiver.args if isinstance(receiver, Call) and receiver.tag == "__aliases__" else (receiver,)
            return Call("__aliases__", tuple(base) + tuple(Atom(part) for part in parts), self._meta(node))
        if right is not None and right.type == "tuple":
            elements, _ = self._collection(right)
            return RemoteCall(receiver, "{}", tuple(elements), self._meta(node))
        function = self.get_node_text(right) if right is not None else None
        return RemoteCall(receiver, function, (), self._meta(node, no_parens=True))

    def _convert_access_call(self, node) -> Any:
        target = self.convert(node.child_by_field_name("target"))
        key = self.convert(node.child_by_field_name("key"))
        return RemoteCall(Atom("Elixir.Access"), "get", (target, key), self._meta(node))

    # -------------------------------------------------------------------------
    # Blocks and clauses
    # -------------------------------------------------------------------------

    def _section(self, node) -> Any:
        """Content of a do/else/... section: a stab clause list or a body."""
        items = []
        for child in self._items(node):
            if child.type in _SECTION_BLOCKS:
                continue
            if child.type == "body":
                items.extend(self._items(child))
            else:
                items.append(child)
        if any(child.type == "stab_clause" for child in items):
            return ListNode(tuple(self.convert(child) for child in items if child.type == "stab_clause"))
        if not items:
            return Call("__block__", ())
        return self._body(items)

    def _convert_do_block(self, node) -> ListNode:
        sections = [TupleNode((Atom("do"), self._section(node)))]
        for child in self._items(node):
            key = _SECTION_BLOCKS.get(child.type)
            if key is not None:
                sections.append(TupleNode((Atom(key), self._section(child))))
        return ListNode(tuple(sections))

    def _convert_anonymous_function(self, node) -> Any:
        clauses = [self.convert(child) for child in self._items(node) if child.type == "stab_clause"]
        end = next((c for c in reversed(node.children) if c.type == "end"), None)
        extra = {"end": self._position(end)} if end is not None else {}
        return Call("fn", tuple(clauses), self._meta(node, **extra))

    def _convert_stab_clause(self, node) -> Any:
        left = node.child_by_field_name("left")
        right = node.child_by_field_name("right")
        if left is None:
            params = []
        elif left.type == "arguments":
            elements, keywords = self._collection(left)
            params = elements + ([ListNode(tuple(keywords))] if keywords else [])
        else:
            params = [self.convert(left)]
        body = self._body(self._items(right)) if right is not None and self._items(right) else Call("__block__", ())
        return Call("->", (ListNode(tuple(params)), body), self._meta(node))

    def _convert_body(self, node) -> Any:
        items = self._items(node)
        return self._body(items) if items else Call("__block__", ())

    def _convert_block(self, node) -> Any:
        items = self._items(node)
        if any(child.type == "stab_clause" for child in items):
            return ListNode(tuple(self.convert(child) for child in items))
        return self._body(items) if items else Call("__block__", ())

    def _convert_arguments(self, node) -> Any:
        elements, keywords = self._collection(node)
        return ListNode(tuple(elements + keywords))
