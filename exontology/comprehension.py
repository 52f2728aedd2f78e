"""
``for`` comprehension extraction.

Arguments of ``for`` are split into generators, bitstring generators,
filters and trailing option keyword lists. Generators and filters keep
their relative source order in ``metadata["qualifiers"]``: generators on
the left are outer loops, and a filter applies at its position.
"""

from dataclasses import dataclass, field
from typing import Any

from . import walker
from .errors import Result, failure, success
from .helpers import extract_location_if, format_error
from .location import SourceLocation
from .nodes import TRUE, Call, is_call, is_keyword_list, keyword_items


@dataclass(frozen=True)
class Generator:
    type: str  # "generator" or "bitstring_generator"
    pattern: Any
    enumerable: Any
    location: SourceLocation | None = None


@dataclass(frozen=True)
class ComprehensionOptions:
    into: Any = None
    reduce: Any = None
    uniq: bool = False


@dataclass(frozen=True)
class Comprehension:
    generators: list[Generator] = field(default_factory=list)
    filters: list = field(default_factory=list)
    body: Any = None
    options: ComprehensionOptions = field(default_factory=ComprehensionOptions)
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


def is_comprehension(node: Any) -> bool:
    return isinstance(node, Call) and node.tag == "for"


def is_generator(node: Any) -> bool:
    return is_call(node, "<-", 2)


def is_bitstring_generator(node: Any) -> bool:
    return is_call(node, "<<>>", 1) and is_generator(node.args[0])


def _generator(node: Any, include_location: bool) -> Generator:
    if is_bitstring_generator(node):
        pattern, enumerable = node.args[0].args
        return Generator("bitstring_generator", pattern, enumerable,
                         extract_location_if(node, include_location))
    pattern, enumerable = node.args
    return Generator("generator", pattern, enumerable, extract_location_if(node, include_location))


def _options(items: list[tuple[str, Any]]) -> ComprehensionOptions:
    values = {}
    for key, value in items:
        values.setdefault(key, value)
    return ComprehensionOptions(
        into=values.get("into"),
        reduce=values.get("reduce"),
        uniq=values.get("uniq") == TRUE,
    )


def extract(node: Any, include_location: bool = True) -> Result:
    if not is_comprehension(node):
        return failure("not_a_comprehension", format_error("Not a for comprehension", node))

    generators = []
    filters = []
    qualifiers = []
    option_items = []
    for arg in node.args:
        if is_keyword_list(arg):
            option_items.extend(keyword_items(arg))
        elif is_generator(arg) or is_bitstring_generator(arg):
            generator = _generator(arg, include_location)
            generators.append(generator)
            qualifiers.append(("generator", generator))
        else:
            filters.append(arg)
            qualifiers.append(("filter", arg))

    options = _options(option_items)
    body = next((value for key, value in option_items if key == "do"), None)
    return success(
        Comprehension(
            generators=generators,
            filters=filters,
            body=body,
            options=options,
            location=extract_location_if(node, include_location),
            metadata={
                "generator_count": len(generators),
                "filter_count": len(filters),
                "has_into": options.into is not None,
                "has_reduce": options.reduce is not None,
                "has_uniq": options.uniq,
                "qualifiers": qualifiers,
            },
        )
    )


def extract_or_raise(node: Any, include_location: bool = True) -> Comprehension:
    return extract(node, include_location).unwrap()


def generator_patterns(comprehension: Comprehension) -> list:
    return [generator.pattern for generator in comprehension.generators]


def has_into(comprehension: Comprehension) -> bool:
    return comprehension.options.into is not None


def has_reduce(comprehension: Comprehension) -> bool:
    return comprehension.options.reduce is not None


def has_uniq(comprehension: Comprehension) -> bool:
    return comprehension.options.uniq


def nested_nodes(record: Comprehension) -> list:
    nested = [generator.enumerable for generator in record.generators]
    nested.extend(record.filters)
    nested.extend(value for value in (record.options.into, record.options.reduce) if value is not None)
    nested.append(record.body)
    return nested


def _visit(node: Any, depth: int):
    if not is_comprehension(node):
        return None
    record = extract(node).value
    return [record], nested_nodes(record)


def extract_comprehensions(ast: Any, max_depth: int | None = None) -> list[Comprehension]:
    """All comprehensions in the tree, outer before inner."""
    return walker.collect(ast, _visit, max_depth)
