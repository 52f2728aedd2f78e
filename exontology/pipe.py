"""
Pipe chain extraction (``|>``).

``a |> b() |> c()`` parses left-nested as ``(a |> b()) |> c()``. The chain
is flattened into its start value and ordered steps; each step records the
call it makes and only its explicit arguments, never the piped value.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from . import call as call_extractor
from . import walker
from .errors import Result, failure, success
from .helpers import extract_location_if, format_error
from .location import SourceLocation
from .nodes import Call, RemoteCall, Variable, is_call, render

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipeStep:
    index: int
    call: call_extractor.FunctionCall
    explicit_args: list = field(default_factory=list)
    location: SourceLocation | None = None


@dataclass(frozen=True)
class PipeChain:
    start_value: Any
    steps: list[PipeStep] = field(default_factory=list)
    length: int = 0
    location: SourceLocation | None = None
    metadata: dict = field(default_factory=dict)


def is_pipe_chain(node: Any) -> bool:
    return is_call(node, "|>", 2)


def flatten(node: Call) -> tuple[Any, list]:
    """(start value, step nodes) of a pipe chain."""
    steps = []
    while is_pipe_chain(node):
        left, right = node.args
        steps.append(right)
        node = left
    steps.reverse()
    return node, steps


def _fallback_call(step: Any, args: list, include_location: bool) -> call_extractor.FunctionCall:
    logger.debug(f"Pipe step is not a plain call, recording it as dynamic: {render(step)}")
    return call_extractor.FunctionCall(
        type="dynamic",
        name="pipe_step",
        arity=len(args),
        arguments=args,
        location=extract_location_if(step, include_location),
        metadata={"raw_ast": step},
    )


def _step_call(step: Any, include_location: bool) -> tuple[call_extractor.FunctionCall, list]:
    if isinstance(step, RemoteCall) and step.function is not None:
        result = call_extractor.extract_remote(step, include_location)
        args = list(step.args)
    elif isinstance(step, Call):
        result = call_extractor.extract_local(step, include_location)
        args = list(step.args)
    elif isinstance(step, Variable):
        return (
            call_extractor.FunctionCall(
                type="local",
                name=step.name,
                arity=0,
                location=extract_location_if(step, include_location),
                metadata={"no_parens": True},
            ),
            [],
        )
    else:
        return _fallback_call(step, [], include_location), []
    if result.ok:
        return result.value, args
    return _fallback_call(step, args, include_location), args


def extract_pipe_chain(node: Any, include_location: bool = True) -> Result:
    if not is_pipe_chain(node):
        return failure("not_a_pipe_chain", format_error("Not a pipe chain", node))
    start_value, step_nodes = flatten(node)
    steps = []
    for index, step in enumerate(step_nodes):
        function_call, explicit_args = _step_call(step, include_location)
        steps.append(
            PipeStep(index, function_call, explicit_args, extract_location_if(step, include_location))
        )
    return success(
        PipeChain(
            start_value=start_value,
            steps=steps,
            length=len(steps),
            location=extract_location_if(node, include_location),
        )
    )


def extract_pipe_chain_or_raise(node: Any, include_location: bool = True) -> PipeChain:
    return extract_pipe_chain(node, include_location).unwrap()


def nested_nodes(chain: PipeChain) -> list:
    """Start value and step arguments; a step kept as dynamic is rescanned whole."""
    nested = [chain.start_value]
    for step in chain.steps:
        raw = step.call.metadata.get("raw_ast")
        if raw is not None:
            nested.append(raw)
        else:
            nested.extend(step.explicit_args)
    return nested


def _visit(node: Any, depth: int):
    if not is_pipe_chain(node):
        return None
    chain = extract_pipe_chain(node).value
    return [chain], nested_nodes(chain)


def extract_pipe_chains(ast: Any, max_depth: int | None = None) -> list[PipeChain]:
    """Outermost pipe chains, plus chains nested in their start value or step arguments."""
    return walker.collect(ast, _visit, max_depth)
