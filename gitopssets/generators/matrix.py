"""Generator that combines the elements of multiple generators.

The Matrix generator runs each of its nested generators in order and combines
the generated elements either as a cartesian product or, when
`singleElement` is set, as a single element holding every generated element.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
import datetime
import logging

from gitopssets.context import current_steps, trace_context
from gitopssets.exceptions import (
    EmptyGitOpsSetError,
    GitOpsSetsException,
    InsufficientGeneratorsError,
    MergeError,
)
from gitopssets.manifest import (
    GitOpsSet,
    GitOpsSetGenerator,
    MatrixGenerator as MatrixSpec,
)
from gitopssets.values import contains_element, deep_merge

from . import Element, Generator, NO_REQUEUE_INTERVAL
from .relevant import find_relevant_generators

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "MatrixGenerator",
    "GeneratedElements",
    "cartesian",
    "single_element",
]

MIN_GENERATORS = 2

UNNAMED_ELEMENTS_KEY = "Matrix"
"""Key holding the elements of unnamed generators in single element mode."""


@dataclass
class GeneratedElements:
    """The elements generated by one nested generator."""

    elements: list[Element] = field(default_factory=list)
    name: str | None = None


class MatrixGenerator(Generator):
    """Combines the elements of the nested generators of a Matrix declaration."""

    def __init__(self, generators: Mapping[str, Generator]) -> None:
        """Initialize MatrixGenerator with the generators it may nest."""
        self._generators = generators

    async def generate(
        self,
        generator: GitOpsSetGenerator | None,
        gitopsset: GitOpsSet | None,
    ) -> list[Element] | None:
        """Generate the combined elements of the nested generators."""
        if generator is None:
            raise EmptyGitOpsSetError()
        if not isinstance(spec := generator.spec, MatrixSpec):
            return None

        _LOGGER.info("generating params from Matrix generator")
        with trace_context("Matrix"):
            generated = await self._generate(spec, gitopsset)
            if spec.single_element:
                return single_element(generated)
            try:
                return cartesian(generated)
            except MergeError as err:
                raise MergeError(
                    f"failed to create cartesian product of generators: {err}"
                ) from err

    async def _generate(
        self, spec: MatrixSpec, gitopsset: GitOpsSet | None
    ) -> list[GeneratedElements]:
        """Generate the elements of each nested generator in order."""
        if len(spec.generators) < MIN_GENERATORS:
            raise InsufficientGeneratorsError(len(spec.generators))

        generated: list[GeneratedElements] = []
        for nested in spec.generators:
            for relevant in find_relevant_generators(nested, self._generators):
                with trace_context(nested.name or str(nested.kind)):
                    result = await relevant.generate(nested.to_generator(), gitopsset)
                if result:
                    generated.append(
                        GeneratedElements(elements=result, name=nested.name)
                    )
                else:
                    _LOGGER.debug(
                        "Generator %s produced no elements (%s)",
                        nested.kind,
                        " > ".join(current_steps()),
                    )
        return generated

    def interval(self, generator: GitOpsSetGenerator) -> datetime.timedelta:
        """Return the lowest interval of the nested generators."""
        if not isinstance(spec := generator.spec, MatrixSpec):
            return NO_REQUEUE_INTERVAL

        intervals: list[datetime.timedelta] = []
        for nested in spec.generators:
            try:
                relevant = find_relevant_generators(nested, self._generators)
            except GitOpsSetsException as err:
                _LOGGER.error(
                    "Failed to find relevant generators, defaulting to no requeue: %s",
                    err,
                )
                return NO_REQUEUE_INTERVAL
            for g in relevant:
                if (d := g.interval(nested.to_generator())) > NO_REQUEUE_INTERVAL:
                    intervals.append(d)

        return min(intervals, default=NO_REQUEUE_INTERVAL)


def _prefixed(generated: GeneratedElements) -> list[Element]:
    if not generated.name:
        return generated.elements
    return [{generated.name: element} for element in generated.elements]


def _next_index(indexes: list[int], slices: list[list[Element]]) -> None:
    """Advance indexes to the next combination, rightmost position first.

    The leftmost position is left overflowed once every combination has been
    visited, which ends the iteration.
    """
    for j in range(len(indexes) - 1, -1, -1):
        indexes[j] += 1
        if j == 0 or indexes[j] < len(slices[j]):
            return
        indexes[j] = 0


def cartesian(generated: list[GeneratedElements]) -> list[Element]:
    """Return the cartesian product of the generated elements without duplicates.

    Each combination is merged left to right, so values from later generators
    override the values of earlier generators.
    """
    if not generated:
        return []

    slices = [_prefixed(g) for g in generated]
    if any(not s for s in slices):
        return []

    results: list[Element] = []
    indexes = [0] * len(slices)
    while indexes[0] < len(slices[0]):
        merged: Element = {}
        for j, k in enumerate(indexes):
            merged = deep_merge(merged, slices[j][k])
        if not contains_element(merged, results):
            results.append(merged)
        _next_index(indexes, slices)

    return results


def single_element(generated: list[GeneratedElements]) -> list[Element]:
    """Flatten the generated elements into a single element.

    Named generators are keyed by name, the elements of all unnamed
    generators are collected under `UNNAMED_ELEMENTS_KEY`.
    """
    if not generated:
        return []

    result: Element = {}
    unnamed: list[Element] = []
    for g in generated:
        if not g.name:
            unnamed.extend(g.elements)
            continue
        result.setdefault(g.name, []).extend(g.elements)

    if unnamed:
        result[UNNAMED_ELEMENTS_KEY] = unnamed

    return [result]
