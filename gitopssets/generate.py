"""Library for generating the elements of a GitOpsSet.

Each top level generator of a GitOpsSet produces its own list of elements,
which is used to render the GitOpsSet templates. The elements of different
top level generators are never combined, use a Matrix generator for that.
"""

from collections.abc import Mapping
import datetime
import logging

from .context import trace_context
from .exceptions import GitOpsSetGenerationError, GitOpsSetsException
from .generators import Element, Generator, NO_REQUEUE_INTERVAL
from .generators.relevant import find_relevant_generators
from .manifest import GitOpsSet

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "generate_elements",
    "calculate_interval",
]


async def generate_elements(
    gitopsset: GitOpsSet, generators: Mapping[str, Generator]
) -> list[list[Element]]:
    """Return the elements generated by each generator of the GitOpsSet."""
    results: list[list[Element]] = []
    with trace_context(f"GitOpsSet {gitopsset.namespaced_name}"):
        for declaration in gitopsset.generators:
            try:
                for generator in find_relevant_generators(declaration, generators):
                    results.append(
                        await generator.generate(declaration, gitopsset) or []
                    )
            except GitOpsSetsException as err:
                raise GitOpsSetGenerationError(gitopsset.name, str(err)) from err
    _LOGGER.info(
        "Generated %d element lists for %s", len(results), gitopsset.namespaced_name
    )
    return results


def calculate_interval(
    gitopsset: GitOpsSet, generators: Mapping[str, Generator]
) -> datetime.timedelta:
    """Return the lowest requeue interval of the generators of the GitOpsSet."""
    intervals: list[datetime.timedelta] = []
    for declaration in gitopsset.generators:
        for generator in find_relevant_generators(declaration, generators):
            if (d := generator.interval(declaration)) > NO_REQUEUE_INTERVAL:
                intervals.append(d)
    return min(intervals, default=NO_REQUEUE_INTERVAL)
