"""Generator for a hard-coded list of elements."""

import copy
import datetime
import logging

from gitopssets.exceptions import EmptyGitOpsSetError, InputException
from gitopssets.manifest import (
    GitOpsSet,
    GitOpsSetGenerator,
    ListGenerator as ListSpec,
)

from . import Element, Generator, NO_REQUEUE_INTERVAL

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "ListGenerator",
]


class ListGenerator(Generator):
    """Generates the elements of a List declaration verbatim."""

    async def generate(
        self,
        generator: GitOpsSetGenerator | None,
        gitopsset: GitOpsSet | None,
    ) -> list[Element] | None:
        """Generate a copy of each element in the list."""
        if generator is None:
            raise EmptyGitOpsSetError()
        if not isinstance(spec := generator.spec, ListSpec):
            return None

        _LOGGER.info("generating params from List generator")
        results: list[Element] = []
        for element in spec.elements:
            if not isinstance(element, dict):
                raise InputException(f"List element is not an object: {element!r}")
            results.append(copy.deepcopy(element))
        return results

    def interval(self, generator: GitOpsSetGenerator) -> datetime.timedelta:
        return NO_REQUEUE_INTERVAL
