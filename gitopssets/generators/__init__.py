"""Generators produce the elements used to render GitOpsSet templates.

Every generator implements the `Generator` interface. A generator is asked to
generate elements for a single generator declaration, and returns None when
the declaration is for a different kind of generator.
"""

from abc import ABC, abstractmethod
import datetime
from typing import Any

from gitopssets.manifest import GitOpsSet, GitOpsSetGenerator

__all__ = [
    "Element",
    "Generator",
    "NO_REQUEUE_INTERVAL",
]


Element = dict[str, Any]
"""A single set of parameters generated for the templates."""

NO_REQUEUE_INTERVAL = datetime.timedelta(0)
"""Interval returned by generators that don't need to be polled."""


class Generator(ABC):
    """Interface implemented by all GitOpsSet generators."""

    @abstractmethod
    async def generate(
        self,
        generator: GitOpsSetGenerator | None,
        gitopsset: GitOpsSet | None,
    ) -> list[Element] | None:
        """Generate the elements for the generator declaration.

        Args:
            generator: The declaration to generate elements from.
            gitopsset: The GitOpsSet that owns the declaration.

        Returns:
            The generated elements, or None when the declaration is not
            for this kind of generator.

        Raises:
            EmptyGitOpsSetError: When the declaration is None.
        """

    @abstractmethod
    def interval(self, generator: GitOpsSetGenerator) -> datetime.timedelta:
        """Return how soon the GitOpsSet should be generated again.

        `NO_REQUEUE_INTERVAL` means the generator doesn't need polling. When
        there is more than one generator the lowest interval is used.
        """
