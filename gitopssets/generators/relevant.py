"""Find the enabled generators for a generator declaration."""

from collections.abc import Mapping
import logging

from gitopssets.exceptions import GeneratorNotEnabledError
from gitopssets.manifest import GitOpsSetGenerator, GitOpsSetNestedGenerator

from . import Generator

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "find_relevant_generators",
]


def find_relevant_generators(
    generator: GitOpsSetGenerator | GitOpsSetNestedGenerator,
    enabled_generators: Mapping[str, Generator],
) -> list[Generator]:
    """Return the enabled generators for the kind of generator declared.

    An empty declaration has no relevant generators. A declaration for a kind
    that is not in `enabled_generators` raises `GeneratorNotEnabledError`.
    """
    if (kind := generator.kind) is None:
        return []
    if (found := enabled_generators.get(kind)) is None:
        raise GeneratorNotEnabledError(kind)
    _LOGGER.debug("Found relevant generator %s", kind)
    return [found]
