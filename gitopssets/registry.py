"""Library for building the set of enabled generators.

Generators are created from factories, and only the factories for enabled
generators are used. The Matrix generator is created with the nested
generators it may use, which are all the other enabled generators.
"""

from collections.abc import Callable, Mapping, Iterable
import datetime
import logging

from .exceptions import GeneratorUnavailableError, InputException
from .generators import Element, Generator, NO_REQUEUE_INTERVAL
from .generators.list_generator import ListGenerator
from .generators.matrix import MatrixGenerator
from .manifest import (
    API_CLIENT_KIND,
    CLUSTER_KIND,
    CONFIG_KIND,
    GIT_REPOSITORY_KIND,
    IMAGE_POLICY_KIND,
    LIST_KIND,
    MATRIX_KIND,
    OCI_REPOSITORY_KIND,
    PULL_REQUESTS_KIND,
    GitOpsSet,
    GitOpsSetGenerator,
)

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "ALL_GENERATORS",
    "DEFAULT_GENERATORS",
    "GeneratorFactory",
    "UnavailableGenerator",
    "validate_enabled_generators",
    "default_factories",
    "get_generators",
]


ALL_GENERATORS = [
    GIT_REPOSITORY_KIND,
    OCI_REPOSITORY_KIND,
    CLUSTER_KIND,
    PULL_REQUESTS_KIND,
    LIST_KIND,
    API_CLIENT_KIND,
    IMAGE_POLICY_KIND,
    MATRIX_KIND,
    CONFIG_KIND,
]
"""The names of all possible generators."""

# Cluster and ImagePolicy generators require optional cluster dependencies
DEFAULT_GENERATORS = [
    GIT_REPOSITORY_KIND,
    OCI_REPOSITORY_KIND,
    PULL_REQUESTS_KIND,
    LIST_KIND,
    API_CLIENT_KIND,
    MATRIX_KIND,
    CONFIG_KIND,
]
"""The names of the generators enabled by default."""


GeneratorFactory = Callable[[], Generator]


def validate_enabled_generators(enabled_generators: Iterable[str]) -> None:
    """Raise an InputException for any name that is not a known generator."""
    for generator in enabled_generators:
        if generator not in ALL_GENERATORS:
            raise InputException(
                f'invalid generator "{generator}". valid values: {ALL_GENERATORS}'
            )


def default_factories() -> dict[str, GeneratorFactory]:
    """Return factories for the generators that need no external data source."""
    return {
        LIST_KIND: ListGenerator,
    }


class UnavailableGenerator(Generator):
    """Stands in for an enabled generator that has no implementation here.

    Declarations of this kind fail with `GeneratorUnavailableError` instead of
    being reported as not enabled.
    """

    def __init__(self, name: str) -> None:
        """Initialize UnavailableGenerator with the generator kind."""
        self.name = name

    async def generate(
        self,
        generator: GitOpsSetGenerator | None,
        gitopsset: GitOpsSet | None,
    ) -> list[Element] | None:
        raise GeneratorUnavailableError(self.name)

    def interval(self, generator: GitOpsSetGenerator) -> datetime.timedelta:
        return NO_REQUEUE_INTERVAL


def _instantiate(
    enabled_generators: Iterable[str], factories: Mapping[str, GeneratorFactory]
) -> dict[str, Generator]:
    """Create the enabled generators other than Matrix."""
    generators: dict[str, Generator] = {}
    for name in enabled_generators:
        if name == MATRIX_KIND:
            continue
        if (factory := factories.get(name)) is None:
            generators[name] = UnavailableGenerator(name)
        else:
            generators[name] = factory()
    return generators


def get_generators(
    enabled_generators: Iterable[str],
    factories: Mapping[str, GeneratorFactory] | None = None,
) -> dict[str, Generator]:
    """Return the enabled generators, keyed by generator name.

    The Matrix generator is added when enabled and may nest any of the other
    enabled generators. Enabled generators without a factory are created as
    `UnavailableGenerator`.
    """
    enabled_generators = list(enabled_generators)
    validate_enabled_generators(enabled_generators)
    if factories is None:
        factories = default_factories()
    generators = _instantiate(enabled_generators, factories)
    if MATRIX_KIND in enabled_generators:
        generators[MATRIX_KIND] = MatrixGenerator(
            _instantiate(enabled_generators, factories)
        )
    if unavailable := [
        name
        for name, generator in generators.items()
        if isinstance(generator, UnavailableGenerator)
    ]:
        _LOGGER.debug("No implementation available for generators: %s", unavailable)
    _LOGGER.debug("Enabled generators: %s", sorted(generators))
    return generators
