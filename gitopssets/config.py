"""Configuration objects for gitopssets."""

from dataclasses import dataclass, field

from .registry import DEFAULT_GENERATORS


@dataclass
class GeneratorConfig:
    """Configuration for the generators available to GitOpsSets."""

    enabled_generators: list[str] = field(
        default_factory=lambda: list(DEFAULT_GENERATORS)
    )
