"""gitopssets generate action."""

import logging
from argparse import ArgumentParser, _SubParsersAction as SubParsersAction
import pathlib
import sys
from typing import Any, cast

from gitopssets import manifest, registry
from gitopssets.config import GeneratorConfig
from gitopssets.generate import calculate_interval, generate_elements

from .format import JsonFormatter, StructFormatter, YamlFormatter

_LOGGER = logging.getLogger(__name__)

FORMATTERS: dict[str, type[StructFormatter]] = {
    "yaml": YamlFormatter,
    "json": JsonFormatter,
}


def _comma_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class GenerateAction:
    """Generate the elements of GitOpsSets."""

    @classmethod
    def register(
        cls, subparsers: SubParsersAction  # type: ignore[type-arg]
    ) -> ArgumentParser:
        """Register the subparser commands."""
        args = cast(
            ArgumentParser,
            subparsers.add_parser(
                "generate",
                help="Generate the elements of GitOpsSets",
                description=(
                    "Print the elements generated for each GitOpsSet in a file, "
                    "one list of elements per generator."
                ),
            ),
        )
        args.add_argument(
            "path",
            help="Path to a yaml file containing GitOpsSet resources",
            type=pathlib.Path,
        )
        args.add_argument(
            "--enabled-generators",
            type=_comma_list,
            default=None,
            help="Comma separated list of generators to enable",
        )
        args.add_argument(
            "--output",
            "-o",
            choices=list(FORMATTERS),
            default="yaml",
            help="Output format of the command",
        )
        args.set_defaults(cls=cls)
        return args

    async def run(  # type: ignore[no-untyped-def]
        self,
        path: pathlib.Path,
        enabled_generators: list[str] | None,
        output: str,
        **kwargs,  # pylint: disable=unused-argument
    ) -> None:
        """Async Action implementation."""
        config = GeneratorConfig()
        if enabled_generators is not None:
            config.enabled_generators = enabled_generators
        generators = registry.get_generators(config.enabled_generators)

        results: list[dict[str, Any]] = []
        for gitopsset in await manifest.read_gitopssets(path):
            elements = await generate_elements(gitopsset, generators)
            interval = calculate_interval(gitopsset, generators)
            results.append(
                {
                    "name": gitopsset.name,
                    "namespace": gitopsset.namespace,
                    "requeueAfter": int(interval.total_seconds()),
                    "elements": elements,
                }
            )
        _LOGGER.debug("Generated %d GitOpsSets from %s", len(results), path)

        FORMATTERS[output]().print(results, file=sys.stdout)
