"""Library for formatting generated elements as command output."""

from abc import ABC, abstractmethod
import json
import sys
from typing import Any, TextIO

import yaml


class _Dumper(yaml.SafeDumper):
    """Dumper that writes multi-line strings as literal blocks."""


def _str_presenter(dumper: yaml.SafeDumper, data: str) -> yaml.ScalarNode:
    """Represent multi-line yaml strings as you'd expect.

    See https://github.com/yaml/pyyaml/issues/240
    """
    return dumper.represent_scalar(
        "tag:yaml.org,2002:str", data, style="|" if "\n" in data else None
    )


_Dumper.add_representer(str, _str_presenter)


class StructFormatter(ABC):
    """A formatter that prints a list of result objects."""

    @abstractmethod
    def dumps(self, data: list[dict[str, Any]]) -> str:
        """Serialize the result objects."""

    def print(self, data: list[dict[str, Any]], file: TextIO = sys.stdout) -> None:
        """Print the result objects."""
        print(self.dumps(data), end="", file=file)


class YamlFormatter(StructFormatter):
    """A formatter that prints each result as its own yaml document."""

    def dumps(self, data: list[dict[str, Any]]) -> str:
        if not data:
            return ""
        return yaml.dump_all(
            data, Dumper=_Dumper, sort_keys=False, explicit_start=True
        )


class JsonFormatter(StructFormatter):
    """A formatter that prints all results as one json list."""

    def dumps(self, data: list[dict[str, Any]]) -> str:
        return json.dumps(data, sort_keys=False, indent=4) + "\n"
