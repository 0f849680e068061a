"""Tests for the Matrix generator."""

import datetime
from typing import Any

import pytest

from gitopssets.exceptions import (
    EmptyGitOpsSetError,
    GeneratorException,
    GeneratorNotEnabledError,
    InsufficientGeneratorsError,
    MergeError,
)
from gitopssets.generators import Element, Generator, NO_REQUEUE_INTERVAL
from gitopssets.generators.list_generator import ListGenerator
from gitopssets.generators.matrix import MatrixGenerator
from gitopssets.manifest import (
    GitOpsSet,
    GitOpsSetGenerator,
    GitOpsSetNestedGenerator,
    GitRepositoryGenerator,
    ListGenerator as ListSpec,
    MatrixGenerator as MatrixSpec,
    PullRequestGenerator,
)

GITOPSSET = GitOpsSet(name="test-generator", namespace="generation")


class FakePullRequestsGenerator(Generator):
    """Generator for pull requests that returns canned elements."""

    def __init__(
        self, elements: list[Element] | None = None, error: Exception | None = None
    ) -> None:
        self.elements = elements or []
        self.error = error
        self.calls: list[GitOpsSet | None] = []

    async def generate(
        self,
        generator: GitOpsSetGenerator | None,
        gitopsset: GitOpsSet | None,
    ) -> list[Element] | None:
        if generator is None:
            raise EmptyGitOpsSetError()
        if not isinstance(generator.spec, PullRequestGenerator):
            return None
        self.calls.append(gitopsset)
        if self.error:
            raise self.error
        return self.elements

    def interval(self, generator: GitOpsSetGenerator) -> datetime.timedelta:
        assert isinstance(generator.spec, PullRequestGenerator)
        return generator.spec.interval


def list_generator(
    elements: list[dict[str, Any]], name: str | None = None
) -> GitOpsSetNestedGenerator:
    return GitOpsSetNestedGenerator(spec=ListSpec(elements=elements), name=name)


def pull_requests_generator(
    interval: datetime.timedelta = NO_REQUEUE_INTERVAL,
) -> GitOpsSetNestedGenerator:
    return GitOpsSetNestedGenerator(
        spec=PullRequestGenerator(driver="fake", repo="test-org/my-repo", interval=interval)
    )


def matrix(
    *generators: GitOpsSetNestedGenerator, single_element: bool = False
) -> GitOpsSetGenerator:
    return GitOpsSetGenerator(
        spec=MatrixSpec(generators=list(generators), single_element=single_element)
    )


@pytest.fixture(name="generator")
def generator_fixture() -> MatrixGenerator:
    """Matrix generator with only the List generator enabled."""
    return MatrixGenerator({"List": ListGenerator()})


async def test_generate_empty_declaration(generator: MatrixGenerator) -> None:
    """Test generating without a declaration."""
    with pytest.raises(EmptyGitOpsSetError, match="GitOpsSet is empty"):
        await generator.generate(None, None)


async def test_generate_other_generator(generator: MatrixGenerator) -> None:
    """Test a declaration that is not for the Matrix generator."""
    assert await generator.generate(GitOpsSetGenerator(), None) is None
    assert (
        await generator.generate(GitOpsSetGenerator(spec=ListSpec()), None) is None
    )


@pytest.mark.parametrize(
    ("generators"),
    [
        [],
        [list_generator([{"key1": "value1"}, {"key2": "value2"}])],
    ],
    ids=["none", "one"],
)
async def test_generate_insufficient_generators(
    generator: MatrixGenerator, generators: list[GitOpsSetNestedGenerator]
) -> None:
    """Test a Matrix with fewer than two generators."""
    with pytest.raises(InsufficientGeneratorsError, match="needs two \\(or more\\)"):
        await generator.generate(matrix(*generators), GITOPSSET)


@pytest.mark.parametrize(
    ("declaration", "expected"),
    [
        (
            matrix(
                list_generator([{"cluster": "cluster", "url": "url"}]),
                list_generator(
                    [
                        {"environment": "dev", "instances": 2},
                        {"environment": "production", "instances": 10},
                        {"environment": "staging", "instances": 5},
                    ]
                ),
            ),
            [
                {"cluster": "cluster", "url": "url", "environment": "dev", "instances": 2},
                {
                    "cluster": "cluster",
                    "url": "url",
                    "environment": "production",
                    "instances": 10,
                },
                {"cluster": "cluster", "url": "url", "environment": "staging", "instances": 5},
            ],
        ),
        (
            matrix(
                list_generator([{"cluster": "cluster", "url": "url"}]),
                list_generator([]),
            ),
            [{"cluster": "cluster", "url": "url"}],
        ),
        (
            matrix(list_generator([]), list_generator([])),
            [],
        ),
        (
            matrix(
                list_generator([{"key1": "value1"}, {"key2": "value2"}], name="list1"),
                list_generator([{"key1": "value3"}, {"key2": "value4"}], name="list2"),
            ),
            [
                {"list1": {"key1": "value1"}, "list2": {"key1": "value3"}},
                {"list1": {"key1": "value1"}, "list2": {"key2": "value4"}},
                {"list1": {"key2": "value2"}, "list2": {"key1": "value3"}},
                {"list1": {"key2": "value2"}, "list2": {"key2": "value4"}},
            ],
        ),
        (
            matrix(
                list_generator(
                    [{"latestImage": "testing:v2.1", "previousImage": "testing:v2.0"}],
                    name="g1",
                ),
                list_generator(
                    [{"latestImage": "image:v2.1", "previousImage": "image:v2.0"}],
                    name="g2",
                ),
                list_generator(
                    [{"appName": "test1"}, {"appName": "test2"}, {"appName": "test3"}]
                ),
            ),
            [
                {
                    "appName": app_name,
                    "g1": {"latestImage": "testing:v2.1", "previousImage": "testing:v2.0"},
                    "g2": {"latestImage": "image:v2.1", "previousImage": "image:v2.0"},
                }
                for app_name in ("test1", "test2", "test3")
            ],
        ),
        (
            matrix(list_generator([{"a": 1}]), list_generator([{"b": 2}])),
            [{"a": 1, "b": 2}],
        ),
        (
            matrix(
                list_generator([{"name": "test1", "value": "value1"}]),
                list_generator([{"name": "test1", "value": "value2"}]),
            ),
            [{"name": "test1", "value": "value2"}],
        ),
        (
            matrix(
                list_generator([{"key1": "value1"}, {"key2": "value2"}], name="list1"),
                list_generator([{"key3": "value3"}, {"key4": "value4"}], name="list2"),
                single_element=True,
            ),
            [
                {
                    "list1": [{"key1": "value1"}, {"key2": "value2"}],
                    "list2": [{"key3": "value3"}, {"key4": "value4"}],
                }
            ],
        ),
        (
            matrix(
                list_generator([{"k": 1}]),
                list_generator([{"k": 2}]),
                list_generator([{"k": 3}], name="named"),
                single_element=True,
            ),
            [{"Matrix": [{"k": 1}, {"k": 2}], "named": [{"k": 3}]}],
        ),
        (
            matrix(list_generator([]), list_generator([]), single_element=True),
            [],
        ),
        (
            matrix(GitOpsSetNestedGenerator(), list_generator([{"a": 1}])),
            [{"a": 1}],
        ),
    ],
    ids=[
        "valid-matrix",
        "one-generator-empty",
        "all-generators-empty",
        "named-generators",
        "named-generators-three",
        "unnamed-generators",
        "override",
        "single-element",
        "single-element-unnamed",
        "single-element-empty",
        "empty-nested-declaration",
    ],
)
async def test_generate(
    generator: MatrixGenerator,
    declaration: GitOpsSetGenerator,
    expected: list[Element],
) -> None:
    """Test generating the combined elements of a Matrix."""
    assert await generator.generate(declaration, GITOPSSET) == expected


async def test_generate_is_stable(generator: MatrixGenerator) -> None:
    """Test generating the same declaration twice gives the same order."""
    declaration = matrix(
        list_generator([{"a": 1}, {"a": 2}, {"a": 1}]),
        list_generator([{"b": 3}, {"b": 4}]),
    )
    first = await generator.generate(declaration, GITOPSSET)
    second = await generator.generate(declaration, GITOPSSET)
    assert first == second
    assert first == [
        {"a": 1, "b": 3},
        {"a": 1, "b": 4},
        {"a": 2, "b": 3},
        {"a": 2, "b": 4},
    ]


async def test_generate_disabled_generator(generator: MatrixGenerator) -> None:
    """Test a nested generator that is not enabled is an error."""
    declaration = matrix(
        list_generator([{"cluster": "cluster", "url": "url"}]),
        GitOpsSetNestedGenerator(spec=GitRepositoryGenerator(repository_ref="repo")),
    )
    with pytest.raises(GeneratorNotEnabledError, match="generator GitRepository not enabled"):
        await generator.generate(declaration, GITOPSSET)


async def test_generate_passes_gitopsset() -> None:
    """Test the owning GitOpsSet is passed to the nested generators."""
    pull_requests = FakePullRequestsGenerator(elements=[{"branch": "feature"}])
    generator = MatrixGenerator(
        {"List": ListGenerator(), "PullRequests": pull_requests}
    )
    declaration = matrix(
        list_generator([{"cluster": "dev"}]),
        pull_requests_generator(),
    )
    assert await generator.generate(declaration, GITOPSSET) == [
        {"cluster": "dev", "branch": "feature"}
    ]
    assert pull_requests.calls == [GITOPSSET]


async def test_generate_generator_failure() -> None:
    """Test a failing nested generator fails the whole Matrix."""
    pull_requests = FakePullRequestsGenerator(error=GeneratorException("API failure"))
    generator = MatrixGenerator(
        {"List": ListGenerator(), "PullRequests": pull_requests}
    )
    declaration = matrix(
        pull_requests_generator(),
        list_generator([{"cluster": "dev"}]),
    )
    with pytest.raises(GeneratorException, match="API failure"):
        await generator.generate(declaration, GITOPSSET)


async def test_generate_merge_failure(generator: MatrixGenerator) -> None:
    """Test elements that can't be merged."""
    declaration = matrix(
        list_generator([{"cluster": {"name": "dev"}}]),
        list_generator([{"cluster": "dev"}]),
    )
    with pytest.raises(MergeError, match="failed to create cartesian product"):
        await generator.generate(declaration, GITOPSSET)


def test_interval() -> None:
    """Test the lowest interval of the nested generators is used."""
    generator = MatrixGenerator(
        {"List": ListGenerator(), "PullRequests": FakePullRequestsGenerator()}
    )
    declaration = matrix(
        list_generator([{"cluster": "cluster", "url": "url"}]),
        pull_requests_generator(),
        pull_requests_generator(datetime.timedelta(minutes=30)),
        pull_requests_generator(datetime.timedelta(hours=1)),
    )
    assert generator.interval(declaration) == datetime.timedelta(minutes=30)


def test_interval_no_requeue(generator: MatrixGenerator) -> None:
    """Test a Matrix where no generator needs polling."""
    declaration = matrix(list_generator([]), list_generator([]))
    assert generator.interval(declaration) == NO_REQUEUE_INTERVAL


def test_interval_disabled_generator(generator: MatrixGenerator) -> None:
    """Test a disabled nested generator falls back to no requeue."""
    declaration = matrix(
        list_generator([]),
        pull_requests_generator(datetime.timedelta(minutes=30)),
    )
    assert generator.interval(declaration) == NO_REQUEUE_INTERVAL
