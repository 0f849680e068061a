"""Representation of GitOpsSet resources and their generator declarations.

A GitOpsSet declares a list of generators. Each generator declaration holds
exactly one generator specific payload (e.g. a `ListGenerator`), and the kind
of that payload is used to find the generator implementation that produces
elements for it.
"""

from dataclasses import dataclass, field
import datetime
import logging
from pathlib import Path
import re
from typing import Any, ClassVar, Union

import aiofiles
import yaml
from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig

from .exceptions import InputException

__all__ = [
    "read_gitopssets",
    "parse_duration",
    "GitOpsSet",
    "GitOpsSetGenerator",
    "GitOpsSetNestedGenerator",
    "ListGenerator",
    "GitRepositoryGenerator",
    "OCIRepositoryGenerator",
    "PullRequestGenerator",
    "ClusterGenerator",
    "ImagePolicyGenerator",
    "APIClientGenerator",
    "ConfigGenerator",
    "MatrixGenerator",
]

_LOGGER = logging.getLogger(__name__)


# Match a prefix of apiVersion to ensure we have the right type of object.
# We don't check specific versions for forward compatibility on upgrade.
GITOPSSET_DOMAIN = "templates.weave.works"
GITOPSSET_KIND = "GitOpsSet"
DEFAULT_NAMESPACE = "default"

LIST_KIND = "List"
GIT_REPOSITORY_KIND = "GitRepository"
OCI_REPOSITORY_KIND = "OCIRepository"
PULL_REQUESTS_KIND = "PullRequests"
CLUSTER_KIND = "Cluster"
IMAGE_POLICY_KIND = "ImagePolicy"
API_CLIENT_KIND = "APIClient"
CONFIG_KIND = "Config"
MATRIX_KIND = "Matrix"

DEFAULT_REQUEUE_INTERVAL = datetime.timedelta(minutes=3)

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
"""Seconds per duration unit."""
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> datetime.timedelta:
    """Parse a kubernetes style duration string such as `1h30m` or `45s`."""
    if not isinstance(value, str) or not value:
        raise InputException(f"Invalid duration: {value!r}")
    if value == "0":
        return datetime.timedelta(0)
    pos = 0
    seconds = 0.0
    while pos < len(value):
        if not (match := _DURATION_PART.match(value, pos)):
            raise InputException(f"Invalid duration: {value!r}")
        seconds += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return datetime.timedelta(seconds=seconds)


def _check_version(doc: dict[str, Any], version: str) -> None:
    """Assert that the resource has the specified version."""
    if not (api_version := doc.get("apiVersion")):
        raise InputException(f"Invalid object missing apiVersion: {doc}")
    if not api_version.startswith(version):
        raise InputException(f"Invalid object expected '{version}': {doc}")


def _parse_interval(doc: dict[str, Any]) -> datetime.timedelta:
    if (interval := doc.get("interval")) is None:
        return DEFAULT_REQUEUE_INTERVAL
    return parse_duration(interval)


@dataclass
class BaseManifest(DataClassDictMixin):
    """Base class for all manifest objects."""

    def compact_dict(self) -> dict[str, Any]:
        """Return a compact dictionary representation of the object."""
        return self.to_dict()

    class Config(BaseConfig):
        omit_none = True


@dataclass
class ListGenerator(BaseManifest):
    """ListGenerator generates from a hard-coded list."""

    kind: ClassVar[str] = LIST_KIND

    elements: list[dict[str, Any]] = field(default_factory=list)
    """The elements to generate, used verbatim."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "ListGenerator":
        """Parse a ListGenerator from a generator declaration."""
        elements = doc.get("elements") or []
        if not isinstance(elements, list):
            raise InputException(f"Invalid {cls.kind} generator elements: {doc}")
        return cls(elements=elements)


@dataclass
class RepositoryGeneratorFileItem(BaseManifest):
    """A file to be parsed for elements."""

    path: str


@dataclass
class RepositoryGeneratorDirectoryItem(BaseManifest):
    """A directory to be listed (or excluded from the listing) for elements."""

    path: str
    exclude: bool = False


def _parse_repository_items(
    doc: dict[str, Any],
) -> tuple[list[RepositoryGeneratorFileItem], list[RepositoryGeneratorDirectoryItem]]:
    files = []
    for item in doc.get("files") or []:
        if not isinstance(item, dict) or not (path := item.get("path")):
            raise InputException(f"Invalid file item missing path: {item}")
        files.append(RepositoryGeneratorFileItem(path=path))
    directories = []
    for item in doc.get("directories") or []:
        if not isinstance(item, dict) or not (path := item.get("path")):
            raise InputException(f"Invalid directory item missing path: {item}")
        directories.append(
            RepositoryGeneratorDirectoryItem(
                path=path, exclude=bool(item.get("exclude", False))
            )
        )
    return files, directories


@dataclass
class GitRepositoryGenerator(BaseManifest):
    """GitRepositoryGenerator generates from files in a Flux GitRepository."""

    kind: ClassVar[str] = GIT_REPOSITORY_KIND

    repository_ref: str = field(metadata=field_options(alias="repositoryRef"))
    """The name of the GitRepository resource to be generated from."""

    files: list[RepositoryGeneratorFileItem] = field(default_factory=list)
    """Files to be parsed for elements."""

    directories: list[RepositoryGeneratorDirectoryItem] = field(
        default_factory=list
    )
    """Rules for identifying directories to be listed."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "GitRepositoryGenerator":
        """Parse a GitRepositoryGenerator from a generator declaration."""
        if not (repository_ref := doc.get("repositoryRef")):
            raise InputException(f"Invalid {cls.kind} missing repositoryRef: {doc}")
        files, directories = _parse_repository_items(doc)
        return cls(repository_ref=repository_ref, files=files, directories=directories)


@dataclass
class OCIRepositoryGenerator(BaseManifest):
    """OCIRepositoryGenerator generates from files in a Flux OCIRepository."""

    kind: ClassVar[str] = OCI_REPOSITORY_KIND

    repository_ref: str = field(metadata=field_options(alias="repositoryRef"))
    """The name of the OCIRepository resource to be generated from."""

    files: list[RepositoryGeneratorFileItem] = field(default_factory=list)
    """Files to be parsed for elements."""

    directories: list[RepositoryGeneratorDirectoryItem] = field(
        default_factory=list
    )
    """Rules for identifying directories to be listed."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "OCIRepositoryGenerator":
        """Parse an OCIRepositoryGenerator from a generator declaration."""
        if not (repository_ref := doc.get("repositoryRef")):
            raise InputException(f"Invalid {cls.kind} missing repositoryRef: {doc}")
        files, directories = _parse_repository_items(doc)
        return cls(repository_ref=repository_ref, files=files, directories=directories)


@dataclass
class PullRequestGenerator(BaseManifest):
    """PullRequestGenerator generates from open pull requests in a repository."""

    kind: ClassVar[str] = PULL_REQUESTS_KIND

    driver: str
    """The SCM driver e.g. github, gitlab."""

    repo: str
    """The repository to query, e.g. `org/repo`."""

    server_url: str | None = field(
        metadata=field_options(alias="serverURL"), default=None
    )
    """The URL of the SCM server, the driver default when unset."""

    interval: datetime.timedelta = DEFAULT_REQUEUE_INTERVAL
    """How often the pull requests are queried."""

    labels: list[str] = field(default_factory=list)
    """Only pull requests with all of these labels are included."""

    forks: bool = False
    """Whether pull requests from forks are included."""

    secret_ref: str | None = field(
        metadata=field_options(alias="secretRef"), default=None
    )
    """The name of the Secret holding the SCM credentials."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "PullRequestGenerator":
        """Parse a PullRequestGenerator from a generator declaration."""
        if not (driver := doc.get("driver")):
            raise InputException(f"Invalid {cls.kind} missing driver: {doc}")
        if not (repo := doc.get("repo")):
            raise InputException(f"Invalid {cls.kind} missing repo: {doc}")
        secret_ref = None
        if secret := doc.get("secretRef"):
            secret_ref = secret.get("name")
        return cls(
            driver=driver,
            repo=repo,
            server_url=doc.get("serverURL"),
            interval=_parse_interval(doc),
            labels=list(doc.get("labels") or []),
            forks=bool(doc.get("forks", False)),
            secret_ref=secret_ref,
        )


@dataclass
class ClusterGenerator(BaseManifest):
    """ClusterGenerator generates from clusters in the cluster inventory."""

    kind: ClassVar[str] = CLUSTER_KIND

    selector: dict[str, Any] = field(default_factory=dict)
    """A label selector for the clusters to include."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "ClusterGenerator":
        """Parse a ClusterGenerator from a generator declaration."""
        return cls(selector=doc.get("selector") or {})


@dataclass
class ImagePolicyGenerator(BaseManifest):
    """ImagePolicyGenerator generates from the latest image of an ImagePolicy."""

    kind: ClassVar[str] = IMAGE_POLICY_KIND

    policy_ref: str = field(metadata=field_options(alias="policyRef"))
    """The name of the ImagePolicy to generate from."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "ImagePolicyGenerator":
        """Parse an ImagePolicyGenerator from a generator declaration."""
        if not (policy_ref := doc.get("policyRef")):
            raise InputException(f"Invalid {cls.kind} missing policyRef: {doc}")
        return cls(policy_ref=policy_ref)


@dataclass
class APIClientGenerator(BaseManifest):
    """APIClientGenerator generates from the response of an HTTP API."""

    kind: ClassVar[str] = API_CLIENT_KIND

    endpoint: str
    """The URL to request."""

    method: str = "GET"
    """The HTTP method of the request."""

    interval: datetime.timedelta = DEFAULT_REQUEUE_INTERVAL
    """How often the API is requested."""

    json_path: str | None = field(
        metadata=field_options(alias="jsonPath"), default=None
    )
    """Expression selecting the elements within the response."""

    body: dict[str, Any] | None = None
    """The body of a POST request."""

    single_element: bool = field(
        metadata=field_options(alias="singleElement"), default=False
    )
    """Whether the whole response is returned as a single element."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "APIClientGenerator":
        """Parse an APIClientGenerator from a generator declaration."""
        if not (endpoint := doc.get("endpoint")):
            raise InputException(f"Invalid {cls.kind} missing endpoint: {doc}")
        return cls(
            endpoint=endpoint,
            method=doc.get("method", "GET"),
            interval=_parse_interval(doc),
            json_path=doc.get("jsonPath"),
            body=doc.get("body"),
            single_element=bool(doc.get("singleElement", False)),
        )


@dataclass
class ConfigGenerator(BaseManifest):
    """ConfigGenerator generates a single element from a ConfigMap or Secret."""

    kind: ClassVar[str] = CONFIG_KIND

    config_kind: str = field(metadata=field_options(alias="kind"))
    """Either ConfigMap or Secret."""

    name: str
    """The name of the ConfigMap or Secret."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "ConfigGenerator":
        """Parse a ConfigGenerator from a generator declaration."""
        if (config_kind := doc.get("kind")) not in ("ConfigMap", "Secret"):
            raise InputException(f"Invalid {cls.kind} kind {config_kind!r}: {doc}")
        if not (name := doc.get("name")):
            raise InputException(f"Invalid {cls.kind} missing name: {doc}")
        return cls(config_kind=config_kind, name=name)


NestedGeneratorSpec = Union[
    ListGenerator,
    GitRepositoryGenerator,
    OCIRepositoryGenerator,
    PullRequestGenerator,
    ClusterGenerator,
    ImagePolicyGenerator,
    APIClientGenerator,
    ConfigGenerator,
]

_NESTED_GENERATOR_KEYS: dict[str, Any] = {
    "list": ListGenerator,
    "gitRepository": GitRepositoryGenerator,
    "ociRepository": OCIRepositoryGenerator,
    "pullRequests": PullRequestGenerator,
    "cluster": ClusterGenerator,
    "imagePolicy": ImagePolicyGenerator,
    "apiClient": APIClientGenerator,
    "config": ConfigGenerator,
}
_MATRIX_KEY = "matrix"
_NAME_KEY = "name"


def _parse_spec(doc: dict[str, Any], parsers: dict[str, Any]) -> Any:
    """Parse the single generator payload from a generator declaration."""
    if unknown := [key for key in doc if key not in parsers]:
        raise InputException(f"Invalid generator, unknown keys {unknown}: {doc}")
    if len(doc) > 1:
        raise InputException(
            f"Invalid generator, expected exactly one of {list(doc)}: {doc}"
        )
    for key, value in doc.items():
        if value is None:
            return None
        if not isinstance(value, dict):
            raise InputException(f"Invalid generator {key}: {doc}")
        return parsers[key].parse_doc(value)
    return None


@dataclass
class GitOpsSetNestedGenerator(BaseManifest):
    """A generator declaration nested within a Matrix generator."""

    spec: NestedGeneratorSpec | None = None
    """The generator specific declaration, or None for an empty declaration."""

    name: str | None = None
    """Optional name to nest the generated elements under."""

    @property
    def kind(self) -> str | None:
        """The kind of generator declared."""
        return self.spec.kind if self.spec is not None else None

    def to_generator(self) -> "GitOpsSetGenerator":
        """Return the top level declaration for the nested generator."""
        return GitOpsSetGenerator(spec=self.spec)

    @classmethod
    def parse_doc(cls, doc: dict[str, Any] | None) -> "GitOpsSetNestedGenerator":
        """Parse a nested generator from a Matrix generator declaration."""
        if doc is None:
            return cls()
        if not isinstance(doc, dict):
            raise InputException(f"Invalid nested generator: {doc!r}")
        doc = dict(doc)
        name = doc.pop(_NAME_KEY, None)
        if _MATRIX_KEY in doc:
            raise InputException(
                f"Invalid nested generator, matrix not allowed: {doc}"
            )
        return cls(spec=_parse_spec(doc, _NESTED_GENERATOR_KEYS), name=name)


@dataclass
class MatrixGenerator(BaseManifest):
    """MatrixGenerator combines the elements of multiple generators."""

    kind: ClassVar[str] = MATRIX_KIND

    generators: list[GitOpsSetNestedGenerator] = field(default_factory=list)
    """The generators to combine, in order."""

    single_element: bool = field(
        metadata=field_options(alias="singleElement"), default=False
    )
    """Combine all elements into a single element instead of a product."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "MatrixGenerator":
        """Parse a MatrixGenerator from a generator declaration."""
        generators = doc.get("generators") or []
        if not isinstance(generators, list):
            raise InputException(f"Invalid {cls.kind} generators: {doc}")
        return cls(
            generators=[GitOpsSetNestedGenerator.parse_doc(g) for g in generators],
            single_element=bool(doc.get("singleElement", False)),
        )


GeneratorSpec = Union[NestedGeneratorSpec, MatrixGenerator]

_GENERATOR_KEYS: dict[str, Any] = {
    **_NESTED_GENERATOR_KEYS,
    _MATRIX_KEY: MatrixGenerator,
}


@dataclass
class GitOpsSetGenerator(BaseManifest):
    """A top level generator declaration of a GitOpsSet."""

    spec: GeneratorSpec | None = None
    """The generator specific declaration, or None for an empty declaration."""

    @property
    def kind(self) -> str | None:
        """The kind of generator declared."""
        return self.spec.kind if self.spec is not None else None

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "GitOpsSetGenerator":
        """Parse a generator declaration of a GitOpsSet."""
        if not isinstance(doc, dict):
            raise InputException(f"Invalid generator: {doc!r}")
        return cls(spec=_parse_spec(doc, _GENERATOR_KEYS))


@dataclass
class GitOpsSet(BaseManifest):
    """A representation of a GitOpsSet."""

    kind: ClassVar[str] = GITOPSSET_KIND

    name: str
    """The name of the GitOpsSet."""

    namespace: str
    """The namespace of the GitOpsSet."""

    generators: list[GitOpsSetGenerator] = field(default_factory=list)
    """The generators producing elements for the templates."""

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "GitOpsSet":
        """Parse a GitOpsSet from a kubernetes resource."""
        _check_version(doc, GITOPSSET_DOMAIN)
        if doc.get("kind") != GITOPSSET_KIND:
            raise InputException(f"Invalid {cls} unexpected kind: {doc}")
        if not (metadata := doc.get("metadata")):
            raise InputException(f"Invalid {cls} missing metadata: {doc}")
        if not (name := metadata.get("name")):
            raise InputException(f"Invalid {cls} missing metadata.name: {doc}")
        spec = doc.get("spec") or {}
        generators = spec.get("generators") or []
        if not isinstance(generators, list):
            raise InputException(f"Invalid {cls} spec.generators: {doc}")
        return cls(
            name=name,
            namespace=metadata.get("namespace", DEFAULT_NAMESPACE),
            generators=[GitOpsSetGenerator.parse_doc(g or {}) for g in generators],
        )

    @property
    def namespaced_name(self) -> str:
        """Return the namespace and name concatenated as an id."""
        return f"{self.namespace}/{self.name}"


def is_gitopsset(doc: dict[str, Any]) -> bool:
    """Check if the object is a GitOpsSet."""
    return doc.get("kind") == GITOPSSET_KIND and doc.get("apiVersion", "").startswith(
        GITOPSSET_DOMAIN
    )


async def read_gitopssets(path: Path) -> list[GitOpsSet]:
    """Return all GitOpsSets found in a yaml file."""
    async with aiofiles.open(str(path)) as gitopsset_file:
        content = await gitopsset_file.read()
    try:
        docs = list(yaml.safe_load_all(content))
    except yaml.YAMLError as err:
        raise InputException(f"Unable to parse {path} as yaml: {err}") from err
    results = []
    for doc in docs:
        if not isinstance(doc, dict):
            continue
        if not is_gitopsset(doc):
            _LOGGER.debug("Skipping %s in %s", doc.get("kind"), path)
            continue
        results.append(GitOpsSet.parse_doc(doc))
    return results
