"""Exceptions related to gitopssets."""

__all__ = [
    "GitOpsSetsException",
    "InputException",
    "EmptyGitOpsSetError",
    "GeneratorNotEnabledError",
    "GeneratorUnavailableError",
    "InsufficientGeneratorsError",
    "GeneratorException",
    "MergeError",
    "GitOpsSetGenerationError",
]


class GitOpsSetsException(Exception):
    """Generic base exception used for this library."""


class InputException(GitOpsSetsException):
    """Raised when the input files or values are not formatted as expected."""


class EmptyGitOpsSetError(GitOpsSetsException):
    """Raised when a generator is asked to generate from an empty declaration."""

    def __init__(self) -> None:
        super().__init__("GitOpsSet is empty")


class GeneratorException(GitOpsSetsException):
    """Raised when a generator fails to produce elements."""


class GeneratorNotEnabledError(GeneratorException):
    """Raised when a declaration names a generator that is not enabled."""

    def __init__(self, name: str) -> None:
        super().__init__(f"generator {name} not enabled")
        self.name = name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GeneratorNotEnabledError):
            return NotImplemented
        return self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)


class GeneratorUnavailableError(GeneratorException):
    """Raised when an enabled generator has no implementation in this package."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"generator {name} is enabled but not available in gitopssets"
        )
        self.name = name


class InsufficientGeneratorsError(GeneratorException):
    """Raised when a Matrix declaration has too few nested generators."""

    def __init__(self, count: int) -> None:
        super().__init__(
            f"matrix generator needs two (or more) generators, got {count}"
        )
        self.count = count


class MergeError(GeneratorException):
    """Raised when two elements can't be merged together."""


class GitOpsSetGenerationError(GitOpsSetsException):
    """Raised when generating the elements for a GitOpsSet has failed."""

    def __init__(self, gitopsset_name: str, message: str | None) -> None:
        super().__init__(
            f"failed to generate elements for set {gitopsset_name}: "
            f"{message or 'Unknown error'}"
        )
        self.gitopsset_name = gitopsset_name
        self.message = message
