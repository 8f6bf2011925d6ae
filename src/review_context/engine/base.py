"""Contracts for pluggable collectors and filters."""

from abc import ABC, abstractmethod
from typing import Any

from review_context.models.context import ContextBundle

BuildParams = dict[str, Any]


class ContextCollector(ABC):
    """Populates one slice of the bundle from one data source.

    Collectors run highest priority first. A collector may read fields written
    by higher priority collectors but must cope with them being absent, since
    any earlier collector may have been skipped or failed.
    """

    @abstractmethod
    def name(self) -> str:
        """Unique name, used as registration key and in logs."""

    @abstractmethod
    def priority(self) -> int:
        """Higher runs earlier."""

    def should_collect(self, params: BuildParams) -> bool:
        """Cheap precondition checked before ``collect``."""
        return True

    @abstractmethod
    def collect(self, bundle: ContextBundle, params: BuildParams) -> None:
        """Gather data into the bundle."""


class ContextFilter(ABC):
    """Transforms or prunes the bundle in place after collection."""

    @abstractmethod
    def name(self) -> str:
        """Unique name, used as registration key and in logs."""

    @abstractmethod
    def order(self) -> int:
        """Lower runs earlier."""

    @abstractmethod
    def filter(self, bundle: ContextBundle) -> None:
        """Rewrite the bundle."""


def has_pull_request_params(params: BuildParams) -> bool:
    """Whether params identify a repository and a pull request."""
    repo = params.get("repo")
    pr_number = params.get("pr_number")
    return (
        isinstance(repo, str)
        and "/" in repo
        and isinstance(pr_number, int)
        and not isinstance(pr_number, bool)
        and pr_number > 0
    )
