"""Pytest configuration and shared fixtures."""

from unittest.mock import MagicMock

import pytest

from review_context.models import ContextBundle, FileChange, PullRequestInfo

SAMPLE_PATCH = """\
@@ -10,6 +10,12 @@ def authenticate(username: str, password: str) -> bool:
     hashed = hash_password(password)
     return db.verify_user(username, hashed)
+
+def get_user(user_id: int) -> dict:
+    \"\"\"Fetch user by ID using parameterized query.\"\"\"
+    query = "SELECT * FROM users WHERE id = %s"
+    return db.execute(query, (user_id,))
"""

SAMPLE_SOURCE = """\
import hashlib
from database import db


def hash_password(password: str) -> str:
    return hashlib.sha256(password.encode()).hexdigest()


def authenticate(username: str, password: str) -> bool:
    hashed = hash_password(password)
    return db.verify_user(username, hashed)


def get_user(user_id: int) -> dict:
    \"\"\"Fetch user by ID using parameterized query.\"\"\"
    query = "SELECT * FROM users WHERE id = %s"
    return db.execute(query, (user_id,))


class Session:
    def __init__(self, user):
        self.user = user

    def refresh(self):
        return authenticate(self.user, "")
"""


def make_file(
    filename: str, patch: str | None = "+x", additions: int = 1, deletions: int = 0, **kwargs
) -> FileChange:
    return FileChange(
        filename=filename,
        status=kwargs.pop("status", "modified"),
        additions=additions,
        deletions=deletions,
        changes=additions + deletions,
        patch=patch,
        **kwargs,
    )


def make_pr(body: str | None = "Fixes #7", **kwargs) -> PullRequestInfo:
    return PullRequestInfo(
        number=kwargs.pop("number", 42),
        title=kwargs.pop("title", "Add user lookup"),
        body=body,
        base_branch=kwargs.pop("base_branch", "main"),
        head_branch=kwargs.pop("head_branch", "feature/users"),
        head_sha=kwargs.pop("head_sha", "abc123"),
        author=kwargs.pop("author", "octocat"),
        repository_full_name=kwargs.pop("repository_full_name", "test-org/test-repo"),
        **kwargs,
    )


@pytest.fixture
def sample_patch() -> str:
    """A patch adding get_user() at lines 12-16 of auth/login.py."""
    return SAMPLE_PATCH


@pytest.fixture
def sample_source() -> str:
    """Head revision of auth/login.py matching the sample patch."""
    return SAMPLE_SOURCE


@pytest.fixture
def bundle() -> ContextBundle:
    """A bundle as the diff collector leaves it."""
    b = ContextBundle(
        pull_request=make_pr(),
        files=[
            make_file("auth/login.py", SAMPLE_PATCH, additions=6),
            make_file("README.md", "+docs", additions=1),
        ],
    )
    b.recompute_metrics()
    return b


@pytest.fixture
def params() -> dict:
    """Build parameters identifying a pull request."""
    return {"repo": "test-org/test-repo", "pr_number": 42}


@pytest.fixture
def mock_github() -> MagicMock:
    """A GitHubClient double with empty defaults."""
    github = MagicMock()
    github.get_file_content.return_value = None
    github.get_readme.return_value = None
    github.get_default_branch.return_value = "main"
    github.get_languages.return_value = []
    github.get_pr_discussion.return_value = []
    github.get_issue_comments.return_value = []
    github.search_code.return_value = []
    return github
