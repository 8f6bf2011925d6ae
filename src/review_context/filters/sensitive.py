"""Filter that scrubs credentials from every text field of the bundle."""

import logging
from typing import Any

from review_context.engine.base import ContextFilter
from review_context.models.context import ContextBundle
from review_context.redactor import SensitiveDataRedactor

logger = logging.getLogger(__name__)

SENSITIVE_FILE_PLACEHOLDER = "[REDACTED - sensitive file]"


class SensitiveDataFilter(ContextFilter):
    """Redacts secrets before anything leaves the process.

    Files flagged sensitive by name or by the configured path rules lose
    their patch and their full contents entirely.
    """

    def __init__(self, redactor: SensitiveDataRedactor | None = None) -> None:
        self.redactor = redactor or SensitiveDataRedactor()
        self._count = 0

    def name(self) -> str:
        return "sensitive_data"

    def order(self) -> int:
        return 30

    def filter(self, bundle: ContextBundle) -> None:
        self._count = 0
        sensitive_paths = set(bundle.metadata.get("sensitive_files") or [])

        for file in bundle.files:
            if (
                file.is_sensitive
                or file.filename in sensitive_paths
                or self.redactor.is_sensitive_file(file.filename)
            ):
                file.is_sensitive = True
                sensitive_paths.add(file.filename)
                if file.patch is not None:
                    file.patch = SENSITIVE_FILE_PLACEHOLDER
                    self._count += 1
            elif file.patch is not None:
                file.patch = self._redact(file.patch)

        if bundle.pull_request:
            bundle.pull_request.title = self._redact(bundle.pull_request.title)
            if bundle.pull_request.body:
                bundle.pull_request.body = self._redact(bundle.pull_request.body)

        for issue in bundle.linked_issues:
            issue.title = self._redact(issue.title)
            if issue.body is not None:
                issue.body = self._redact(issue.body)
            for comment in issue.comments:
                comment.body = self._redact(comment.body)

        for pr_comment in bundle.pr_comments:
            pr_comment.body = self._redact(pr_comment.body)

        for path in list(bundle.file_contents):
            if path in sensitive_paths or self.redactor.is_sensitive_file(path):
                del bundle.file_contents[path]
                self._count += 1
            else:
                bundle.file_contents[path] = self._redact(bundle.file_contents[path])

        for guideline in bundle.guidelines:
            guideline.content = self._redact(guideline.content)
            if guideline.description:
                guideline.description = self._redact(guideline.description)

        docs = bundle.repository_docs
        if docs.readme:
            docs.readme = self._redact(docs.readme)
        if docs.contributing:
            docs.contributing = self._redact(docs.contributing)

        for review in bundle.review_history:
            review.summary = self._redact(review.summary)
            review.key_findings = self._redact_nested(review.key_findings)

        for path in list(bundle.semantics):
            bundle.semantics[path] = self._redact_nested(bundle.semantics[path])

        if bundle.project_context:
            bundle.project_context = self._redact_nested(bundle.project_context)

        for impacted in bundle.impacted_files:
            impacted.content = self._redact(impacted.content)

        if self._count:
            logger.info(f"Redacted sensitive data in {self._count} places")

    def _redact(self, text: str) -> str:
        redacted = self.redactor.redact(text)
        if redacted != text:
            self._count += 1
        return redacted

    def _redact_nested(self, value: Any) -> Any:
        """Redact every string inside nested dicts and lists."""
        if isinstance(value, str):
            return self._redact(value)
        if isinstance(value, dict):
            return {key: self._redact_nested(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._redact_nested(item) for item in value]
        return value
