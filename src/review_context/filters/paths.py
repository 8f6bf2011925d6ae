"""Path based filters: vendored directories, configured rules and binaries."""

import logging
import posixpath
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

from review_context.engine.base import ContextFilter
from review_context.models.context import ContextBundle

logger = logging.getLogger(__name__)

VENDOR_DIRECTORIES = (
    "vendor/",
    "node_modules/",
    ".git/",
    "storage/",
    "dist/",
    "build/",
    "public/build/",
    ".next/",
    ".nuxt/",
    "bootstrap/cache/",
    "__pycache__/",
    ".venv/",
    "venv/",
    ".tox/",
    "site-packages/",
)

BINARY_EXTENSIONS = frozenset(
    {
        # Images
        "png", "jpg", "jpeg", "gif", "webp", "ico", "svg", "bmp", "tiff",
        # Documents
        "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx",
        # Archives and compiled artifacts
        "zip", "tar", "gz", "rar", "7z", "exe", "dll", "so", "dylib", "pyc", "whl",
        # Fonts
        "woff", "woff2", "ttf", "eot", "otf",
        # Media
        "mp3", "mp4", "wav", "avi", "mov",
        # Generated
        "lock", "map",
    }
)  # fmt: skip

MINIFIED_SUFFIXES = (".min.js", ".min.css")

BINARY_FILENAMES = frozenset(
    {
        "package-lock.json",
        "composer.lock",
        "yarn.lock",
        "pnpm-lock.yaml",
        "cargo.lock",
        "gemfile.lock",
        "poetry.lock",
        "uv.lock",
        ".ds_store",
        "thumbs.db",
    }
)


@lru_cache(maxsize=256)
def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a path glob where ``**`` crosses directories and ``*`` does not.

    A pattern without a slash matches the file name in any directory, and a
    pattern ending in a slash matches everything below that directory.
    """
    pattern = pattern.strip().lstrip("/")
    if pattern.endswith("/"):
        pattern += "**"
    if "/" not in pattern:
        pattern = "**/" + pattern

    parts: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            parts.append(".*")
            i += 2
        elif pattern[i] == "*":
            parts.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            parts.append("[^/]")
            i += 1
        else:
            parts.append(re.escape(pattern[i]))
            i += 1

    return re.compile("^" + "".join(parts) + "$")


def matches_any(path: str, patterns: list[str]) -> bool:
    return any(glob_to_regex(p).match(path) for p in patterns if p.strip())


@dataclass
class PathRules:
    """Ignore, include and sensitive glob lists."""

    ignore: list[str] = field(default_factory=list)
    include: list[str] = field(default_factory=list)
    sensitive: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "PathRules | None":
        if not isinstance(data, dict):
            return None

        def strings(key: str) -> list[str]:
            values = data.get(key) or []
            if isinstance(values, str):
                values = [values]
            return [v for v in values if isinstance(v, str) and v.strip()]

        return cls(ignore=strings("ignore"), include=strings("include"), sensitive=strings("sensitive"))

    def allows(self, path: str) -> bool:
        if self.ignore and matches_any(path, self.ignore):
            return False
        if self.include and not matches_any(path, self.include):
            return False
        return True


class VendorPathFilter(ContextFilter):
    """Drops third-party and build output directories from the diff."""

    def name(self) -> str:
        return "vendor_path"

    def order(self) -> int:
        return 10

    def filter(self, bundle: ContextBundle) -> None:
        original = len(bundle.files)
        bundle.files = [f for f in bundle.files if not is_vendor_path(f.filename)]
        bundle.recompute_metrics()

        removed = original - len(bundle.files)
        if removed:
            logger.debug(f"Removed {removed} vendored files, {len(bundle.files)} remaining")


def is_vendor_path(path: str) -> bool:
    path = path.replace("\\", "/").lstrip("/")
    return any(path.startswith(d) or f"/{d}" in path for d in VENDOR_DIRECTORIES)


class ConfiguredPathFilter(ContextFilter):
    """Applies the ``paths`` rules of the repository and tool configuration."""

    def name(self) -> str:
        return "configured_path"

    def order(self) -> int:
        return 15

    def filter(self, bundle: ContextBundle) -> None:
        rules = PathRules.from_dict(bundle.metadata.get("paths_config"))
        if rules is None:
            return

        original = len(bundle.files)
        bundle.files = [f for f in bundle.files if rules.allows(f.filename)]

        sensitive_files: list[str] = []
        if rules.sensitive:
            for file in bundle.files:
                if matches_any(file.filename, rules.sensitive):
                    file.is_sensitive = True
                    sensitive_files.append(file.filename)
        if sensitive_files:
            bundle.metadata["sensitive_files"] = sensitive_files

        removed_contents = self._filter_keys(bundle.file_contents, rules)
        removed_semantics = self._filter_keys(bundle.semantics, rules)

        guidelines_before = len(bundle.guidelines)
        bundle.guidelines = [g for g in bundle.guidelines if rules.allows(g.path)]

        removed_docs = self._filter_repository_docs(bundle, rules)
        bundle.recompute_metrics()

        logger.debug(
            f"Applied path rules: removed {original - len(bundle.files)} files, "
            f"{len(sensitive_files)} sensitive, {removed_contents} contents, "
            f"{removed_semantics} analyses, {guidelines_before - len(bundle.guidelines)} guidelines, "
            f"{removed_docs} docs"
        )

    @staticmethod
    def _filter_keys(section: dict[str, Any], rules: PathRules) -> int:
        blocked = [path for path in section if not rules.allows(path)]
        for path in blocked:
            del section[path]
        return len(blocked)

    @staticmethod
    def _filter_repository_docs(bundle: ContextBundle, rules: PathRules) -> int:
        paths = bundle.metadata.get("repository_context_paths")
        if not isinstance(paths, dict):
            return 0

        removed = 0
        for key in ("readme", "contributing"):
            path = paths.get(key)
            if isinstance(path, str) and getattr(bundle.repository_docs, key) and not rules.allows(path):
                setattr(bundle.repository_docs, key, None)
                del paths[key]
                removed += 1
        return removed


class BinaryFileFilter(ContextFilter):
    """Drops binary, lock, minified and source map files."""

    def name(self) -> str:
        return "binary_file"

    def order(self) -> int:
        return 20

    def filter(self, bundle: ContextBundle) -> None:
        original = len(bundle.files)
        bundle.files = [f for f in bundle.files if not is_binary_path(f.filename)]
        bundle.recompute_metrics()

        removed = original - len(bundle.files)
        if removed:
            logger.debug(f"Removed {removed} binary or generated files, {len(bundle.files)} remaining")


def is_binary_path(path: str) -> bool:
    filename = posixpath.basename(path.replace("\\", "/")).lower()
    if filename in BINARY_FILENAMES or filename.endswith(MINIFIED_SUFFIXES):
        return True
    _, extension = posixpath.splitext(filename)
    return extension.lstrip(".") in BINARY_EXTENSIONS
