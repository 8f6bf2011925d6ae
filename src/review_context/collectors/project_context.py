"""Collector for the project's languages, runtime, frameworks and dependencies."""

import json
import logging
import re
import tomllib
from typing import Any

from github.GithubException import GithubException

from review_context.engine.base import BuildParams, ContextCollector, has_pull_request_params
from review_context.github.client import GitHubClient
from review_context.models.context import ContextBundle

logger = logging.getLogger(__name__)

MAX_MAIN_DEPENDENCIES = 50
MAX_DEV_DEPENDENCIES = 20

# First manifest that parses wins for each ecosystem
MANIFEST_FILES = {
    "php": ["composer.json"],
    "javascript": ["package.json"],
    "python": ["pyproject.toml", "requirements.txt"],
    "go": ["go.mod"],
    "rust": ["Cargo.toml"],
}

KNOWN_FRAMEWORKS = {
    "php": {
        "laravel/framework": "Laravel",
        "symfony/symfony": "Symfony",
        "slim/slim": "Slim",
    },
    "javascript": {
        "react": "React",
        "vue": "Vue.js",
        "next": "Next.js",
        "nuxt": "Nuxt",
        "@angular/core": "Angular",
        "svelte": "Svelte",
        "express": "Express",
        "fastify": "Fastify",
        "@nestjs/core": "NestJS",
    },
    "python": {
        "django": "Django",
        "flask": "Flask",
        "fastapi": "FastAPI",
        "tornado": "Tornado",
    },
    "go": {
        "github.com/gin-gonic/gin": "Gin",
        "github.com/labstack/echo": "Echo",
        "github.com/gofiber/fiber": "Fiber",
    },
    "rust": {
        "actix-web": "Actix Web",
        "rocket": "Rocket",
        "axum": "Axum",
    },
}

REQUIREMENT_LINE = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._\-\[\],]*)\s*(.*)$")


class ProjectContextCollector(ContextCollector):
    """Reads package manifests from the default branch."""

    def __init__(self, github: GitHubClient) -> None:
        self.github = github

    def name(self) -> str:
        return "project_context"

    def priority(self) -> int:
        return 55

    def should_collect(self, params: BuildParams) -> bool:
        return has_pull_request_params(params)

    def collect(self, bundle: ContextBundle, params: BuildParams) -> None:
        repo_name: str = params["repo"]
        context: dict[str, Any] = {
            "languages": [],
            "runtime": None,
            "frameworks": [],
            "dependencies": [],
        }

        for language, manifests in MANIFEST_FILES.items():
            for manifest in manifests:
                content = self._fetch(repo_name, manifest)
                if content is None:
                    continue
                parsed = parse_manifest(manifest, content)
                if parsed is None:
                    continue

                context["languages"].append(language)
                if parsed.get("runtime"):
                    context["runtime"] = parsed["runtime"]
                context["frameworks"].extend(parsed["frameworks"])
                context["dependencies"].extend(parsed["dependencies"])
                break

        try:
            repository_languages = self.github.get_languages(repo_name)
        except GithubException as e:
            logger.debug(f"Could not fetch languages of {repo_name}: {e}")
            repository_languages = []

        context["frameworks"] = list({f["name"]: f for f in context["frameworks"]}.values())
        context["dependencies"] = limit_dependencies(
            context["dependencies"], imported_modules(bundle.semantics)
        )

        if not context["languages"] and not context["dependencies"] and not repository_languages:
            logger.debug(f"No project manifests found in {repo_name}")
            return

        if repository_languages:
            context["repository_languages"] = repository_languages
        bundle.project_context = context

        logger.info(
            f"Project context for {repo_name}: languages={context['languages']}, "
            f"{len(context['frameworks'])} frameworks, {len(context['dependencies'])} dependencies"
        )

    def _fetch(self, repo_name: str, path: str) -> str | None:
        try:
            return self.github.get_file_content(repo_name, path)
        except GithubException as e:
            logger.debug(f"Could not fetch {path} from {repo_name}: {e}")
            return None


def parse_manifest(filename: str, content: str) -> dict[str, Any] | None:
    """Parse one manifest into ``runtime``, ``frameworks`` and ``dependencies``."""
    try:
        match filename:
            case "composer.json":
                return _parse_composer_json(content)
            case "package.json":
                return _parse_package_json(content)
            case "pyproject.toml":
                return _parse_pyproject_toml(content)
            case "requirements.txt":
                return _parse_requirements_txt(content)
            case "go.mod":
                return _parse_go_mod(content)
            case "Cargo.toml":
                return _parse_cargo_toml(content)
            case _:
                return None
    except (ValueError, TypeError, AttributeError) as e:
        # json and tomllib decode errors are ValueError subclasses
        logger.debug(f"Failed to parse {filename}: {e}")
        return None


def _empty_result() -> dict[str, Any]:
    return {"runtime": None, "frameworks": [], "dependencies": []}


def _add_dependency(
    result: dict[str, Any], name: str, version: str, language: str, dev: bool = False
) -> None:
    result["dependencies"].append({"name": name, "version": version, "dev": dev})
    framework = KNOWN_FRAMEWORKS.get(language, {}).get(name.lower())
    if framework and not dev:
        result["frameworks"].append({"name": framework, "version": version})


def _parse_composer_json(content: str) -> dict[str, Any] | None:
    data = json.loads(content)
    if not isinstance(data, dict):
        return None

    result = _empty_result()
    require = data.get("require") or {}
    if "php" in require:
        result["runtime"] = {"name": "PHP", "version": str(require["php"])}
    for package, version in require.items():
        if package == "php" or package.startswith("ext-"):
            continue
        _add_dependency(result, package, str(version), "php")
    for package, version in (data.get("require-dev") or {}).items():
        _add_dependency(result, package, str(version), "php", dev=True)
    return result


def _parse_package_json(content: str) -> dict[str, Any] | None:
    data = json.loads(content)
    if not isinstance(data, dict):
        return None

    result = _empty_result()
    node = (data.get("engines") or {}).get("node")
    if node:
        result["runtime"] = {"name": "Node.js", "version": str(node)}
    for package, version in (data.get("dependencies") or {}).items():
        _add_dependency(result, package, str(version), "javascript")
    for package, version in (data.get("devDependencies") or {}).items():
        _add_dependency(result, package, str(version), "javascript", dev=True)
    return result


def _split_requirement(requirement: str) -> tuple[str, str] | None:
    requirement = requirement.split("#", 1)[0].split(";", 1)[0].strip()
    if not requirement or requirement.startswith("-"):
        return None
    match = REQUIREMENT_LINE.match(requirement)
    if not match:
        return None
    name = re.sub(r"\[.*\]$", "", match.group(1))
    return name, match.group(2).strip() or "*"


def _parse_pyproject_toml(content: str) -> dict[str, Any] | None:
    data = tomllib.loads(content)
    project = data.get("project") or {}
    poetry = (data.get("tool") or {}).get("poetry") or {}
    if not project and not poetry:
        return None

    result = _empty_result()
    python_version = project.get("requires-python") or (poetry.get("dependencies") or {}).get("python")
    if python_version:
        result["runtime"] = {"name": "Python", "version": str(python_version)}

    for requirement in project.get("dependencies") or []:
        parsed = _split_requirement(requirement)
        if parsed:
            _add_dependency(result, *parsed, "python")
    for extra in (project.get("optional-dependencies") or {}).values():
        for requirement in extra:
            parsed = _split_requirement(requirement)
            if parsed:
                _add_dependency(result, *parsed, "python", dev=True)

    for package, version in (poetry.get("dependencies") or {}).items():
        if package != "python":
            _add_dependency(result, package, str(version), "python")
    return result


def _parse_requirements_txt(content: str) -> dict[str, Any] | None:
    result = _empty_result()
    for line in content.splitlines():
        parsed = _split_requirement(line)
        if parsed:
            _add_dependency(result, *parsed, "python")
    return result if result["dependencies"] else None


def _parse_go_mod(content: str) -> dict[str, Any] | None:
    result = _empty_result()
    in_require = False

    for raw_line in content.splitlines():
        line = raw_line.split("//", 1)[0].strip()
        if line.startswith("go "):
            result["runtime"] = {"name": "Go", "version": line[3:].strip()}
        elif line.startswith("require ("):
            in_require = True
        elif in_require and line == ")":
            in_require = False
        elif in_require or line.startswith("require "):
            parts = line.removeprefix("require ").split()
            if len(parts) >= 2:
                _add_dependency(result, parts[0], parts[1], "go")

    return result if result["runtime"] or result["dependencies"] else None


def _parse_cargo_toml(content: str) -> dict[str, Any] | None:
    data = tomllib.loads(content)
    if "package" not in data:
        return None

    result = _empty_result()
    edition = data["package"].get("edition")
    if edition:
        result["runtime"] = {"name": "Rust", "version": f"edition {edition}"}
    for section, dev in (("dependencies", False), ("dev-dependencies", True)):
        for crate, spec in (data.get(section) or {}).items():
            version = spec.get("version", "*") if isinstance(spec, dict) else str(spec)
            _add_dependency(result, crate, version, "rust", dev=dev)
    return result


def imported_modules(semantics: dict[str, dict[str, Any]]) -> set[str]:
    """Top-level module names imported by the analyzed files."""
    modules: set[str] = set()
    for analysis in semantics.values():
        for name in analysis.get("imports") or []:
            if isinstance(name, str) and name:
                modules.add(name.split(".")[0].lower())
    return modules


def limit_dependencies(dependencies: list[dict[str, Any]], used: set[str]) -> list[dict[str, Any]]:
    """Deduplicate and cap dependencies, keeping ones the changed code imports first."""
    unique = list({dep["name"]: dep for dep in dependencies}.values())

    def is_used(dep: dict[str, Any]) -> bool:
        return dep["name"].lower().replace("-", "_") in used

    main = [d for d in unique if not d.get("dev")]
    dev = [d for d in unique if d.get("dev")]
    main.sort(key=lambda d: not is_used(d))
    dev.sort(key=lambda d: not is_used(d))
    return main[:MAX_MAIN_DEPENDENCIES] + dev[:MAX_DEV_DEPENDENCIES]
