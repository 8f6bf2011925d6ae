"""Tests for tree-sitter semantic analysis."""

import pytest

JS_SOURCE = """\
import React from 'react';
import { render } from "./render";

export function App(props) {
  return props;
}

const helper = (a, b = 2) => a + b;

class Store extends Base {
  constructor(state) {
    this.state = state;
  }

  read(key) {
    return this.state[key];
  }
}
"""

TS_SOURCE = """\
import { Injectable } from '@angular/core';

export class UserService extends BaseService<User> implements OnInit, Disposable {
  constructor(private readonly http: HttpClient) {
    super();
  }

  find(id: number, options?: FindOptions): User {
    return this.http.get(id);
  }
}

export function toDto(user: User = defaultUser): Dto {
  return user;
}
"""

PHP_SOURCE = """\
<?php

namespace App\\Services;

use App\\Models\\User;

class UserService extends BaseService implements Loggable
{
    public function __construct(private Repository $repo)
    {
    }

    public function find(int $id, ...$options): ?User
    {
        return $this->repo->find($id);
    }
}

function helper($value = null)
{
    return $value;
}
"""

JAVA_SOURCE = """\
package com.example;

import java.util.List;
import java.util.concurrent.*;

public class OrderService extends BaseService implements Runnable, Closeable {
    public OrderService(Repository repo) {
        this.repo = repo;
    }

    public List<Order> find(String customer, int... ids) {
        return repo.find(customer, ids);
    }

    public void run() {
    }

    public void close() {
    }
}
"""

GO_SOURCE = """\
package server

import (
    "fmt"
    "net/http"
)

func (s *Server) Start(addr string, opts ...Option) error {
    return http.ListenAndServe(addr, nil)
}

type Server struct {
    name string
}

func New(name, version string) *Server {
    fmt.Println(version)
    return &Server{name: name}
}
"""


@pytest.fixture
def analyzer():
    from review_context.semantic import TreeSitterSemanticAnalyzer

    return TreeSitterSemanticAnalyzer()


class TestDetectLanguage:
    """Tests for language detection."""

    @pytest.mark.parametrize(
        ("path", "language"),
        [
            ("auth/login.py", "python"),
            ("stubs/login.pyi", "python"),
            ("web/App.JSX", "javascript"),
            ("web/app.ts", "typescript"),
            ("web/App.tsx", "tsx"),
            ("app/Services/Foo.php", "php"),
            ("src/Main.java", "java"),
            ("cmd/server.go", "go"),
            ("README.md", None),
            ("Makefile", None),
        ],
    )
    def test_detect(self, path, language):
        """Languages are detected from the extension."""
        from review_context.semantic import detect_language

        assert detect_language(path) == language

    def test_unknown_language_rejected(self):
        """Asking for an unsupported analyzer is an error."""
        from review_context.semantic import get_analyzer

        with pytest.raises(ValueError, match="Unsupported language"):
            get_analyzer("cobol")

    def test_analyzers_are_cached(self):
        """One analyzer instance per language."""
        from review_context.semantic import get_analyzer

        assert get_analyzer("python") is get_analyzer("python")


class TestPythonAnalysis:
    """Tests for the Python analyzer."""

    def test_extracts_definitions(self, analyzer, sample_source):
        """Functions, classes, methods and imports are reported with lines."""
        analysis = analyzer.analyze("auth/login.py", sample_source)

        assert analysis["language"] == "python"
        functions = {f["name"]: f for f in analysis["functions"]}
        assert list(functions) == ["hash_password", "authenticate", "get_user"]
        assert functions["get_user"]["line_start"] == 14
        assert functions["get_user"]["line_end"] == 17
        assert functions["authenticate"]["args"] == ["username", "password"]

        assert analysis["classes"] == [
            {
                "name": "Session",
                "line_start": 20,
                "line_end": 25,
                "bases": [],
                "methods": ["__init__", "refresh"],
            }
        ]
        assert [m["name"] for m in analysis["methods"]] == ["__init__", "refresh"]
        assert analysis["methods"][0]["args"] == ["self", "user"]
        assert analysis["methods"][1]["class"] == "Session"
        assert analysis["imports"] == ["hashlib", "database"]

    def test_class_bases(self, analyzer):
        """Base classes are rendered as source, keywords left out."""
        analysis = analyzer.analyze(
            "m.py", "class A(base.Model, Generic[T], metaclass=Meta):\n    pass\n"
        )

        assert analysis["classes"][0]["bases"] == ["base.Model", "Generic[T]"]

    def test_decorated_definitions(self, analyzer):
        """Decorated functions report the line of def and skip splat args."""
        source = '@app.route("/")\ndef index(request, *args, page=1, **kwargs):\n    return page\n'

        analysis = analyzer.analyze("views.py", source)

        assert analysis["functions"] == [
            {"name": "index", "line_start": 2, "line_end": 3, "args": ["request", "page"]}
        ]

    def test_nested_and_aliased_imports(self, analyzer):
        """Imports inside functions count, aliases resolve to the module."""
        source = "import numpy as np\n\ndef load():\n    from .storage import disk\n    return disk\n"

        analysis = analyzer.analyze("loader.py", source)

        assert analysis["imports"] == ["numpy", "storage"]

    def test_syntax_error_returns_none(self, analyzer):
        """Unparseable files yield no analysis."""
        assert analyzer.analyze("bad.py", "def broken(:\n") is None


class TestOtherLanguages:
    """Tests for the JavaScript, TypeScript, PHP, Java and Go analyzers."""

    def test_javascript(self, analyzer):
        """Declarations, assigned arrow functions, classes and ES imports."""
        analysis = analyzer.analyze("web/store.js", JS_SOURCE)

        assert analysis["language"] == "javascript"
        assert [(f["name"], f["args"]) for f in analysis["functions"]] == [
            ("App", ["props"]),
            ("helper", ["a", "b"]),
        ]
        assert analysis["functions"][0]["line_start"] == 4
        assert analysis["classes"][0]["name"] == "Store"
        assert analysis["classes"][0]["bases"] == ["Base"]
        assert analysis["classes"][0]["methods"] == ["constructor", "read"]
        assert analysis["imports"] == ["react", "./render"]

    def test_typescript(self, analyzer):
        """Typed parameters and heritage clauses are understood."""
        analysis = analyzer.analyze("src/user.service.ts", TS_SOURCE)

        assert analysis["language"] == "typescript"
        service = analysis["classes"][0]
        assert service["name"] == "UserService"
        assert service["bases"] == ["BaseService", "OnInit", "Disposable"]
        methods = {m["name"]: m["args"] for m in analysis["methods"]}
        assert methods == {"constructor": ["http"], "find": ["id", "options"]}
        assert analysis["functions"][0]["name"] == "toDto"
        assert analysis["functions"][0]["args"] == ["user"]
        assert analysis["imports"] == ["@angular/core"]

    def test_php(self, analyzer):
        """Classes, methods, free functions and use imports."""
        analysis = analyzer.analyze("app/Services/UserService.php", PHP_SOURCE)

        assert analysis["language"] == "php"
        service = analysis["classes"][0]
        assert service["name"] == "UserService"
        assert service["bases"] == ["BaseService", "Loggable"]
        assert (service["line_start"], service["line_end"]) == (7, 17)
        methods = {m["name"]: m for m in analysis["methods"]}
        assert methods["__construct"]["args"] == ["repo"]
        assert methods["find"]["args"] == ["id", "options"]
        assert (methods["find"]["line_start"], methods["find"]["line_end"]) == (13, 16)
        assert analysis["functions"][0]["name"] == "helper"
        assert analysis["functions"][0]["args"] == ["value"]
        assert analysis["imports"] == ["App\\Models\\User"]

    def test_java(self, analyzer):
        """Types with constructors and methods, and imports."""
        analysis = analyzer.analyze("src/OrderService.java", JAVA_SOURCE)

        assert analysis["language"] == "java"
        assert analysis["functions"] == []
        service = analysis["classes"][0]
        assert service["bases"] == ["BaseService", "Runnable", "Closeable"]
        assert service["methods"] == ["OrderService", "find", "run", "close"]
        assert analysis["methods"][1]["args"] == ["customer", "ids"]
        assert analysis["imports"] == ["java.util.List", "java.util.concurrent.*"]

    def test_go(self, analyzer):
        """Methods attach to their receiver type even above its declaration."""
        analysis = analyzer.analyze("server/server.go", GO_SOURCE)

        assert analysis["language"] == "go"
        assert analysis["classes"][0]["name"] == "Server"
        assert analysis["classes"][0]["methods"] == ["Start"]
        assert analysis["methods"][0]["class"] == "Server"
        assert analysis["methods"][0]["args"] == ["addr", "opts"]
        assert analysis["functions"][0]["name"] == "New"
        assert analysis["functions"][0]["args"] == ["name", "version"]
        assert analysis["imports"] == ["fmt", "net/http"]

    def test_unsupported_file(self, analyzer):
        """Files without an analyzer are not supported."""
        assert not analyzer.supports("notes.txt")
        assert analyzer.analyze("notes.txt", "hello") is None
