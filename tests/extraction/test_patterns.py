"""Tests for the extraction heuristics."""

import pytest

from contextpilot.extraction import patterns


class TestPaths:
    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("src/auth.py", True),
            ("README.md", True),
            ("logo.png", False),
            ("node_modules/pkg/index.js", False),
            ("project/.git/config.json", False),
        ],
    )
    def test_is_relevant_path(self, path: str, expected: bool) -> None:
        assert patterns.is_relevant_path(path) is expected


class TestCommitHeuristics:
    def test_architectural_keywords(self) -> None:
        assert patterns.is_architectural_decision("Refactor the session layer")
        assert patterns.is_architectural_decision("Migrated to Postgres")
        assert not patterns.is_architectural_decision("Fix typo in README")

    def test_format_with_body(self) -> None:
        message = "Refactor auth\n\nUse JWT tokens\nfor sessions"
        assert patterns.format_commit_decision(message) == "Refactor auth - Use JWT tokens for sessions"

    def test_format_subject_only(self) -> None:
        assert patterns.format_commit_decision("Refactor auth") == "Refactor auth"

    def test_functions_from_diff(self) -> None:
        diff = "+def load_user(id):\n+class Session:\n+const token = 1\n+def load_user(x):"
        assert patterns.extract_functions_from_diff(diff) == ["load_user", "Session", "token"]

    def test_diff_patterns_in_order(self) -> None:
        diff = "async function f() { await g(); }\nconst h = () => 1;\ntry { f() } catch (e) {}"
        assert patterns.detect_diff_patterns(diff) == [
            "async/await",
            "arrow functions",
            "error handling",
        ]

    def test_python_class_with_base_is_oop(self) -> None:
        assert "OOP" in patterns.detect_diff_patterns("class Repo(Base):\n    pass")


class TestConversationHeuristics:
    def test_extract_decisions(self) -> None:
        text = "We decided to use PostgreSQL. Let's use Redis for caching."
        assert patterns.extract_decisions(text) == [
            "We decided to use PostgreSQL.",
            "Let's use Redis for caching.",
        ]

    def test_no_decisions(self) -> None:
        assert patterns.extract_decisions("The build is green.") == []

    def test_code_references(self) -> None:
        text = "Update auth.ts and call getUserToken via parse_token, then auth.ts again"
        assert patterns.extract_code_references(text) == ["auth.ts", "getUserToken", "parse_token"]


class TestFileHeuristics:
    def test_python_comments(self) -> None:
        content = '"""Module docstring long enough."""\n# short\n# this is a longer comment\n'
        assert patterns.extract_comments(content, "m.py") == [
            "Module docstring long enough.",
            "this is a longer comment",
        ]

    def test_js_comments(self) -> None:
        content = "/** Creates a session for the user */\n// tiny\nconst a = 1;"
        assert patterns.extract_comments(content, "a.ts") == ["Creates a session for the user"]

    def test_unsupported_language_has_no_comments(self) -> None:
        assert patterns.extract_comments("// a long comment here", "main.go") == []

    def test_is_documentation(self) -> None:
        assert patterns.is_documentation("Args: token - the bearer token that is checked before use")
        assert not patterns.is_documentation("Args: short")
        assert not patterns.is_documentation("x" * 80)

    def test_file_patterns(self) -> None:
        content = "interface User {}\nasync function load() {}"
        assert patterns.detect_file_patterns(content, "user.ts") == ["TypeScript", "Async Programming"]
        assert patterns.detect_file_patterns(content, "user.js") == ["Async Programming"]

    def test_python_file_patterns(self) -> None:
        content = "from fastapi import FastAPI\napp = FastAPI()\n@dataclass\nclass A: ..."
        assert patterns.detect_file_patterns(content, "main.py") == ["FastAPI/Flask", "Dataclasses"]
