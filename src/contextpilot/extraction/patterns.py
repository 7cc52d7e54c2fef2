"""Heuristics that turn commit messages, conversations and source text into
candidate context.

Everything here is a pure function over strings; file and watcher handling
lives in the extractor.
"""

import re
from pathlib import Path

# Extensions the extractor reads; everything else is ignored
RELEVANT_EXTENSIONS = frozenset({
    ".ts", ".tsx", ".js", ".jsx", ".py", ".java", ".cs", ".cpp", ".c", ".h",
    ".go", ".rs", ".rb", ".php", ".swift", ".kt", ".md", ".txt", ".json",
    ".yaml", ".yml",
})

# Build, dependency and VCS directories never scanned or watched
IGNORED_DIRS = frozenset({
    "node_modules", ".git", "dist", "build", "coverage", "__pycache__",
    "target", "bin", "obj",
})

COMMIT_DECISION_KEYWORDS = (
    "refactor", "architecture", "design", "pattern",
    "chose", "decided", "implemented", "migrated",
)

DOC_MARKERS = ("@param", "@returns", ":param", "Args:", "Returns:", "TODO")

# Comment blocks shorter than this are noise
MIN_COMMENT_LENGTH = 10
MIN_DOC_LENGTH = 50

_DECISION_PATTERNS = (
    re.compile(r"we (?:should|will|decided to|chose to) (.+?)(?:\.|$)", re.IGNORECASE | re.MULTILINE),
    re.compile(r"(?:decision|chose|selected|picked) (.+?)(?:\.|$)", re.IGNORECASE | re.MULTILINE),
    re.compile(r"let's use (.+?)(?:\.|$)", re.IGNORECASE | re.MULTILINE),
)

_FILE_REF = re.compile(r"\b[\w-]+\.(?:ts|js|tsx|jsx|py|java|go|rs)\b")
_CAMEL_CASE = re.compile(r"\b[a-z]+[A-Z]\w+\b")
_SNAKE_CASE = re.compile(r"\b[a-z][a-z0-9]*(?:_[a-z0-9]+)+\b")

_DECLARATION = re.compile(r"\b(?:def|class|function|const|let|var)\s+(\w+)")

_JS_COMMENT = re.compile(r"/\*\*[\s\S]*?\*/|//.*")
_PY_COMMENT = re.compile(r'"""[\s\S]*?"""|#.*')
_PY_CLASS_WITH_BASE = re.compile(r"^\s*class\s+\w+\([^)]+\)\s*:", re.MULTILINE)

_JS_EXTENSIONS = frozenset({".js", ".ts", ".tsx", ".jsx"})


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def is_relevant_path(path: str | Path) -> bool:
    """Whether a path has a relevant extension and sits outside ignored dirs."""
    p = Path(path)
    if p.suffix.lower() not in RELEVANT_EXTENSIONS:
        return False
    return not any(part in IGNORED_DIRS for part in p.parts[:-1])


def is_architectural_decision(message: str) -> bool:
    lowered = message.lower()
    return any(kw in lowered for kw in COMMIT_DECISION_KEYWORDS)


def format_commit_decision(message: str) -> str:
    """Subject line, plus `` - `` and the joined body when there is one."""
    lines = message.split("\n")
    subject = lines[0]
    body = " ".join(lines[1:]).strip()
    return f"{subject} - {body}" if body else subject


def extract_functions_from_diff(diff: str) -> list[str]:
    return _unique(_DECLARATION.findall(diff))


def detect_diff_patterns(diff: str) -> list[str]:
    """Coding patterns visible in a diff, in a fixed order."""
    patterns: list[str] = []
    if "async" in diff and "await" in diff:
        patterns.append("async/await")
    if "useState" in diff or "useEffect" in diff:
        patterns.append("React Hooks")
    if "class" in diff and ("extends" in diff or _PY_CLASS_WITH_BASE.search(diff)):
        patterns.append("OOP")
    if "=>" in diff:
        patterns.append("arrow functions")
    if "try" in diff and ("catch" in diff or "except" in diff):
        patterns.append("error handling")
    return patterns


def extract_decisions(text: str) -> list[str]:
    """Full matched decision phrases, grouped by pattern."""
    decisions: list[str] = []
    for pattern in _DECISION_PATTERNS:
        decisions.extend(m.group(0) for m in pattern.finditer(text))
    return decisions


def extract_code_references(text: str) -> list[str]:
    """File names, camelCase and snake_case identifiers mentioned in text."""
    refs = _FILE_REF.findall(text)
    refs.extend(_CAMEL_CASE.findall(text))
    refs.extend(_SNAKE_CASE.findall(text))
    return _unique(refs)


def extract_comments(content: str, path: str | Path) -> list[str]:
    """Comment blocks for JS/TS and Python sources; empty for other languages."""
    ext = Path(path).suffix.lower()
    if ext in _JS_EXTENSIONS:
        raw = _JS_COMMENT.findall(content)
        cleaned = [re.sub(r"^/\*\*|\*/$", "", c).strip() for c in raw]
    elif ext == ".py":
        raw = _PY_COMMENT.findall(content)
        cleaned = [c.strip('"').lstrip("#").strip() for c in raw]
    else:
        return []
    return [c for c in cleaned if len(c) > MIN_COMMENT_LENGTH]


def is_documentation(comment: str) -> bool:
    return len(comment) > MIN_DOC_LENGTH and any(m in comment for m in DOC_MARKERS)


def extract_function_names(content: str) -> list[str]:
    return _unique(_DECLARATION.findall(content))


def detect_file_patterns(content: str, path: str | Path) -> list[str]:
    """Architectural patterns used by a source file."""
    suffix = Path(path).suffix.lower()
    patterns: list[str] = []
    if "React.Component" in content or "useState" in content:
        patterns.append("React")
    if "express()" in content or "app.listen" in content:
        patterns.append("Express")
    if "interface" in content and suffix in (".ts", ".tsx"):
        patterns.append("TypeScript")
    if "async" in content or "Promise" in content:
        patterns.append("Async Programming")
    if "FastAPI(" in content or "Flask(" in content:
        patterns.append("FastAPI/Flask")
    if "@dataclass" in content:
        patterns.append("Dataclasses")
    return patterns
