#!/usr/bin/env python3
"""CI Check: Logging Invariant Enforcement.

This script enforces the git_graph logging invariants:
1. No print() in library code (the CLI entry point and self-test excepted)
2. No bare except: blocks without logging
3. No module-level structlog.get_logger(); components take an injected
   logger and bind it with git_graph._logging.get_component_logger()

Usage:
    python scripts/check_logging_invariants.py
    python scripts/check_logging_invariants.py --root /path/to/checkout -v

Exit codes:
    0: All checks pass
    1: Violations found
"""

import argparse
import ast
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

# Directories to check
CHECK_DIRS = [
    "git_graph",
]

# Files/patterns to exclude
EXCLUDE_PATTERNS = [
    "**/tests/**",
    "**/test_*.py",
    "**/__pycache__/**",
]

# Files that may print (user-facing command-line output)
PRINT_ALLOWED_FILES = {
    "git_graph/__main__.py",
    "git_graph/selftest.py",
}

LOG_METHODS = ("debug", "info", "warning", "error", "critical", "exception")


@dataclass
class Violation:
    """A single logging invariant violation."""
    file: Path
    line: int
    rule: str
    message: str
    snippet: str

    def __str__(self) -> str:
        return f"{self.file}:{self.line}: [{self.rule}] {self.message}\n  {self.snippet}"


class LoggingInvariantChecker:
    """AST-based checker for logging invariants."""

    def __init__(self, filepath: Path, root: Path):
        self.filepath = filepath
        self.relative_path = filepath.relative_to(root).as_posix()
        self.violations: List[Violation] = []
        self.source_lines: List[str] = []

    def check(self) -> List[Violation]:
        """Run all checks on the file."""
        try:
            content = self.filepath.read_text(encoding="utf-8")
            tree = ast.parse(content, filename=str(self.filepath))
        except SyntaxError as e:
            self.violations.append(Violation(self.filepath, e.lineno or 0, "SYNTAX", str(e), ""))
            return self.violations
        self.source_lines = content.split("\n")

        if self.relative_path not in PRINT_ALLOWED_FILES:
            self._check_print_calls(tree)
        self._check_bare_except(tree)
        self._check_structlog_global(tree)

        return self.violations

    def _check_print_calls(self, tree: ast.AST) -> None:
        for node in ast.walk(tree):
            if isinstance(node, ast.Call) and isinstance(node.func, ast.Name) and node.func.id == "print":
                self._add(node.lineno, "NO_PRINT", "print() in library code - use the component logger")

    def _check_bare_except(self, tree: ast.AST) -> None:
        for node in ast.walk(tree):
            if isinstance(node, ast.ExceptHandler) and node.type is None:
                if not self._has_logging_in_body(node.body):
                    self._add(
                        node.lineno,
                        "BARE_EXCEPT",
                        "Bare except: without logging - specify exception type and log",
                    )

    def _has_logging_in_body(self, body: List[ast.stmt]) -> bool:
        for stmt in body:
            for node in ast.walk(stmt):
                if (
                    isinstance(node, ast.Call)
                    and isinstance(node.func, ast.Attribute)
                    and node.func.attr in LOG_METHODS
                ):
                    return True
        return False

    def _check_structlog_global(self, tree: ast.Module) -> None:
        # Only module-level assignments; function bodies may build loggers.
        for stmt in tree.body:
            if not isinstance(stmt, (ast.Assign, ast.AnnAssign)) or stmt.value is None:
                continue
            source = ast.get_source_segment("\n".join(self.source_lines), stmt.value) or ""
            if re.match(r"structlog\.get_logger\(", source):
                self._add(
                    stmt.lineno,
                    "GLOBAL_STRUCTLOG",
                    "Module-level structlog.get_logger() - take an injected logger instead",
                )

    def _add(self, lineno: int, rule: str, message: str) -> None:
        snippet = self.source_lines[lineno - 1].strip() if 0 < lineno <= len(self.source_lines) else ""
        self.violations.append(Violation(self.filepath, lineno, rule, message, snippet))


def should_check_file(filepath: Path, exclude_patterns: List[str]) -> bool:
    """Determine if a file should be checked."""
    if filepath.suffix != ".py":
        return False
    return not any(filepath.match(pattern) for pattern in exclude_patterns)


def get_files_to_check(root: Path, check_dirs: List[str], exclude_patterns: List[str]) -> List[Path]:
    """Get all Python files to check."""
    files = []
    for dir_name in check_dirs:
        dir_path = root / dir_name
        if not dir_path.exists():
            continue
        for filepath in dir_path.rglob("*.py"):
            if should_check_file(filepath.relative_to(root), exclude_patterns):
                files.append(filepath)
    return sorted(files)


def check_tree(root: Path) -> List[Violation]:
    violations: List[Violation] = []
    for filepath in get_files_to_check(root, CHECK_DIRS, EXCLUDE_PATTERNS):
        violations.extend(LoggingInvariantChecker(filepath, root).check())
    return violations


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Check logging invariants")
    parser.add_argument("--root", type=Path, default=Path(__file__).resolve().parent.parent)
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    args = parser.parse_args(argv)

    print("Checking logging invariants...")
    print(f"Directories: {', '.join(CHECK_DIRS)}")

    violations = check_tree(args.root)
    if violations:
        print(f"\nFAILED: {len(violations)} logging invariant violation(s) found")
        for v in violations if args.verbose else violations[:5]:
            print(f"  {v}")
        return 1

    print("\nPASSED: All logging invariants satisfied")
    return 0


if __name__ == "__main__":
    sys.exit(main())
