#!/usr/bin/env python3
"""Transport isolation validation script.

Enforces the architectural rule that the dispatch core (managers, strategy,
models, templates and repositories) never talks to a concrete transport.
SMTP, Twilio, the push gateway client and aio-pika may only be imported from
notifications/channels/ and broker/rabbitmq.py; the core reaches them through
the Channel base class and the QueueProvider protocol.

Exit codes:
    0: No violations found (clean)
    1: Violations detected (architectural rule broken)
"""

from __future__ import annotations

import re
import sys
from pathlib import Path
from typing import Final

# ANSI color codes for terminal output
RED: Final[str] = "\033[91m"
GREEN: Final[str] = "\033[92m"
YELLOW: Final[str] = "\033[93m"
RESET: Final[str] = "\033[0m"

# Directories that must stay transport-agnostic
PROTECTED_DIRS: Final[tuple[str, ...]] = (
    "notifications/base",
    "notifications/managers",
    "notifications/models",
    "notifications/strategy",
    "notifications/templates",
    "repositories",
)

TRANSPORT_LIBRARIES: Final[tuple[str, ...]] = ("aiosmtplib", "twilio", "aio_pika", "aiormq", "httpx")

LIBRARY_IMPORT_PATTERN: Final[re.Pattern[str]] = re.compile(
    rf"^\s*(?:from|import)\s+(?:{'|'.join(TRANSPORT_LIBRARIES)})\b"
)

# Concrete channel modules and the RabbitMQ provider; package-level imports are fine
CONCRETE_MODULE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^\s*(?:from|import)\s+qa_notify\.(?:notifications\.channels\.\w+|broker\.rabbitmq)\b"
)


def check_file(file_path: Path) -> list[tuple[int, str]]:
    """Check a single Python file for transport imports.

    Args:
        file_path: Path to the Python file to check.

    Returns:
        List of (line_number, violation_description) tuples.
    """
    violations: list[tuple[int, str]] = []

    try:
        lines = file_path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        print(f"{YELLOW}Warning: Could not read {file_path}: {e}{RESET}", file=sys.stderr)
        return violations

    for line_num, line in enumerate(lines, start=1):
        if LIBRARY_IMPORT_PATTERN.search(line):
            violations.append((line_num, f"Transport library import: {line.strip()}"))
        if CONCRETE_MODULE_PATTERN.search(line):
            violations.append((line_num, f"Concrete transport module import: {line.strip()}"))

    return violations


def scan_directory(base_path: Path, protected_dir: str) -> dict[Path, list[tuple[int, str]]]:
    """Scan one protected directory.

    Args:
        base_path: Root path of the qa_notify package.
        protected_dir: Directory relative to the package root.

    Returns:
        Dictionary mapping file paths to their violations.
    """
    dir_path = base_path / protected_dir
    if not dir_path.exists():
        print(f"{YELLOW}Warning: Protected directory {dir_path} does not exist{RESET}", file=sys.stderr)
        return {}

    violations_by_file: dict[Path, list[tuple[int, str]]] = {}
    for py_file in dir_path.rglob("*.py"):
        if "__pycache__" in py_file.parts:
            continue
        file_violations = check_file(py_file)
        if file_violations:
            violations_by_file[py_file] = file_violations

    return violations_by_file


def main() -> int:
    """Main entry point for the transport isolation check.

    Returns:
        Exit code: 0 if no violations, 1 if violations found.
    """
    project_root = Path(__file__).parent.parent
    src_path = project_root / "src" / "qa_notify"

    if not src_path.exists():
        print(f"{RED}Error: Could not find src/qa_notify directory{RESET}", file=sys.stderr)
        return 1

    print("Checking transport isolation of the dispatch core...")
    print(f"Scanning: {src_path}\n")

    all_violations: dict[Path, list[tuple[int, str]]] = {}
    for protected_dir in PROTECTED_DIRS:
        all_violations.update(scan_directory(src_path, protected_dir))

    if not all_violations:
        print(f"{GREEN}✓ No transport isolation violations found!{RESET}")
        return 0

    total_violations = sum(len(v) for v in all_violations.values())
    print(f"{RED}✗ Found {total_violations} transport isolation violations:{RESET}\n")

    for file_path, violations in sorted(all_violations.items()):
        try:
            rel_path = file_path.relative_to(project_root)
        except ValueError:
            rel_path = file_path

        print(f"{RED}{rel_path}{RESET}")
        for line_num, description in violations:
            print(f"  {line_num}: {description}")
        print()

    print(f"{RED}Transport isolation check failed!{RESET}")
    print(
        "\nThe dispatch core must only depend on Channel and QueueProvider."
        "\nMove transport code to notifications/channels/ or broker/."
    )
    return 1


if __name__ == "__main__":
    sys.exit(main())
