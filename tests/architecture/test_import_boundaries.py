"""
Import-boundary enforcement.

1. Engine purity      -- mfg_engines/** may import only the kernel's domain
                         types and exceptions; no DB, ORM, services or config.
2. Engine no-impure   -- mfg_engines/** may not read the wall clock or the
                         environment.
3. Kernel direction   -- mfg_kernel/** never imports an outer layer, and
                         mfg_kernel/domain/** never imports SQLAlchemy.
4. Module direction   -- mfg_modules/** never imports mfg_services.

All scanning is done via AST -- these tests are read-only.
"""

import ast
import glob
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _python_files(root: str) -> list[str]:
    """Return all .py files under *root*, sorted for deterministic order."""
    return sorted(glob.glob(f"{PROJECT_ROOT / root}/**/*.py", recursive=True))


def _extract_imports(filepath: str) -> list[tuple[int, str]]:
    """Return (line_number, module_string) for every import in *filepath*."""
    try:
        source = Path(filepath).read_text()
        tree = ast.parse(source, filename=filepath)
    except (SyntaxError, UnicodeDecodeError):
        return []

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


def _matches_any(module: str, prefixes: tuple[str, ...]) -> bool:
    """True if *module* equals or is a child of any prefix."""
    for prefix in prefixes:
        if module == prefix or module.startswith(f"{prefix}."):
            return True
    return False


def _extract_attribute_calls(filepath: str) -> list[tuple[int, str]]:
    """Return (line_number, 'receiver.attr') for two-level attribute references."""
    try:
        source = Path(filepath).read_text()
        tree = ast.parse(source, filename=filepath)
    except (SyntaxError, UnicodeDecodeError):
        return []

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Attribute) and isinstance(node.value, ast.Name):
            results.append((node.lineno, f"{node.value.id}.{node.attr}"))
    return results


def _relative(filepath: str) -> str:
    return str(Path(filepath).relative_to(PROJECT_ROOT))


def _import_violations(root: str, forbidden: tuple[str, ...]) -> list[str]:
    violations: list[str] = []
    for filepath in _python_files(root):
        for lineno, module in _extract_imports(filepath):
            if _matches_any(module, forbidden):
                violations.append(f"  {_relative(filepath)}:{lineno} imports '{module}'")
    return violations


# ---------------------------------------------------------------------------
# 1. TestEnginePurity
# ---------------------------------------------------------------------------

class TestEnginePurity:
    """mfg_engines/** computes over plain values only."""

    FORBIDDEN = (
        "sqlalchemy",
        "psycopg2",
        "mfg_kernel.models",
        "mfg_kernel.db",
        "mfg_kernel.services",
        "mfg_kernel.selectors",
        "mfg_modules",
        "mfg_services",
        "mfg_config",
    )

    def test_engines_scanned(self):
        assert _python_files("mfg_engines"), "no engine sources found"

    def test_engines_do_not_import_infrastructure(self):
        violations = _import_violations("mfg_engines", self.FORBIDDEN)

        assert not violations, (
            "Engine purity violation -- mfg_engines/** must not import "
            "infrastructure or outer layers:\n" + "\n".join(violations)
        )

    def test_engines_only_reach_kernel_domain_and_exceptions(self):
        allowed = ("mfg_kernel.domain", "mfg_kernel.exceptions")
        violations: list[str] = []

        for filepath in _python_files("mfg_engines"):
            for lineno, module in _extract_imports(filepath):
                if _matches_any(module, ("mfg_kernel",)) and not _matches_any(module, allowed):
                    violations.append(f"  {_relative(filepath)}:{lineno} imports '{module}'")

        assert not violations, (
            "Engines may only use mfg_kernel.domain and mfg_kernel.exceptions:\n"
            + "\n".join(violations)
        )


# ---------------------------------------------------------------------------
# 2. TestEngineNoImpureCalls
# ---------------------------------------------------------------------------

class TestEngineNoImpureCalls:
    """Engines take time and settings as arguments."""

    FORBIDDEN_CALLS = {
        "datetime.now",
        "datetime.utcnow",
        "date.today",
        "time.time",
        "os.environ",
        "os.getenv",
    }

    def test_no_clock_or_environment_access(self):
        violations: list[str] = []

        for filepath in _python_files("mfg_engines"):
            for lineno, call in _extract_attribute_calls(filepath):
                if call in self.FORBIDDEN_CALLS:
                    violations.append(f"  {_relative(filepath)}:{lineno} uses '{call}'")

        assert not violations, (
            "Engine impurity -- mfg_engines/** must not read the clock or "
            "environment:\n" + "\n".join(violations)
        )


# ---------------------------------------------------------------------------
# 3. TestKernelDirection
# ---------------------------------------------------------------------------

class TestKernelDirection:

    def test_kernel_does_not_import_outer_layers(self):
        violations = _import_violations(
            "mfg_kernel", ("mfg_engines", "mfg_modules", "mfg_services", "mfg_config"),
        )

        assert not violations, (
            "Kernel boundary violation -- mfg_kernel/** must not import "
            "upward packages:\n" + "\n".join(violations)
        )

    def test_domain_is_persistence_free(self):
        violations = _import_violations("mfg_kernel/domain", ("sqlalchemy", "psycopg2"))

        assert not violations, (
            "mfg_kernel/domain/** must stay free of persistence imports:\n"
            + "\n".join(violations)
        )


# ---------------------------------------------------------------------------
# 4. TestModuleDirection
# ---------------------------------------------------------------------------

class TestModuleDirection:

    def test_modules_do_not_import_services(self):
        violations = _import_violations("mfg_modules", ("mfg_services",))

        assert not violations, (
            "mfg_modules/** must not import mfg_services:\n" + "\n".join(violations)
        )

    def test_config_does_not_import_modules_or_services(self):
        violations = _import_violations("mfg_config", ("mfg_modules", "mfg_services", "mfg_engines"))

        assert not violations, (
            "mfg_config/** must not import outer layers:\n" + "\n".join(violations)
        )
