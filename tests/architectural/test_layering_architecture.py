"""Architectural tests for the questionnaire engine layering.

All checks use static filesystem/AST inspection to avoid import-time side
effects.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[2]
PKG_DIR = PROJECT_ROOT / "questionnaire_engine"
ROUTES_DIR = PKG_DIR / "routes"
LOGIC_DIR = PKG_DIR / "logic"
MODELS_DIR = PKG_DIR / "models"
DB_DIR = PKG_DIR / "db"


@dataclass
class ParsedModule:
    path: Path
    tree: ast.AST


def parse_module(path: Path) -> ParsedModule:
    try:
        return ParsedModule(path=path, tree=ast.parse(path.read_text(encoding="utf-8"), filename=str(path)))
    except (OSError, SyntaxError) as exc:  # pragma: no cover - explicit failure in test
        pytest.fail(f"Failed to parse {path}: {exc}")


def py_files_under(*roots: Path) -> list[Path]:
    files: list[Path] = []
    for root in roots:
        for p in root.rglob("*.py"):
            if "__pycache__" not in p.parts:
                files.append(p)
    return files


def imported_modules(parsed: ParsedModule) -> set[str]:
    names: set[str] = set()
    for node in ast.walk(parsed.tree):
        if isinstance(node, ast.Import):
            names.update(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom) and node.module:
            names.add(node.module)
            names.update(f"{node.module}.{alias.name}" for alias in node.names)
    return names


def _imports_any(parsed: ParsedModule, prefixes: tuple[str, ...]) -> Optional[str]:
    for name in sorted(imported_modules(parsed)):
        if name.startswith(prefixes):
            return name
    return None


def test_routes_do_not_touch_the_database_directly() -> None:
    for path in py_files_under(ROUTES_DIR):
        hit = _imports_any(parse_module(path), ("sqlalchemy", "questionnaire_engine.db", "questionnaire_engine.logic.repository_"))
        assert hit is None, f"{path.name} imports {hit}"


@pytest.mark.parametrize("module", ["composition.py", "presentation_planner.py", "option_codec.py"])
def test_pure_components_perform_no_io(module: str) -> None:
    parsed = parse_module(LOGIC_DIR / module)
    hit = _imports_any(
        parsed,
        ("sqlalchemy", "questionnaire_engine.db", "questionnaire_engine.logic.repository_", "fastapi", "os", "pathlib"),
    )
    assert hit is None, f"{module} imports {hit}"


def test_models_are_free_of_transport_and_storage() -> None:
    for path in py_files_under(MODELS_DIR):
        hit = _imports_any(parse_module(path), ("sqlalchemy", "fastapi", "questionnaire_engine.logic", "questionnaire_engine.db"))
        assert hit is None, f"{path.name} imports {hit}"


def test_core_logic_never_reads_the_request_context() -> None:
    for path in py_files_under(LOGIC_DIR):
        hit = _imports_any(parse_module(path), ("fastapi", "starlette", "questionnaire_engine.http"))
        assert hit is None, f"{path.name} imports {hit}"


def test_only_repositories_and_db_layer_issue_sql() -> None:
    allowed = {p for p in LOGIC_DIR.glob("repository_*.py")} | set(py_files_under(DB_DIR))
    for path in py_files_under(PKG_DIR):
        if path in allowed or path.name == "main.py":
            continue
        hit = _imports_any(parse_module(path), ("sqlalchemy.text", "sqlalchemy.sql"))
        assert hit is None, f"{path.relative_to(PKG_DIR)} builds SQL via {hit}"


def test_builder_mutations_run_inside_write_transactions() -> None:
    parsed = parse_module(LOGIC_DIR / "builder_service.py")
    public = [
        node
        for node in parsed.tree.body  # type: ignore[attr-defined]
        if isinstance(node, ast.FunctionDef) and not node.name.startswith("_")
    ]
    assert public, "builder_service defines no operations"
    for func in public:
        uses_tx = any(
            isinstance(item, ast.withitem)
            and isinstance(item.context_expr, ast.Call)
            and getattr(item.context_expr.func, "id", None) == "write_transaction"
            for node in ast.walk(func)
            if isinstance(node, ast.With)
            for item in node.items
        )
        assert uses_tx, f"{func.name} does not open write_transaction"


def test_every_dialect_ships_the_same_migrations() -> None:
    sqlite = sorted(p.name for p in (DB_DIR / "migrations" / "sqlite").glob("*.sql"))
    postgres = sorted(p.name for p in (DB_DIR / "migrations" / "postgresql").glob("*.sql"))
    assert sqlite and sqlite == postgres


def test_every_engine_error_has_an_http_mapping() -> None:
    errors = parse_module(PKG_DIR / "errors.py")
    error_classes = {
        node.name
        for node in errors.tree.body  # type: ignore[attr-defined]
        if isinstance(node, ast.ClassDef) and node.name != "EngineError"
    }
    problem = parse_module(PKG_DIR / "http" / "problem.py")
    mapping = next(
        node.value
        for node in problem.tree.body  # type: ignore[attr-defined]
        if isinstance(node, ast.Assign) and any(getattr(t, "id", None) == "ERROR_STATUS" for t in node.targets)
    )
    mapped = {key.id for key in mapping.keys if isinstance(key, ast.Name)}  # type: ignore[attr-defined]
    assert error_classes == mapped
