"""Structural tests for route code.

Verifies that routes follow the service/route separation rule:
- Routes may not contain domain logic or raw DB access
- Routes may only import from allowed modules
"""

import ast
from pathlib import Path

import pytest

ALLOWED_ORM_NAMES = {"Session", "sessionmaker"}


def get_routes_dir() -> Path:
    """Get the path to the routes directory."""
    return Path(__file__).parent.parent / "restip" / "api" / "routes"


def get_all_route_files() -> list[Path]:
    """Get all Python files in the routes directory."""
    routes_dir = get_routes_dir()
    if not routes_dir.exists():
        return []
    return [f for f in routes_dir.iterdir() if f.suffix == ".py" and f.name != "__init__.py"]


@pytest.fixture
def route_files() -> list[Path]:
    files = get_all_route_files()
    assert len(files) > 0, "No route files found to test"
    return files


class TestForbiddenImports:
    """Tests that route files don't import forbidden modules."""

    def test_no_direct_sqlalchemy_imports(self, route_files: list[Path]):
        """Only session types may come from SQLAlchemy, for annotations."""
        for route_file in route_files:
            tree = ast.parse(route_file.read_text())

            for node in ast.walk(tree):
                if isinstance(node, ast.Import):
                    for alias in node.names:
                        if alias.name.startswith("sqlalchemy"):
                            pytest.fail(f"{route_file.name}: Forbidden import '{alias.name}'")

                elif isinstance(node, ast.ImportFrom) and node.module:
                    if node.module == "sqlalchemy.orm":
                        for alias in node.names:
                            if alias.name not in ALLOWED_ORM_NAMES:
                                pytest.fail(
                                    f"{route_file.name}: Forbidden import "
                                    f"'from sqlalchemy.orm import {alias.name}'"
                                )
                    elif node.module.startswith("sqlalchemy"):
                        pytest.fail(f"{route_file.name}: Forbidden import from '{node.module}'")

    def test_no_direct_db_imports(self, route_files: list[Path]):
        """Sessions come from restip.api.deps, never from restip.db."""
        for route_file in route_files:
            tree = ast.parse(route_file.read_text())

            for node in ast.walk(tree):
                if isinstance(node, ast.ImportFrom) and node.module:
                    if node.module.startswith("restip.db"):
                        pytest.fail(
                            f"{route_file.name}: Forbidden import from '{node.module}'. "
                            "Use restip.api.deps."
                        )

    def test_no_raw_db_operations_in_routes(self, route_files: list[Path]):
        """Route files must not call db.execute, db.scalar, etc."""
        for route_file in route_files:
            tree = ast.parse(route_file.read_text())

            for node in ast.walk(tree):
                if (
                    isinstance(node, ast.Call)
                    and isinstance(node.func, ast.Attribute)
                    and node.func.attr in ("execute", "scalar", "query")
                    and isinstance(node.func.value, ast.Name)
                    and node.func.value.id in ("db", "session")
                ):
                    pytest.fail(
                        f"{route_file.name}: Forbidden call "
                        f"'{node.func.value.id}.{node.func.attr}()'"
                    )

    def test_message_routes_use_services(self):
        source = (get_routes_dir() / "messages.py").read_text()
        assert "restip.services" in source


class TestRouteFileStructure:
    """Tests for overall route file structure."""

    def test_all_routes_have_router(self, route_files: list[Path]):
        """All route files must define a 'router' object."""
        for route_file in route_files:
            tree = ast.parse(route_file.read_text())

            has_router = any(
                isinstance(node, ast.Assign)
                and any(isinstance(t, ast.Name) and t.id == "router" for t in node.targets)
                for node in ast.walk(tree)
            )

            assert has_router, f"{route_file.name} must define a 'router' object"

    def test_route_handlers_return_dict_or_response(self, route_files: list[Path]):
        """Handlers return plain data for the encoder, or a bare Response."""
        for route_file in route_files:
            tree = ast.parse(route_file.read_text())

            for node in ast.walk(tree):
                if not isinstance(node, ast.FunctionDef | ast.AsyncFunctionDef):
                    continue

                is_route_handler = any(
                    isinstance(d, ast.Call)
                    and isinstance(d.func, ast.Attribute)
                    and isinstance(d.func.value, ast.Name)
                    and d.func.value.id == "router"
                    for d in node.decorator_list
                )

                if is_route_handler:
                    assert isinstance(node.returns, ast.Name), (
                        f"{route_file.name}:{node.name} needs a return annotation"
                    )
                    assert node.returns.id in ("dict", "Response"), (
                        f"{route_file.name}:{node.name} should return dict or Response"
                    )
