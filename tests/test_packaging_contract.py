#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Tests for package layering and version management contracts.
"""

from pathlib import Path

import pytest

from asynccall import __version__ as public_version
from asynccall._version import __version__ as internal_version


PROJECT_ROOT = Path(__file__).resolve().parents[1]
PYPROJECT_PATH = PROJECT_ROOT / "pyproject.toml"


def _load_pyproject() -> dict:
    try:
        import tomllib  # Python 3.11+
    except ModuleNotFoundError:  # pragma: no cover
        tomllib = pytest.importorskip("tomli")

    return tomllib.loads(PYPROJECT_PATH.read_text(encoding="utf-8"))


def test_version_is_single_sourced_via_version_module():
    pyproject = _load_pyproject()
    project = pyproject["project"]

    assert project.get("dynamic") == ["version"]
    assert (
        pyproject["tool"]["setuptools"]["dynamic"]["version"]["attr"]
        == "asynccall._version.__version__"
    )
    assert public_version == internal_version


def test_core_dependencies_are_grpc_and_rich_only():
    pyproject = _load_pyproject()
    deps = "\n".join(pyproject["project"]["dependencies"]).lower()

    assert "grpcio" in deps
    assert "rich" in deps
    assert "protobuf" not in deps
    assert "grpcio-tools" not in deps


def test_uv_default_groups_cover_dev_and_test():
    pyproject = _load_pyproject()
    groups = pyproject["dependency-groups"]
    default_groups = pyproject["tool"]["uv"]["default-groups"]

    assert "dev" in groups
    assert "test" in groups
    assert "dev" in default_groups
    assert "test" in default_groups


def test_public_exports_resolve():
    import asynccall

    for name in asynccall.__all__:
        assert getattr(asynccall, name) is not None
