"""Shared pytest fixtures for the create-fs-app test suite.

Provides reusable fixtures for:
- Isolated ``Settings`` (cache and presets under a temp home)
- A ``ProjectConfig`` factory
- Mock subprocess helpers
- An on-disk template tree and a real local git repository holding it
"""

from __future__ import annotations

import json
import shutil
import subprocess
import textwrap
from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from create_fs_app.config import Settings
from create_fs_app.models import ProjectConfig
from create_fs_app.utils import set_verbose


@pytest.fixture(autouse=True)
def _quiet_verbose():
    """Reset the module-level verbose flag between tests."""
    set_verbose(False)
    yield
    set_verbose(False)


# ---------------------------------------------------------------------------
# Settings & configuration
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings rooted in a temp home so no test touches ~/.create-fs-app."""
    return Settings(
        home_dir=tmp_path / "home",
        template_base_url="https://github.com/test-org",
    )


@pytest.fixture
def make_config() -> Callable[..., ProjectConfig]:
    """Factory for ``ProjectConfig`` with a catalog-backed default stack.

    Usage:
        def test_something(make_config):
            config = make_config(frontend="react", orm=None)
    """
    def _make(name: str = "my-app", **overrides: Any) -> ProjectConfig:
        options: dict[str, Any] = {
            "monorepo": "turborepo",
            "frontend": "next.js",
            "backend": "nest.js",
            "database": "postgresql",
            "orm": "prisma",
        }
        options.update(overrides)
        return ProjectConfig.from_options(name, **options)

    return _make


# ---------------------------------------------------------------------------
# Mock subprocess
# ---------------------------------------------------------------------------

def make_process(returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"") -> MagicMock:
    """Build a fake ``asyncio.subprocess.Process``."""
    process = MagicMock()
    process.returncode = returncode
    process.communicate = AsyncMock(return_value=(stdout, stderr))
    process.wait = AsyncMock(return_value=returncode)
    process.kill = MagicMock()
    return process


@pytest.fixture
def mock_subprocess():
    """Patch ``asyncio.create_subprocess_exec`` with a successful process.

    Usage:
        def test_cmd(mock_subprocess):
            with mock_subprocess as exec_mock:
                ...
                exec_mock.assert_called_once()
    """
    return patch(
        "asyncio.create_subprocess_exec",
        new=AsyncMock(return_value=make_process()),
    )


# ---------------------------------------------------------------------------
# Template trees
# ---------------------------------------------------------------------------

def write_template(root: Path) -> Path:
    """Populate *root* with a small monorepo template using placeholder tokens."""
    files = {
        "package.json": json.dumps(
            {
                "name": "template",
                "private": True,
                "scripts": {"build": "turbo run build", "dev": "turbo run dev"},
                "devDependencies": {"turbo": "^2.0.0"},
            },
            indent=2,
        ),
        "apps/frontend/package.json": json.dumps({"name": "template-frontend"}, indent=2),
        "apps/backend/package.json": json.dumps({"name": "template-backend"}, indent=2),
        "apps/backend/.env.example": "PORT=3001\nDATABASE_URL=changeme\n",
        "apps/backend/src/main.ts": 'console.log("{{PROJECT_NAME}} on {{BACKEND_FRAMEWORK}}");\n',
        "apps/frontend/src/App.tsx": "export const title = '{{PROJECT_NAME}}';\n",
        "README.md": "Template for {{FRONTEND_FRAMEWORK}} with {{DATABASE}}.\n",
        "tsconfig.json": json.dumps({"compilerOptions": {"strict": True}}),
        "docker-compose.yml": textwrap.dedent("""\
            services:
              db:
                image: postgres:16
                environment:
                  POSTGRES_DB: "{{PROJECT_NAME}}"
        """),
        "Dockerfile": "FROM node:20\n",
        ".dockerignore": "node_modules\n",
        "apps/backend/Dockerfile": "FROM node:20\n",
        ".eslintrc.json": "{}\n",
        ".prettierrc": "{}\n",
        "apps/frontend/.eslintrc.json": "{}\n",
        "node_modules/dep/index.js": "module.exports = '{{PROJECT_NAME}}';\n",
        "assets/logo.png": "",
    }
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def template_tree(tmp_path: Path) -> Path:
    """A retrieved-template directory ready for customization."""
    return write_template(tmp_path / "template")


def _git(*args: str, cwd: Path) -> None:
    subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True)


@pytest.fixture
def git_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give commits made by the code under test a deterministic identity."""
    for key in ("GIT_AUTHOR_NAME", "GIT_COMMITTER_NAME"):
        monkeypatch.setenv(key, "create-fs-app Test")
    for key in ("GIT_AUTHOR_EMAIL", "GIT_COMMITTER_EMAIL"):
        monkeypatch.setenv(key, "test@create-fs-app.local")


@pytest.fixture
def local_template_repo(tmp_path: Path) -> Path:
    """Real git repository (branch ``main``) holding a template twice.

    The template sits at the repository root and again under
    ``templates/basic`` so both retrieval modes can be exercised. Clone it
    through ``repo.as_uri()`` so ``--depth`` is honoured.
    """
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    repo_dir = tmp_path / "template-repo"
    repo_dir.mkdir()
    write_template(repo_dir)
    write_template(repo_dir / "templates" / "basic")
    # Never commit dependencies.
    shutil.rmtree(repo_dir / "node_modules")
    shutil.rmtree(repo_dir / "templates" / "basic" / "node_modules")

    _git("init", cwd=repo_dir)
    _git("symbolic-ref", "HEAD", "refs/heads/main", cwd=repo_dir)
    _git("config", "user.email", "test@create-fs-app.local", cwd=repo_dir)
    _git("config", "user.name", "create-fs-app Test", cwd=repo_dir)
    _git("config", "commit.gpgsign", "false", cwd=repo_dir)
    _git("add", ".", cwd=repo_dir)
    _git("commit", "-m", "Initial template", cwd=repo_dir)
    yield repo_dir


@pytest.fixture
def template_writer() -> Callable[[Path], Path]:
    """The function behind ``template_tree``, for fakes that write a template on demand."""
    return write_template
