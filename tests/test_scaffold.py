"""Unit tests for the scaffold orchestrator (create_fs_app.scaffold).

Retrieval is replaced by a fake retriever that writes the shared template
tree; git and the package manager are mocked at the module boundary.
"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from create_fs_app import registry
from create_fs_app.errors import (
    CommandError,
    DirectoryExistsError,
    GitError,
    InstallError,
    RetrievalError,
    ScaffoldError,
    TemplateNotFoundError,
)
from create_fs_app.models import PackageManager, TemplateMetadata
from create_fs_app.scaffold import (
    ScaffoldOptions,
    Scaffolder,
    check_template_availability,
    initialize_git,
    install_dependencies,
    validate_project_directory,
)


@pytest.fixture
def fake_retriever(template_writer) -> MagicMock:
    async def _clone(metadata, target_dir, branch=None):
        template_writer(Path(target_dir))

    retriever = MagicMock()
    retriever.clone = AsyncMock(side_effect=_clone)
    return retriever


@pytest.fixture
def scaffolder(settings, tmp_path, fake_retriever) -> Scaffolder:
    cwd = tmp_path / "projects"
    cwd.mkdir()
    return Scaffolder(settings, cwd=cwd, retriever=fake_retriever)


# ---------------------------------------------------------------------------
# Pre-flight
# ---------------------------------------------------------------------------

class TestPreflight:
    @pytest.mark.unit
    def test_free_directory(self, tmp_path):
        assert validate_project_directory("my-app", tmp_path) == tmp_path / "my-app"

    @pytest.mark.unit
    def test_existing_directory(self, tmp_path):
        (tmp_path / "my-app").mkdir()
        with pytest.raises(DirectoryExistsError, match='Directory "my-app" already exists'):
            validate_project_directory("my-app", tmp_path)

    @pytest.mark.unit
    def test_existing_file(self, tmp_path):
        (tmp_path / "my-app").write_text("x")
        with pytest.raises(DirectoryExistsError):
            validate_project_directory("my-app", tmp_path)

    @pytest.mark.unit
    def test_availability(self, make_config):
        available = check_template_availability(make_config())
        assert available.available is True
        assert available.template is registry.TEMPLATE_REGISTRY["turborepo-nextjs-nestjs-postgresql-prisma"]

        missing = check_template_availability(make_config(frontend="angular", backend="koa"))
        assert missing.available is False
        assert missing.template is None
        assert len(missing.suggestions) == 3


# ---------------------------------------------------------------------------
# Post-steps
# ---------------------------------------------------------------------------

class TestPostSteps:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_initialize_git_success(self, tmp_path, make_config):
        with patch("create_fs_app.scaffold.init_repository", new=AsyncMock()) as init:
            assert await initialize_git(tmp_path, make_config()) is True
        init.assert_awaited_once_with(tmp_path, "Initial commit: my-app")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_initialize_git_failure_is_warning(self, tmp_path, make_config):
        with patch("create_fs_app.scaffold.init_repository", new=AsyncMock(side_effect=GitError("no identity"))), \
                patch("create_fs_app.scaffold.print_warning") as warn:
            assert await initialize_git(tmp_path, make_config()) is False
        assert "Git initialization failed" in warn.call_args.args[0]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_install_inherits_stdio(self, tmp_path):
        with patch("create_fs_app.scaffold.run_checked", new=AsyncMock(return_value="")) as run:
            await install_dependencies(tmp_path, PackageManager.PNPM)
        run.assert_awaited_once_with(["pnpm", "install"], cwd=tmp_path, capture=False)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_install_failure(self, tmp_path):
        failure = CommandError("Command failed (exit 1): npm install", returncode=1)
        with patch("create_fs_app.scaffold.run_checked", new=AsyncMock(side_effect=failure)):
            with pytest.raises(InstallError) as exc_info:
                await install_dependencies(tmp_path, PackageManager.NPM)
        assert str(exc_info.value).startswith("Failed to install dependencies:")
        assert exc_info.value.cause is failure


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------

class TestScaffolder:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_existing_directory_starts_nothing(self, scaffolder, fake_retriever, make_config):
        (scaffolder.cwd / "my-app").mkdir()
        with patch("asyncio.create_subprocess_exec", new=AsyncMock()) as exec_mock:
            with pytest.raises(DirectoryExistsError):
                await scaffolder.scaffold(make_config())
        exec_mock.assert_not_called()
        fake_retriever.clone.assert_not_called()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_template_not_found_carries_suggestions(self, scaffolder, fake_retriever, make_config):
        config = make_config(monorepo="nx", frontend="angular", backend="koa")
        with pytest.raises(TemplateNotFoundError) as exc_info:
            await scaffolder.scaffold(config)
        assert [s.description for s in exc_info.value.suggestions] == [
            "Nx workspace with Next.js, NestJS, PostgreSQL, and Prisma",
            "Nx workspace with React, Express, MongoDB, and Mongoose",
        ]
        fake_retriever.clone.assert_not_called()
        assert not (scaffolder.cwd / "my-app").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_full_run(self, scaffolder, fake_retriever, make_config):
        config = make_config(docker=False, linting=False)
        cwd_before = Path.cwd()
        with patch("create_fs_app.scaffold.init_repository", new=AsyncMock()) as init, \
                patch("create_fs_app.scaffold.run_checked", new=AsyncMock(return_value="")) as install:
            result = await scaffolder.scaffold(config)

        target = scaffolder.cwd / "my-app"
        assert result.project_path == target
        assert result.template.url.endswith("template-turborepo-nextjs-nestjs-postgresql-prisma")
        assert result.git_initialized is True
        assert result.dependencies_installed is True
        fake_retriever.clone.assert_awaited_once_with(result.template, target, "main")
        init.assert_awaited_once()
        install.assert_awaited_once()
        assert Path.cwd() == cwd_before

        assert not (target / "Dockerfile").exists()
        assert not (target / ".eslintrc.json").exists()
        assert (target / "README.md").read_text().startswith("# my-app\n")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_features_on_keeps_files(self, scaffolder, make_config):
        result = await scaffolder.scaffold(make_config(), ScaffoldOptions(skip_git=True, skip_install=True))
        assert (result.project_path / "Dockerfile").exists()
        assert (result.project_path / ".eslintrc.json").exists()
        assert result.git_initialized is False
        assert result.dependencies_installed is False

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_post_steps_run_inside_target(self, scaffolder, make_config):
        seen: list[Path] = []

        async def _record(*args, **kwargs):
            seen.append(Path(os.getcwd()).resolve())

        with patch("create_fs_app.scaffold.init_repository", new=AsyncMock(side_effect=_record)):
            result = await scaffolder.scaffold(make_config(), ScaffoldOptions(skip_install=True))
        assert seen == [result.project_path.resolve()]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_git_failure_does_not_abort(self, scaffolder, make_config):
        with patch("create_fs_app.scaffold.init_repository", new=AsyncMock(side_effect=GitError("boom"))), \
                patch("create_fs_app.scaffold.run_checked", new=AsyncMock(return_value="")) as install:
            result = await scaffolder.scaffold(make_config())
        assert result.git_initialized is False
        assert result.dependencies_installed is True
        install.assert_awaited_once()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_install_failure_keeps_project(self, scaffolder, make_config):
        with patch("create_fs_app.scaffold.run_checked", new=AsyncMock(side_effect=CommandError("exit 1"))):
            with pytest.raises(InstallError):
                await scaffolder.scaffold(make_config(), ScaffoldOptions(skip_git=True))
        assert (scaffolder.cwd / "my-app" / "package.json").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_retrieval_failure_wrapped(self, scaffolder, fake_retriever, make_config):
        fake_retriever.clone.side_effect = RetrievalError("Failed to clone template: nope")
        with pytest.raises(ScaffoldError, match="Failed to scaffold project: Failed to clone template"):
            await scaffolder.scaffold(make_config())

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_explicit_template_skips_resolution(self, scaffolder, fake_retriever, make_config):
        custom = TemplateMetadata(url="https://github.com/me/tpl", branch="dev", description="Custom")
        # This stack has no catalog entry; the explicit template must be used anyway.
        config = make_config(monorepo="lerna", frontend="angular", backend="koa")
        result = await scaffolder.scaffold(config, ScaffoldOptions(skip_git=True, skip_install=True), template=custom)
        assert result.template is custom
        fake_retriever.clone.assert_awaited_once_with(custom, scaffolder.cwd / "my-app", "dev")

    @pytest.mark.unit
    def test_default_retriever_respects_cache_setting(self, settings, tmp_path):
        assert Scaffolder(settings, cwd=tmp_path).retriever.cache is not None
        no_cache = settings.model_copy(update={"use_cache": False})
        assert Scaffolder(no_cache, cwd=tmp_path).retriever.cache is None

    @pytest.mark.unit
    def test_catalog_built_from_settings(self, settings, tmp_path):
        scaffolder = Scaffolder(settings, cwd=tmp_path)
        template = scaffolder.catalog["nx-react-express-mongodb-mongoose"]
        assert template.url == "https://github.com/test-org/template-nx-react-express-mongodb-mongoose"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_default_branch_reaches_clone(self, settings, tmp_path, fake_retriever, make_config):
        develop = settings.model_copy(update={"default_branch": "develop"})
        scaffolder = Scaffolder(develop, cwd=tmp_path, retriever=fake_retriever)
        assert scaffolder.resolve(make_config()).branch == "develop"

        result = await scaffolder.scaffold(make_config(), ScaffoldOptions(skip_git=True, skip_install=True))
        fake_retriever.clone.assert_awaited_once_with(result.template, tmp_path / "my-app", "develop")
