"""Pytest configuration and fixtures for gitbridge tests."""

import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import Generator

import pytest
import pytest_asyncio

from gitbridge.config import Settings, reset_settings
from gitbridge.git import GitEnvironment, GitRepository, GitUser

HAS_GIT = shutil.which("git") is not None


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clean_env() -> Generator[None, None, None]:
    """Remove GITBRIDGE_* variables for the duration of a test."""
    original = {k: v for k, v in os.environ.items() if k.startswith("GITBRIDGE_")}
    for key in original:
        del os.environ[key]

    reset_settings()

    yield

    for key in [k for k in os.environ if k.startswith("GITBRIDGE_")]:
        del os.environ[key]
    os.environ.update(original)

    reset_settings()


@pytest.fixture
def test_settings(temp_dir: Path, clean_env: None) -> Settings:
    """Settings with a private socket directory."""
    return Settings(auth={"socket_dir": str(temp_dir / "sockets")})


@pytest.fixture
def git_env() -> GitEnvironment:
    """A GitEnvironment that does not depend on probing the machine."""
    return GitEnvironment(version="2.43.0", timeout=60)


@pytest.fixture
def isolated_git_config(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point git at a throwaway global config with a known identity."""
    config_path = temp_dir / "gitconfig"
    config_path.write_text(
        "[user]\n"
        "\tname = Test User\n"
        "\temail = test@example.com\n"
        "[init]\n"
        "\tdefaultBranch = main\n"
        "[pull]\n"
        "\trebase = false\n"
        "[commit]\n"
        "\tgpgsign = false\n"
    )
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", str(config_path))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    return config_path


def run_git(cwd: Path, *args: str) -> str:
    """Run git synchronously to arrange repository state for a test."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout


@pytest.fixture
def git():
    """The synchronous git helper, for arranging state the facade does not cover."""
    return run_git


@pytest_asyncio.fixture
async def repo(temp_dir: Path, isolated_git_config: Path, git_env: GitEnvironment) -> GitRepository:
    """An initialized, empty repository."""
    if not HAS_GIT:
        pytest.skip("git executable not available")
    return await GitRepository.init(git_env, temp_dir / "work")


@pytest_asyncio.fixture
async def committed_repo(repo: GitRepository) -> GitRepository:
    """A repository with one commit containing README.md and src/app.py."""
    (repo.path / "README.md").write_text("# test\n")
    (repo.path / "src").mkdir()
    (repo.path / "src" / "app.py").write_text("print('hi')\n")
    await repo.stage(["README.md", "src/app.py"])
    await repo.commit("Initial commit", GitUser("Test User", "test@example.com"))
    return repo
