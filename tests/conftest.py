"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import asyncio
import os
import shutil
import subprocess
from pathlib import Path

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from srcvault.api import create_app
from srcvault.exceptions import CommandError
from srcvault.models.config import ServerConfig
from srcvault.runner import CommandResult, CommandRunner, SubprocessRunner
from srcvault.service import SrcVault

TOKEN = "test-token"
HEAD = "a1b2c3d4e5f60718293a4b5c6d7e8f9012345678"
REMOTE_HEAD = "ffeeddccbbaa99887766554433221100ffeeddcc"

GIT_IDENTITY = {
    "GIT_AUTHOR_NAME": "srcvault tests",
    "GIT_AUTHOR_EMAIL": "tests@example.com",
    "GIT_COMMITTER_NAME": "srcvault tests",
    "GIT_COMMITTER_EMAIL": "tests@example.com",
}

requires_git_and_tar = pytest.mark.skipif(
    shutil.which("git") is None or shutil.which("tar") is None,
    reason="git and tar binaries required",
)


class FakeRunner(CommandRunner):
    """Answers git and tar invocations without running anything.

    ``head`` is the checked-out commit and ``remote_head`` the tip of the
    remote branch; a pull moves ``head`` to ``remote_head``. The fake ``tar``
    sets ``build_started`` and writes ``archive of <head>`` to the destination,
    reading ``head`` only after ``build_delay`` has passed.
    """

    def __init__(
        self,
        head: str = HEAD,
        remote_head: str | None = None,
        build_delay: float = 0.0,
    ) -> None:
        self.head = head
        self.remote_head = remote_head or head
        self.build_delay = build_delay
        self.fail: set[str] = set()
        self.calls: list[list[str]] = []
        self.build_started = asyncio.Event()

    @staticmethod
    def command_name(args: list[str]) -> str:
        # git -C <path> <subcommand> ...
        return args[3] if args[0] == "git" else args[0]

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if self.command_name(call) == name)

    async def run(self, args, cwd=None, timeout=None) -> CommandResult:
        self.calls.append(list(args))
        name = self.command_name(args)
        if name in self.fail:
            raise CommandError(f"{name} failed", args, 128, "fatal: simulated")

        stdout = ""
        if name == "status":
            if self.head == self.remote_head:
                stdout = "On branch main\nYour branch is up to date with 'origin/main'.\n"
            else:
                stdout = "On branch main\nYour branch is behind 'origin/main' by 1 commit.\n"
        elif name == "rev-parse":
            stdout = (self.head if args[-1] == "HEAD" else self.remote_head) + "\n"
        elif name == "pull":
            self.head = self.remote_head
        elif name == "tar":
            self.build_started.set()
            if self.build_delay:
                await asyncio.sleep(self.build_delay)
            Path(args[2]).write_bytes(f"archive of {self.head}".encode())
        return CommandResult(list(args), 0, stdout, "")


class CountingRunner(SubprocessRunner):
    """Real subprocess runner that remembers what it ran."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[list[str]] = []

    async def run(self, args, cwd=None, timeout=None) -> CommandResult:
        self.calls.append(list(args))
        return await super().run(args, cwd=cwd, timeout=timeout)

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if FakeRunner.command_name(call) == name)


def git(cwd: Path, *args: str) -> str:
    """Run git synchronously for test setup."""
    env = {**os.environ, **GIT_IDENTITY, "LC_ALL": "C"}
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        env=env,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout.strip()


@pytest.fixture
def repo_dir(tmp_path: Path) -> Path:
    """A plain directory standing in for the working copy."""
    repo = tmp_path / "repo"
    src = repo / "src-test"
    src.mkdir(parents=True)
    (src / "test.txt").write_text("hello world")
    return repo


@pytest.fixture
def config(repo_dir: Path) -> ServerConfig:
    return ServerConfig(
        repo_path=repo_dir,
        branch="main",
        src_folder="src-test",
        token=TOKEN,
    )


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def vault(config: ServerConfig, fake_runner: FakeRunner) -> SrcVault:
    return SrcVault(config, fake_runner)


@pytest.fixture
def fastapi_app(config: ServerConfig, vault: SrcVault) -> FastAPI:
    return create_app(config, vault)


@pytest.fixture
def api_client(fastapi_app: FastAPI) -> TestClient:
    return TestClient(fastapi_app)


@pytest.fixture
def git_remote(tmp_path: Path) -> dict[str, Path]:
    """A bare remote, a seed clone to push from, and the served working copy.

    The working copy tracks ``origin/main`` and contains ``src-test/test.txt``.
    """
    remote = tmp_path / "remote.git"
    seed = tmp_path / "seed"
    work = tmp_path / "work"

    git(tmp_path, "init", "--bare", str(remote))
    git(tmp_path, "init", str(seed))
    git(seed, "symbolic-ref", "HEAD", "refs/heads/main")
    (seed / "src-test").mkdir()
    (seed / "src-test" / "test.txt").write_text("hello world")
    git(seed, "add", ".")
    git(seed, "commit", "-m", "initial")
    git(seed, "remote", "add", "origin", str(remote))
    git(seed, "push", "origin", "main")
    git(tmp_path, "clone", "--branch", "main", str(remote), str(work))

    return {"remote": remote, "seed": seed, "work": work}


@pytest.fixture
def git_config(git_remote: dict[str, Path]) -> ServerConfig:
    return ServerConfig(
        repo_path=git_remote["work"],
        branch="main",
        src_folder="src-test",
        token=TOKEN,
    )


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: tests running real git and tar")
