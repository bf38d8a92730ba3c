from __future__ import annotations

import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))


@dataclass(slots=True)
class TinyRepo:
    """Throwaway git repository with a single commit on ``main``."""

    root: Path

    def git(self, *args: str) -> str:
        result = subprocess.run(
            ["git", *args],
            cwd=self.root,
            check=True,
            capture_output=True,
            text=True,
        )
        return result.stdout.strip()

    def write(self, relative: str, content: str) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path


@pytest.fixture()
def tiny_repo(tmp_path: Path) -> TinyRepo:
    """Create a tiny git repository for git helper and CLI tests."""

    repo_root = tmp_path / "tiny-repo"
    repo_root.mkdir()
    repo = TinyRepo(root=repo_root)

    repo.git("init", "-b", "main")
    repo.git("config", "user.email", "dev@example.com")
    repo.git("config", "user.name", "Prai Tester")
    repo.git("config", "commit.gpgsign", "false")

    repo.write("README.md", "# tiny\n")
    repo.git("add", ".")
    repo.git("commit", "-m", "Initial tiny repo state")
    return repo


@pytest.fixture()
def config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point ``PRAI_CONFIG`` at a config path inside ``tmp_path``."""

    path = tmp_path / "home" / "config.yaml"
    monkeypatch.setenv("PRAI_CONFIG", str(path))
    return path
