from __future__ import annotations

from pathlib import Path

import pytest

from shadowvault.models import ProjectIdentity
from shadowvault.vault import Vault


@pytest.fixture
def fake_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("USERPROFILE", str(home))
    monkeypatch.delenv("SHADOWVAULT_CONFIG", raising=False)
    monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
    return home


@pytest.fixture
def vault_root(tmp_path: Path) -> Path:
    root = tmp_path.resolve() / "vault"
    root.mkdir()
    return root


@pytest.fixture
def vault(vault_root: Path) -> Vault:
    return Vault(vault_root)


@pytest.fixture
def project(tmp_path: Path) -> ProjectIdentity:
    root = tmp_path.resolve() / "work" / "demo"
    root.mkdir(parents=True)
    (root / ".git").mkdir()
    return ProjectIdentity(root=root, key="demo")


@pytest.fixture
def entry(vault_root: Path) -> Path:
    path = vault_root / "demo"
    path.mkdir()
    return path
