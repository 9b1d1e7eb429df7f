"""Shared fixtures for twig tests."""

from pathlib import Path
from typing import Callable, Union

import pytest

from twig.config import Config
from twig.version_control import Repository


@pytest.fixture
def config() -> Config:
    """Default configuration, independent of the environment."""
    return Config()


@pytest.fixture
def repo(tmp_path: Path, config: Config) -> Repository:
    """A freshly initialized repository rooted at tmp_path."""
    return Repository.init(tmp_path, config)


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, Union[str, bytes]], Path]:
    """Write a working-tree file relative to tmp_path."""

    def _write(name: str, content: Union[str, bytes]) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content.encode() if isinstance(content, str) else content)
        return path

    return _write
