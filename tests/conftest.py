from pathlib import Path

import pytest

from stencil import Engine, EngineConfig
from tests.infrastructure import write


@pytest.fixture
def engine() -> Engine:
    """Engine with default configuration."""
    return Engine()


@pytest.fixture
def template_dir(tmp_path: Path) -> Path:
    """Directory with a couple of templates on disk."""
    root = tmp_path / "templates"
    write(root / "hello.txt", "Hello, {{ name|default:'world' }}!")
    write(root / "mail" / "greeting.txt", "{% if user %}Dear {{ user|title }}{% else %}Hi{% endif %}")
    return root


@pytest.fixture
def dir_engine(template_dir: Path) -> Engine:
    """Engine loading templates from `template_dir`."""
    return Engine(EngineConfig(dirs=[template_dir]))
