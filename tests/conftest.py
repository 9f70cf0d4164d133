import pytest

from dpictl import configuration


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Keep persisted state in a temporary file, starting empty."""
    path = tmp_path / "dpictl" / "config.yaml"
    monkeypatch.setattr(configuration, "_yaml_file_path", str(path))
    monkeypatch.setattr(configuration, "_config", {})
    yield path
