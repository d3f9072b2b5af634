import pytest

from apex_coverage.config import ENV_MODE, ENV_ORG_ALIAS, ENV_SF_COMMAND


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Keep a developer's sf settings or apex-coverage.yaml out of the tests."""
    for name in (ENV_ORG_ALIAS, ENV_MODE, ENV_SF_COMMAND):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
