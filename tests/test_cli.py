import pytest
from typer.testing import CliRunner

import capcs.store
from capcs.cli import app
from capcs.manager import Manager


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def runs(monkeypatch):
    """Replace the kubernetes store and the event loop, record what would run."""
    runs = []

    class FakeKubeStore:
        pass

    def run(self, setup=None):
        runs.append((self, setup))

    monkeypatch.setattr(capcs.store, 'KubeStore', FakeKubeStore)
    monkeypatch.setattr(Manager, 'run', run)
    return runs


def test_help(runner):
    result = runner.invoke(app, ['--help'])
    assert result.exit_code == 0
    assert 'run' in result.output


def test_run_with_defaults(runner, runs):
    result = runner.invoke(app, ['run'])
    assert result.exit_code == 0, result.output
    [(manager, setup)] = runs
    assert manager.settings.namespace is None
    assert manager.settings.concurrent_reconciles == 1
    assert setup.__name__ == 'setup_with_manager'


def test_run_with_config_and_flags(runner, runs, tmp_path):
    config = tmp_path / 'capcs.yaml'
    config.write_text('requeue_after: 1\nnamespace: from-config\n')

    result = runner.invoke(
        app,
        ['-v', 'run', '--config', str(config), '--namespace', 'capi', '--concurrency', '3'],
    )

    assert result.exit_code == 0, result.output
    [(manager, _)] = runs
    assert manager.settings.requeue_after == 1
    assert manager.settings.namespace == 'capi'
    assert manager.settings.concurrent_reconciles == 3


def test_run_with_config_from_environment(runner, runs, tmp_path):
    config = tmp_path / 'capcs.yaml'
    config.write_text('concurrent_reconciles: 2\n')

    result = runner.invoke(app, ['run'], env={'CAPCS_CONFIG': str(config)})

    assert result.exit_code == 0, result.output
    [(manager, _)] = runs
    assert manager.settings.concurrent_reconciles == 2


def test_run_with_invalid_config(runner, runs, tmp_path):
    config = tmp_path / 'capcs.yaml'
    config.write_text('unknown_setting: 1\n')

    result = runner.invoke(app, ['run', '--config', str(config)])

    assert result.exit_code == 2
    assert runs == []
