"""Tests for agent_runner.cli — argument handling and exit codes."""
import json

import pytest
from unittest.mock import patch

from agent_runner.cli import build_parser, main

ENV = {
    'BASE44_API_URL': 'https://base44.test/api',
    'BASE44_API_KEY': 'test-key',
    'BASE44_APP_ID': 'app-123',
}


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch('agent_runner.cli.configure_logging'):
        yield


class TestParser:

    def test_underscore_and_dash_forms(self):
        a = build_parser().parse_args(['--run_id=r1', '--agent_name=metrics_hourly'])
        b = build_parser().parse_args(['--run-id', 'r1', '--agent-name', 'metrics_hourly'])
        assert (a.run_id, a.agent_name) == (b.run_id, b.agent_name) == ('r1', 'metrics_hourly')
        assert a.params_json == '{}'


class TestMain:

    @pytest.mark.parametrize('argv', [
        ['--run_id=r1', '--agent_name=metrics_hourly', '--bogus'],
        ['--run_id=r1', '--agent_name=metrics_hourly', 'stray'],
        ['--run_id'],
    ])
    def test_bad_arguments_exit_1(self, argv, capsys):
        with patch('agent_runner.cli.EntityClient') as mock_client:
            assert main(argv, environ=ENV) == 1
            mock_client.assert_not_called()
        assert 'usage: agent-runner' in capsys.readouterr().err

    def test_missing_env(self):
        assert main(['--run_id=r1', '--agent_name=metrics_hourly'], environ={}) == 1

    @pytest.mark.parametrize('argv', [
        [],
        ['--run_id=r1'],
        ['--agent_name=metrics_hourly'],
        ['--run_id=', '--agent_name=metrics_hourly'],
    ])
    def test_missing_args(self, argv):
        with patch('agent_runner.cli.EntityClient') as mock_client:
            assert main(argv, environ=ENV) == 1
            mock_client.assert_not_called()

    def test_success_prints_outputs(self, capsys, fake_store):
        with patch('agent_runner.cli.EntityClient', return_value=fake_store):
            code = main(
                ['--run_id=r1', '--agent_name=rollup_nightly', '--params_json={"dry_run": true}'],
                environ=ENV,
            )

        assert code == 0
        printed = json.loads(capsys.readouterr().out)
        assert printed['agent'] == 'rollup_nightly'
        assert printed['dry_run'] is True
        assert fake_store.writes('AgentRun')[-1][3]['status'] == 'success'

    def test_malformed_params_run_with_defaults(self, capsys, fake_store):
        with patch('agent_runner.cli.EntityClient', return_value=fake_store):
            code = main(['--run_id=r1', '--agent_name=metrics_hourly', '--params_json={oops'], environ=ENV)
        assert code == 0
        assert json.loads(capsys.readouterr().out)['summary']['window_minutes'] == 60

    def test_agent_failure_exit_code(self, capsys, fake_store):
        with patch('agent_runner.cli.EntityClient', return_value=fake_store):
            code = main(['--run_id=r1', '--agent_name=unknown_agent'], environ=ENV)
        assert code == 1
        assert capsys.readouterr().out == ''
        assert fake_store.writes('AgentRun')[-1][3]['status'] == 'failed'
