"""Tests for agent_runner.services.notifications — Slack failure alerts."""
from unittest.mock import patch, MagicMock

import requests

from agent_runner.services.notifications import notify_run_failed


class TestNotifyRunFailed:

    @patch('agent_runner.services.notifications.requests.post')
    def test_no_webhook_is_noop(self, mock_post):
        assert notify_run_failed(None, 'r1', 'metrics_hourly', 'boom') is False
        mock_post.assert_not_called()

    @patch('agent_runner.services.notifications.requests.post')
    def test_posts_blocks(self, mock_post):
        mock_post.return_value = MagicMock()
        assert notify_run_failed('https://hooks.slack.test/x', 'r1', 'metrics_hourly', 'boom', duration_ms=1500)

        url = mock_post.call_args.args[0]
        blocks = mock_post.call_args.kwargs['json']['blocks']
        assert url == 'https://hooks.slack.test/x'
        assert 'metrics_hourly' in blocks[0]['text']['text']
        assert any('r1' in f['text'] for f in blocks[1]['fields'])
        assert 'boom' in blocks[2]['text']['text']
        assert mock_post.call_args.kwargs['timeout'] == 10

    @patch('agent_runner.services.notifications.requests.post')
    def test_long_message_truncated(self, mock_post):
        notify_run_failed('https://hooks.slack.test/x', 'r1', 'a', 'x' * 2000)
        text = mock_post.call_args.kwargs['json']['blocks'][2]['text']['text']
        assert text.count('x') == 500

    @patch('agent_runner.services.notifications.requests.post')
    def test_failure_is_swallowed(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError('down')
        assert notify_run_failed('https://hooks.slack.test/x', 'r1', 'a', 'boom') is False
