"""Tests for rdplaunch.report and rdplaunch.notify modules."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from rdplaunch.models import FailureCode
from rdplaunch.notify import Notifier
from rdplaunch.report import FAILURES, ErrorReporter


@pytest.fixture
def reporter(default_launch_config):
    return ErrorReporter(default_launch_config, MagicMock(), limit=60)


class TestExitStatuses:
    def test_every_code_is_mapped(self):
        assert set(FAILURES) == set(FailureCode)

    @pytest.mark.parametrize(
        "code, status",
        [
            (FailureCode.NOT_IN_GROUP, 77),
            (FailureCode.NO_IP, 68),
            (FailureCode.BAD_PORT, 68),
            (FailureCode.NOT_EXIST, 69),
            (FailureCode.FAIL_START, 69),
            (FailureCode.FAIL_RESUME, 69),
            (FailureCode.FAIL_DESTROY, 69),
            (FailureCode.SHUTDOWN_TIMEOUT, 69),
            (FailureCode.DIE_TIMEOUT, 69),
            (FailureCode.UNKNOWN_STATE, 69),
            (FailureCode.CLIENT_MISSING, 69),
        ],
    )
    def test_report_returns_mapped_status(self, reporter, code, status):
        assert reporter.report(code) == status


class TestMessages:
    def test_single_notification_per_report(self, reporter):
        reporter.report(FailureCode.NOT_EXIST)
        reporter.notifier.error.assert_called_once_with("The Windows VM 'RDPWindows' does not exist.")

    def test_network_messages_are_multiline(self, reporter):
        assert "\n" in reporter.message_for(FailureCode.NO_IP)
        assert "\n" in reporter.message_for(FailureCode.BAD_PORT)
        assert "3389" in reporter.message_for(FailureCode.BAD_PORT)

    def test_timeout_message_mentions_limit(self, reporter):
        assert "60 seconds" in reporter.message_for(FailureCode.DIE_TIMEOUT)

    def test_group_message_lists_groups(self, reporter):
        assert "libvirt, kvm" in reporter.message_for(FailureCode.NOT_IN_GROUP)


class TestNotifier:
    @patch("rdplaunch.notify.subprocess.run")
    def test_info_uses_short_expiry(self, mock_run):
        Notifier().info("Starting")
        cmd = mock_run.call_args[0][0]
        assert cmd[0] == "notify-send"
        assert "--expire-time=5000" in cmd
        assert "--urgency=low" in cmd
        assert cmd[-1] == "Starting"

    @patch("rdplaunch.notify.subprocess.run")
    def test_error_uses_long_expiry(self, mock_run):
        Notifier().error("Broken")
        cmd = mock_run.call_args[0][0]
        assert "--expire-time=10000" in cmd
        assert "--urgency=critical" in cmd

    @patch("rdplaunch.notify.subprocess.run")
    def test_disabled_sends_nothing(self, mock_run, capsys):
        Notifier(enabled=False).error("Broken")
        mock_run.assert_not_called()
        assert "Broken" in capsys.readouterr().out

    @patch("rdplaunch.notify.subprocess.run", side_effect=FileNotFoundError("notify-send"))
    def test_missing_notify_send_is_ignored(self, mock_run):
        Notifier().info("Starting")
        mock_run.assert_called_once()

    @patch("rdplaunch.notify.subprocess.run")
    def test_non_zero_exit_is_ignored(self, mock_run):
        mock_run.return_value = MagicMock(returncode=1)
        Notifier().info("Starting")
        mock_run.assert_called_once()
