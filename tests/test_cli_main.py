"""End-to-end tests for the CLI entry point with mocked services."""

import json
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from click.testing import CliRunner

from openstack_reporter import __version__
from openstack_reporter.cli.main import (
    main, print_progress, EXIT_AUTH_ERROR, EXIT_CONFIG_ERROR, EXIT_GENERAL_ERROR,
    EXIT_SERVICE_ERROR, EXIT_SUCCESS, EXIT_USER_CANCELLED
)
from openstack_reporter.core.exceptions import (
    AuthenticationError, ConfigurationError, DataUnavailableError, ReporterError, UserCancelled
)
from openstack_reporter.services.models import Project, Report
from openstack_reporter.services.progress import ProgressEvent, ProgressEventType

from fakes import make_config, sample_resource, sample_volume


ALPHA = Project(id='p-alpha', name='alpha')
BETA = Project(id='p-beta', name='beta')


def a_report():
    return Report.build(
        datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc),
        [ALPHA, BETA],
        [sample_resource(project=ALPHA), sample_volume(project=BETA)],
    )


@pytest.fixture
def cli_mocks():
    """Patch configuration and the inventory service used by the CLI."""
    with patch('openstack_reporter.cli.main.ConfigManager') as MockConfigManager, \
         patch('openstack_reporter.cli.main.InventoryService') as MockInventoryService:

        config_manager = Mock()
        config_manager.load_config.return_value = make_config()
        MockConfigManager.return_value = config_manager

        service = Mock()
        service.get_report.return_value = a_report()
        service.refresh.return_value = a_report()
        service.status.return_value = {
            'report_exists': True,
            'last_check': '2024-06-01T10:00:00+00:00',
            'report_age_hours': 1.5,
            'report_age_human': '1 hour',
        }
        MockInventoryService.return_value = service

        yield config_manager, service


class TestCLIMainEntryPoint:

    def test_default_shows_saved_report(self, cli_mocks):
        config_manager, service = cli_mocks

        result = CliRunner().invoke(main, [])

        assert result.exit_code == EXIT_SUCCESS
        service.get_report.assert_called_once_with()
        service.refresh.assert_not_called()
        assert "Summary" in result.output
        assert "alpha" in result.output
        assert "beta" in result.output

    def test_json_output(self, cli_mocks):
        result = CliRunner().invoke(main, ['--json'])

        assert result.exit_code == EXIT_SUCCESS
        data = json.loads(result.output)
        assert data['summary']['total_servers'] == 1
        assert data['summary']['total_projects'] == 2
        assert [p['name'] for p in data['projects']] == ['alpha', 'beta']

    def test_refresh_flag(self, cli_mocks):
        _, service = cli_mocks

        result = CliRunner().invoke(main, ['--refresh'])

        assert result.exit_code == EXIT_SUCCESS
        service.refresh.assert_called_once()
        progress, cancel_event = service.refresh.call_args.args
        assert not cancel_event.is_set()
        service.get_report.assert_not_called()

    def test_status_flag(self, cli_mocks):
        _, service = cli_mocks

        result = CliRunner().invoke(main, ['--status', '--json'])

        assert result.exit_code == EXIT_SUCCESS
        assert json.loads(result.output)['report_age_human'] == '1 hour'
        service.get_report.assert_not_called()

    def test_options_reach_configuration(self, cli_mocks, tmp_path):
        config_manager, _ = cli_mocks

        result = CliRunner().invoke(main, ['--project', 'infra', '--insecure', '--data-dir', str(tmp_path)])

        assert result.exit_code == EXIT_SUCCESS
        config_manager.load_config.assert_called_once_with(
            project_name='infra', insecure=True, data_dir=tmp_path
        )

    def test_flags_not_given_leave_configuration_alone(self, cli_mocks):
        config_manager, _ = cli_mocks

        CliRunner().invoke(main, [])

        config_manager.load_config.assert_called_once_with(project_name=None, insecure=None, data_dir=None)

    def test_save_config_writes_settings_and_stops(self, cli_mocks):
        config_manager, service = cli_mocks
        config_manager.get_config_path.return_value = Path("/etc/reporter/config.json")

        result = CliRunner().invoke(main, ['--save-config', '--project', 'infra'])

        assert result.exit_code == EXIT_SUCCESS
        config_manager.save_config.assert_called_once_with(config_manager.load_config.return_value)
        assert "config.json" in result.output
        service.get_report.assert_not_called()
        service.refresh.assert_not_called()


class TestCLIExitCodes:

    @pytest.mark.parametrize('error, exit_code', [
        (ConfigurationError("Missing required settings: OS_AUTH_URL"), EXIT_CONFIG_ERROR),
        (AuthenticationError("rejected"), EXIT_AUTH_ERROR),
        (DataUnavailableError("no report"), EXIT_SERVICE_ERROR),
        (UserCancelled(), EXIT_USER_CANCELLED),
        (KeyboardInterrupt(), EXIT_USER_CANCELLED),
        (ReporterError("something else"), EXIT_GENERAL_ERROR),
        (RuntimeError("boom"), EXIT_GENERAL_ERROR),
    ])
    def test_errors_map_to_exit_codes(self, cli_mocks, error, exit_code):
        _, service = cli_mocks
        service.get_report.side_effect = error

        result = CliRunner().invoke(main, [])

        assert result.exit_code == exit_code

    def test_configuration_error_while_loading(self, cli_mocks):
        config_manager, _ = cli_mocks
        config_manager.load_config.side_effect = ConfigurationError("Missing required settings: OS_PASSWORD")

        result = CliRunner().invoke(main, [])

        assert result.exit_code == EXIT_CONFIG_ERROR


class TestCLIVersionAndHelp:

    def test_cli_version_flag(self):
        result = CliRunner().invoke(main, ['--version'])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_cli_help_flag(self):
        result = CliRunner().invoke(main, ['--help'])

        assert result.exit_code == 0
        for option in ('--refresh', '--status', '--json', '--project', '--insecure', '--data-dir',
                       '--save-config', '--verbose'):
            assert option in result.output


def test_progress_lines_poll_for_escape():
    with patch('openstack_reporter.cli.main.poll_escape') as poll:
        print_progress(ProgressEvent(ProgressEventType.RESOURCE_ERROR, "Failed to collect routers",
                                     project='beta', resource_type='routers'))

    poll.assert_called_once_with()
