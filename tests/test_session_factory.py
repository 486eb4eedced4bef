"""Tests for authenticated session creation."""

from unittest.mock import Mock, patch

import pytest
from keystoneauth1 import exceptions as ksa_exceptions
from openstack import exceptions as sdk_exceptions

from openstack_reporter import __version__
from openstack_reporter.auth.session import (
    APP_NAME, CONTAINER_INFRA_SERVICE, LOAD_BALANCER_SERVICE, SessionFactory
)
from openstack_reporter.core.exceptions import AuthenticationError

from fakes import make_config


@pytest.fixture
def mock_connection():
    with patch('openstack_reporter.auth.session.connection.Connection') as connection_class:
        conn = Mock()
        conn.has_service.return_value = True
        connection_class.return_value = conn
        yield connection_class


class TestNewSession:

    def test_project_id_preferred_over_name(self, mock_connection):
        SessionFactory(make_config()).new_session(project_name='alpha', project_id='p-alpha')

        auth = mock_connection.call_args.kwargs['auth']
        assert auth['project_id'] == 'p-alpha'
        assert 'project_name' not in auth

    def test_project_name_scoping_uses_project_domain(self, mock_connection):
        config = make_config(project_domain_name='projects', insecure=True, region_name='RegionOne')

        SessionFactory(config).new_session(project_name='alpha')

        kwargs = mock_connection.call_args.kwargs
        assert kwargs['auth']['project_name'] == 'alpha'
        assert kwargs['auth']['project_domain_name'] == 'projects'
        assert kwargs['auth']['user_domain_name'] == 'Default'
        assert kwargs['auth_type'] == 'password'
        assert kwargs['verify'] is False
        assert kwargs['region_name'] == 'RegionOne'
        assert kwargs['app_name'] == APP_NAME
        assert kwargs['app_version'] == __version__
        mock_connection.return_value.session.get_token.assert_called_once_with()

    def test_optional_services_present(self, mock_connection):
        session = SessionFactory(make_config()).new_session()

        conn = mock_connection.return_value
        assert session.load_balancer is conn.load_balancer
        assert session.container_infra is conn.container_infrastructure_management
        assert session.compute is conn.compute

    def test_optional_services_missing_or_broken(self, mock_connection):
        conn = mock_connection.return_value

        def has_service(service_type):
            if service_type == LOAD_BALANCER_SERVICE:
                return False
            assert service_type == CONTAINER_INFRA_SERVICE
            raise sdk_exceptions.SDKException("catalog error")

        conn.has_service.side_effect = has_service

        session = SessionFactory(make_config()).new_session()

        assert session.load_balancer is None
        assert session.container_infra is None

    def test_rejected_credentials(self, mock_connection):
        mock_connection.return_value.session.get_token.side_effect = ksa_exceptions.Unauthorized(
            "The request you have made requires authentication.", http_status=401
        )

        with pytest.raises(AuthenticationError, match="OS_PASSWORD") as excinfo:
            SessionFactory(make_config()).new_session(project_name='alpha')

        assert "alpha" in excinfo.value.message

    @pytest.mark.parametrize('error', [
        ksa_exceptions.ConnectFailure("Unable to establish connection to https://keystone.example.com:5000/v3"),
        ksa_exceptions.DiscoveryFailure("Could not find versioned identity endpoints"),
    ])
    def test_unreachable_endpoint(self, mock_connection, error):
        mock_connection.return_value.session.get_token.side_effect = error

        with pytest.raises(AuthenticationError, match="Unable to authenticate") as excinfo:
            SessionFactory(make_config()).new_session()

        assert "https://keystone.example.com:5000/v3" in excinfo.value.message

    def test_other_identity_errors(self, mock_connection):
        mock_connection.return_value.session.get_token.side_effect = ksa_exceptions.NotFound(
            "Not Found", http_status=404
        )

        with pytest.raises(AuthenticationError, match="Identity service error.*404"):
            SessionFactory(make_config()).new_session()

    def test_invalid_cloud_configuration(self, mock_connection):
        mock_connection.side_effect = sdk_exceptions.ConfigException("Cloud region not found")

        with pytest.raises(AuthenticationError, match="configuration error"):
            SessionFactory(make_config()).new_session()


def test_domain_session_is_domain_scoped(mock_connection):
    session = SessionFactory(make_config(user_domain_name='corp')).domain_session()

    auth = mock_connection.call_args.kwargs['auth']
    assert auth['domain_name'] == 'corp'
    assert 'project_id' not in auth and 'project_name' not in auth
    assert session.identity is mock_connection.return_value.identity
    assert session.compute is None
