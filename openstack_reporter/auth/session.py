"""Keystone password authentication and project-scoped sessions."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from keystoneauth1 import exceptions as ksa_exceptions
from openstack import connection
from openstack import exceptions as sdk_exceptions

from openstack_reporter import __version__
from openstack_reporter.core.config import Config
from openstack_reporter.core.exceptions import AuthenticationError
from openstack_reporter.services.models import Project


logger = logging.getLogger(__name__)

APP_NAME = 'openstack-reporter'

# Catalog service types for capabilities that may be absent from a cloud
LOAD_BALANCER_SERVICE = 'load-balancer'
CONTAINER_INFRA_SERVICE = 'container-infrastructure-management'


@dataclass
class ScopedSession:
    """An authenticated connection bound to one project.

    ``load_balancer`` and ``container_infra`` are None when the cloud does
    not offer the capability.
    """
    connection: Any
    compute: Any
    block_storage: Any
    network: Any
    identity: Any
    load_balancer: Any = None
    container_infra: Any = None
    project: Optional[Project] = None

    @property
    def project_id(self) -> Optional[str]:
        return self.project.id if self.project else None

    @property
    def project_name(self) -> Optional[str]:
        return self.project.name if self.project else None


class SessionFactory:
    """Creates authenticated OpenStack sessions from configuration."""

    def __init__(self, config: Config):
        """Initialize the session factory.

        Args:
            config: Validated configuration holding the credentials.
        """
        self.config = config
        if config.insecure:
            logger.warning("TLS certificate verification is disabled (OS_INSECURE)")

    def new_session(self, project_name: Optional[str] = None, project_id: Optional[str] = None) -> ScopedSession:
        """Authenticate a session scoped to one project.

        Args:
            project_name: Project to scope the token to. When neither name
                          nor id is given, Keystone scopes the token to the
                          user's default project.
            project_id: Project id, preferred over the name when both are set.

        Returns:
            ScopedSession with service proxies. Optional capabilities are
            None when unavailable.

        Raises:
            AuthenticationError: If authentication fails.
        """
        auth = self._base_auth()
        if project_id:
            auth['project_id'] = project_id
        elif project_name:
            auth['project_name'] = project_name
            auth['project_domain_name'] = self.config.project_domain_name or self.config.user_domain_name

        target = project_name or project_id or 'default project'
        conn = self._connect(auth, target)

        return ScopedSession(
            connection=conn,
            compute=conn.compute,
            block_storage=conn.block_storage,
            network=conn.network,
            identity=conn.identity,
            load_balancer=self._optional_proxy(conn, LOAD_BALANCER_SERVICE, 'load_balancer'),
            container_infra=self._optional_proxy(conn, CONTAINER_INFRA_SERVICE, 'container_infrastructure_management'),
        )

    def domain_session(self) -> ScopedSession:
        """Authenticate a domain-scoped session for project listing.

        Only the identity proxy is meaningful on a domain-scoped token.

        Raises:
            AuthenticationError: If authentication fails.
        """
        auth = self._base_auth()
        auth['domain_name'] = self.config.user_domain_name

        conn = self._connect(auth, f"domain {self.config.user_domain_name}")
        return ScopedSession(
            connection=conn,
            compute=None,
            block_storage=None,
            network=None,
            identity=conn.identity,
        )

    def _base_auth(self) -> Dict[str, Any]:
        return {
            'auth_url': self.config.auth_url,
            'username': self.config.username,
            'password': self.config.password,
            'user_domain_name': self.config.user_domain_name,
        }

    def _connect(self, auth: Dict[str, Any], target: str) -> Any:
        """Create a connection and force token issuance.

        Raises:
            AuthenticationError: If Keystone rejects the credentials or is unreachable.
        """
        try:
            logger.info(f"Authenticating as {self.config.username} into {target}")
            conn = connection.Connection(
                auth=auth,
                auth_type='password',
                region_name=self.config.region_name,
                verify=not self.config.insecure,
                app_name=APP_NAME,
                app_version=__version__,
            )
            # Connection.authorize() rewraps these as a bare SDKException
            conn.session.get_token()
            return conn

        except ksa_exceptions.Unauthorized as e:
            raise AuthenticationError(
                f"Authentication rejected for user {self.config.username} ({target}). "
                "Please check OS_USERNAME, OS_PASSWORD and OS_USER_DOMAIN_NAME.",
                details=str(e)
            )

        except (ksa_exceptions.ConnectionError, ksa_exceptions.DiscoveryFailure) as e:
            raise AuthenticationError(
                f"Unable to authenticate into {target} at {self.config.auth_url}: {e}",
                details=str(e)
            )

        except ksa_exceptions.HttpError as e:
            raise AuthenticationError(
                f"Identity service error while authenticating into {target}: {e.http_status} - {e}",
                details=str(e)
            )

        except ksa_exceptions.ClientException as e:
            raise AuthenticationError(f"Identity service error while authenticating into {target}: {e}", details=str(e))

        except sdk_exceptions.SDKException as e:
            raise AuthenticationError(f"OpenStack configuration error for {target}: {e}", details=str(e))

        except Exception as e:
            raise AuthenticationError(
                f"Unable to authenticate into {target} at {self.config.auth_url}: {e}",
                details=str(e)
            )

    def _optional_proxy(self, conn: Any, service_type: str, attribute: str) -> Any:
        """Return a service proxy, or None when the capability is unavailable."""
        try:
            if not conn.has_service(service_type):
                logger.info(f"Service {service_type} not in catalog; skipping")
                return None
            return getattr(conn, attribute)
        except Exception as e:
            logger.info(f"Service {service_type} unavailable: {e}")
            return None
