"""Project discovery with an ordered chain of fallbacks."""

import json
import logging
import os
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from openstack_reporter.auth.session import ScopedSession, SessionFactory
from openstack_reporter.core.config import Config
from openstack_reporter.core.exceptions import DiscoveryError
from openstack_reporter.services.base import field_value
from openstack_reporter.services.models import CURRENT_PROJECT_ID, CURRENT_PROJECT_NAME, Project
from openstack_reporter.services.progress import (
    NullProgressReporter, ProgressEventType, ProgressReporter
)


logger = logging.getLogger(__name__)

PROJECT_LIST_COMMAND = ['openstack', 'project', 'list', '-f', 'json']


class CollectionMode(str, Enum):
    # Explicit project: one session, scoped listing only
    SINGLE_PROJECT = 'single_project'
    # Discovered projects: one session per project
    ALL_PROJECTS = 'all_projects'
    # Discovery failed: one shared session asking for all tenants
    SHARED_SESSION = 'shared_session'


@dataclass
class ScopeResolution:
    mode: CollectionMode
    projects: List[Project]
    # Authenticated session for SINGLE_PROJECT and SHARED_SESSION modes
    session: Optional[ScopedSession] = None


class ScopeResolver:
    """Determines which projects the configured credentials can inventory."""

    def __init__(
        self,
        config: Config,
        session_factory: Optional[SessionFactory] = None,
        run_command: Optional[Callable[..., subprocess.CompletedProcess]] = None
    ):
        """Initialize the resolver.

        Args:
            config: Validated configuration.
            session_factory: Factory for authenticated sessions.
            run_command: Replacement for subprocess.run, used by the CLI fallback.
        """
        self.config = config
        self.session_factory = session_factory or SessionFactory(config)
        self.run_command = run_command or subprocess.run

    def resolve_scopes(self) -> List[Project]:
        """Return the projects visible to the current credentials.

        Never empty: discovery degrades to the inferred current project.

        Raises:
            AuthenticationError: If even the base session cannot authenticate.
        """
        return self.resolve().projects

    def resolve(self, progress: Optional[ProgressReporter] = None) -> ScopeResolution:
        """Resolve projects and the collection mode that goes with them.

        Raises:
            AuthenticationError: If the explicit project or the base session
                                 cannot authenticate.
        """
        progress = progress or NullProgressReporter()

        if self.config.single_project:
            project_name = self.config.project_name
            logger.info(f"Single project mode: {project_name}")
            progress.send(ProgressEventType.PROGRESS, f"Single project mode: {project_name}")

            session = self.session_factory.new_session(project_name=project_name)
            session.project = self.current_project(session)
            return ScopeResolution(CollectionMode.SINGLE_PROJECT, [session.project], session)

        progress.send(ProgressEventType.PROGRESS, "Multi-project mode - getting accessible projects")

        try:
            projects = self.list_projects_via_api()
            logger.info(f"Found {len(projects)} projects via identity API")
            return ScopeResolution(CollectionMode.ALL_PROJECTS, projects)
        except DiscoveryError as e:
            logger.warning(f"Identity API project listing failed: {e}")
            progress.send(ProgressEventType.PROGRESS, "API project list failed, trying CLI fallback")

        try:
            projects = self.list_projects_via_cli()
            logger.info(f"Found {len(projects)} projects via openstack CLI")
            return ScopeResolution(CollectionMode.ALL_PROJECTS, projects)
        except DiscoveryError as e:
            logger.warning(f"CLI project listing failed: {e}")
            progress.send(ProgressEventType.PROGRESS, "CLI project list failed, using fallback")

        session = self.session_factory.new_session(project_id=self.config.project_id)
        session.project = self.current_project(session)
        logger.info(f"Falling back to current project {session.project.name}")
        return ScopeResolution(CollectionMode.SHARED_SESSION, [session.project], session)

    def list_projects_via_api(self) -> List[Project]:
        """List projects through a domain-scoped identity session.

        Raises:
            DiscoveryError: On authentication, authorization, network or
                            decode failure, or when no project is visible.
        """
        try:
            session = self.session_factory.domain_session()
            raw_projects = list(session.identity.projects())
        except Exception as e:
            raise DiscoveryError(f"Failed to list projects via API: {e}", details=str(e))

        projects = []
        for raw in raw_projects:
            project_id = field_value(raw, 'id')
            if not project_id:
                continue
            projects.append(Project(
                id=project_id,
                name=field_value(raw, 'name') or project_id,
                description=field_value(raw, 'description') or '',
                domain_id=field_value(raw, 'domain_id') or '',
                enabled=bool(field_value(raw, 'is_enabled', field_value(raw, 'enabled', True))),
            ))

        if not projects:
            raise DiscoveryError("No projects accessible to user via API")
        return projects

    def list_projects_via_cli(self) -> List[Project]:
        """List projects by running ``openstack project list -f json``.

        Raises:
            DiscoveryError: On a missing binary, non-zero exit, timeout or
                            malformed output.
        """
        try:
            result = self.run_command(
                PROJECT_LIST_COMMAND,
                capture_output=True,
                text=True,
                env=self._cli_environment(),
                timeout=self.config.cli_timeout,
            )
        except FileNotFoundError:
            raise DiscoveryError("openstack CLI is not installed")
        except subprocess.TimeoutExpired:
            raise DiscoveryError(f"openstack CLI timed out after {self.config.cli_timeout}s")
        except OSError as e:
            raise DiscoveryError(f"Failed to execute 'openstack project list': {e}")

        if result.returncode != 0:
            output = (result.stderr or result.stdout or '').strip()
            raise DiscoveryError(
                f"'openstack project list' exited with {result.returncode}",
                details=output
            )

        try:
            rows = json.loads(result.stdout)
        except (json.JSONDecodeError, TypeError) as e:
            raise DiscoveryError(f"Failed to parse project list JSON: {e}")

        if not isinstance(rows, list):
            raise DiscoveryError("Project list JSON is not a list")

        projects = []
        for row in rows:
            if not isinstance(row, dict) or not row.get('ID'):
                raise DiscoveryError(f"Malformed project row: {row!r}")
            projects.append(Project(
                id=str(row['ID']),
                name=str(row.get('Name') or row['ID']),
                description=str(row.get('Description') or ''),
                enabled=bool(row.get('Enabled', True)),
            ))

        if not projects:
            raise DiscoveryError("openstack CLI returned no projects")
        return projects

    def current_project(self, session: ScopedSession) -> Project:
        """Describe the project a session is scoped to.

        Uses the configured project id, or the id carried by the token, to
        fetch details. Falls back to a placeholder built from configuration.
        """
        project_id = self.config.project_id or _token_project_id(session)

        if project_id:
            try:
                raw = session.identity.get_project(project_id)
                return Project(
                    id=field_value(raw, 'id') or project_id,
                    name=field_value(raw, 'name') or self.config.project_name or project_id,
                    description=field_value(raw, 'description') or '',
                    domain_id=field_value(raw, 'domain_id') or '',
                    enabled=bool(field_value(raw, 'is_enabled', True)),
                )
            except Exception as e:
                logger.debug(f"Project lookup for {project_id} failed: {e}")

        return Project(
            id=project_id or CURRENT_PROJECT_ID,
            name=self.config.project_name or CURRENT_PROJECT_NAME,
            description="Current working project",
            enabled=True,
        )

    def _cli_environment(self) -> Dict[str, str]:
        env = dict(os.environ)
        env.update({
            'OS_AUTH_URL': self.config.auth_url,
            'OS_USERNAME': self.config.username,
            'OS_PASSWORD': self.config.password,
            'OS_USER_DOMAIN_NAME': self.config.user_domain_name,
        })
        if self.config.region_name:
            env['OS_REGION_NAME'] = self.config.region_name
        if self.config.insecure:
            env['OS_INSECURE'] = 'true'
        return env


def _token_project_id(session: ScopedSession) -> Optional[str]:
    try:
        project_id = session.connection.current_project_id
    except Exception:
        return None
    return project_id if isinstance(project_id, str) and project_id else None
