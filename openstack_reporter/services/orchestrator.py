"""
Report builder coordinating scope discovery and per-type collection.
"""
import logging
import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional, Type

from .base import BaseCollector
from .block_storage import VolumeCollector
from .compute import ServerCollector
from .container import ClusterCollector
from .load_balancer import LoadBalancerCollector
from .models import Project, Report, Resource
from .network import FloatingIPCollector, NetworkCollector, RouterCollector
from .progress import NullProgressReporter, ProgressEventType, ProgressReporter
from .vpn import VPNConnectionCollector
from ..auth.scopes import CollectionMode, ScopeResolver
from ..auth.session import ScopedSession, SessionFactory
from ..core.config import Config
from ..core.exceptions import AuthenticationError, ServiceError


logger = logging.getLogger(__name__)


# Collection order within every scope
COLLECTORS: List[Type[BaseCollector]] = [
    ServerCollector,
    VolumeCollector,
    FloatingIPCollector,
    RouterCollector,
    NetworkCollector,
    LoadBalancerCollector,
    VPNConnectionCollector,
    ClusterCollector,
]


class ReportBuilder:
    """Builds a Report across every project the credentials can see."""

    def __init__(
        self,
        config: Config,
        session_factory: Optional[SessionFactory] = None,
        scope_resolver: Optional[ScopeResolver] = None
    ):
        """Initialize the builder.

        Args:
            config: Validated configuration
            session_factory: Factory for project-scoped sessions
            scope_resolver: Resolver for the projects to collect
        """
        self.config = config
        self.session_factory = session_factory or SessionFactory(config)
        self.scope_resolver = scope_resolver or ScopeResolver(config, self.session_factory)

    def build_report(
        self,
        progress: Optional[ProgressReporter] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> Report:
        """Collect every resource type from every resolved project.

        Per-type and per-project failures are reported as progress events
        and skipped. When ``cancel_event`` is set, collection stops at the
        next project or type boundary and the partial results are returned.

        Returns:
            Report whose summary is derived from the collected resources

        Raises:
            AuthenticationError: If the session needed to start collection
                                 cannot authenticate
        """
        progress = progress or NullProgressReporter()
        cancel_event = cancel_event or threading.Event()
        generated_at = datetime.now(timezone.utc)

        resolution = self.scope_resolver.resolve(progress)
        projects = resolution.projects
        resources: List[Resource] = []

        if resolution.mode == CollectionMode.ALL_PROJECTS:
            resources = self._collect_projects(projects, progress, cancel_event)
        else:
            project_names = {p.id: p.name for p in projects}
            resources = self._collect_scope(
                resolution.session,
                project_names,
                all_projects=resolution.mode == CollectionMode.SHARED_SESSION,
                progress=progress,
                cancel_event=cancel_event,
            )

        if cancel_event.is_set():
            logger.info(f"Collection cancelled with {len(resources)} resources collected")

        report = Report.build(generated_at, projects, resources)
        progress.send(
            ProgressEventType.SUMMARY,
            f"Collected {report.summary.total_resources} resources from {len(projects)} projects",
            count=report.summary.total_resources,
            summary=report.summary.by_type(),
        )
        logger.info(f"Report built: {report.summary.total_resources} resources, {len(projects)} projects")
        return report

    def _collect_projects(
        self,
        projects: List[Project],
        progress: ProgressReporter,
        cancel_event: threading.Event
    ) -> List[Resource]:
        resources: List[Resource] = []
        total = len(projects)

        for step, project in enumerate(projects, 1):
            if cancel_event.is_set():
                break

            progress.send(
                ProgressEventType.PROJECT_START,
                f"Collecting resources from project: {project.name}",
                current_step=step,
                total_steps=total,
                project=project.name,
            )

            try:
                session = self.session_factory.new_session(project_id=project.id)
            except AuthenticationError as e:
                logger.warning(f"Skipping project {project.name} ({project.id}): {e}")
                progress.send(
                    ProgressEventType.PROJECT_ERROR,
                    f"Failed to get resources for project {project.name}: {e.message}",
                    current_step=step,
                    total_steps=total,
                    project=project.name,
                )
                continue

            session.project = project
            found = self._collect_scope(
                session,
                {project.id: project.name},
                all_projects=False,
                progress=progress,
                cancel_event=cancel_event,
            )
            resources.extend(found)

            progress.send(
                ProgressEventType.PROJECT_COMPLETE,
                f"Found {len(found)} resources in project {project.name}",
                current_step=step,
                total_steps=total,
                project=project.name,
                count=len(found),
            )

        return resources

    def _collect_scope(
        self,
        session: ScopedSession,
        project_names: Dict[str, str],
        all_projects: bool,
        progress: ProgressReporter,
        cancel_event: threading.Event
    ) -> List[Resource]:
        """Run every collector against one session, skipping failed types."""
        resources: List[Resource] = []
        project = session.project_name or ''

        for collector_class in COLLECTORS:
            if cancel_event.is_set():
                break

            collector = collector_class(session, project_names, all_projects=all_projects)
            key = collector.resource_type.plural

            progress.send(
                ProgressEventType.RESOURCE_START,
                f"Collecting {key.replace('_', ' ')}",
                project=project,
                resource_type=key,
            )

            # Optional services still report the type as visited
            if not collector.available:
                logger.info(f"Skipping {key} in {project}: service not available")
                progress.send(
                    ProgressEventType.RESOURCE_COMPLETE,
                    f"Service not available, collected 0 {key.replace('_', ' ')}",
                    project=project,
                    resource_type=key,
                    count=0,
                )
                continue

            try:
                found = collector.collect()
            except ServiceError as e:
                logger.warning(f"Failed to collect {key} in {project}: {e}")
                progress.send(
                    ProgressEventType.RESOURCE_ERROR,
                    f"Failed to collect {key.replace('_', ' ')}: {e.message}",
                    project=project,
                    resource_type=key,
                )
                continue
            except Exception as e:
                logger.error(f"Unexpected error collecting {key} in {project}: {e}")
                progress.send(
                    ProgressEventType.RESOURCE_ERROR,
                    f"Unexpected error collecting {key.replace('_', ' ')}: {e}",
                    project=project,
                    resource_type=key,
                )
                continue

            resources.extend(found)
            progress.send(
                ProgressEventType.RESOURCE_COMPLETE,
                f"Collected {len(found)} {key.replace('_', ' ')}",
                project=project,
                resource_type=key,
                count=len(found),
            )

        return resources
