"""
Base collector interface for OpenStack resource types.
"""
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from openstack import exceptions as sdk_exceptions

from .models import CURRENT_PROJECT_ID, CURRENT_PROJECT_NAME, Resource, ResourceType
from ..core.exceptions import ServiceError


logger = logging.getLogger(__name__)

UNKNOWN = 'Unknown'


def field_value(raw: Any, key: str, default: Any = None) -> Any:
    """Read a field from an SDK resource or a plain dict."""
    if raw is None:
        return default
    if isinstance(raw, dict):
        value = raw.get(key, default)
    else:
        value = getattr(raw, key, default)
    return default if value is None else value


def text(raw: Any, key: str, default: str = '') -> str:
    """Read a field as a string, falling back to ``default`` on missing or non-scalar data."""
    value = field_value(raw, key)
    if isinstance(value, (str, int, float)) and not isinstance(value, bool):
        return str(value)
    return default


def flag(raw: Any, *keys: str, default: bool = False) -> bool:
    """Read the first present boolean field among ``keys``."""
    for key in keys:
        value = field_value(raw, key)
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ('true', 'false'):
            return value.lower() == 'true'
    return default


def integer(raw: Any, key: str, default: Optional[int] = 0) -> Optional[int]:
    value = field_value(raw, key)
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an API timestamp into an aware UTC datetime, or None."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class BaseCollector(ABC):
    """Abstract base class for all resource collectors."""

    def __init__(self, session: Any, project_names: Dict[str, str], all_projects: bool = False):
        """Initialize the collector.

        Args:
            session: Authenticated ScopedSession
            project_names: Project id -> name for owner attribution
            all_projects: Ask for every tenant's resources (shared session mode).
                          Per-project sessions always list scoped.
        """
        self.session = session
        self.project_names = project_names
        self.all_projects = all_projects
        self._server_names: Dict[str, str] = {}

    @property
    @abstractmethod
    def resource_type(self) -> ResourceType:
        """Type of the resources this collector produces."""
        pass

    @property
    def available(self) -> bool:
        """Whether the session offers the capability this collector needs."""
        return True

    @abstractmethod
    def collect(self) -> List[Resource]:
        """Fetch and normalize all resources of this type.

        Returns:
            List of normalized resources

        Raises:
            ServiceError: If the list call fails
        """
        pass

    def _list_with_all_projects_fallback(self, list_call: Callable[..., Any], **query) -> List[Any]:
        """List through an API with an ``all_projects`` switch (Nova, Cinder).

        In all-projects mode the privileged listing is tried first; if it is
        rejected the same call is retried for the caller's own project.
        """
        if self.all_projects:
            try:
                return list(list_call(all_projects=True, **query))
            except sdk_exceptions.SDKException as e:
                logger.info(
                    f"All-projects listing of {self.resource_type.plural} rejected, "
                    f"falling back to current project: {e}"
                )
        return list(list_call(**query))

    def _owner_query(self) -> Dict[str, str]:
        """Owner filter for APIs that return every visible tenant's resources (Neutron, Octavia).

        Per-project sessions restrict listing to their own project; the
        shared session lists everything it can see.
        """
        if self.all_projects:
            return {}
        project_id = self.session.project_id
        if project_id and project_id != CURRENT_PROJECT_ID:
            return {'project_id': project_id}
        return {}

    def _resolve_project(self, raw: Any) -> Tuple[str, str]:
        """Return (project_id, project_name) for an item.

        Items whose owner is unknown are attributed to the session's project.
        """
        owner_id = text(raw, 'project_id') or text(raw, 'tenant_id')
        if owner_id and owner_id in self.project_names:
            return owner_id, self.project_names[owner_id]
        if self.session.project is None:
            return CURRENT_PROJECT_ID, CURRENT_PROJECT_NAME
        return self.session.project_id, self.session.project_name

    def _server_name(self, server_id: str) -> str:
        """Resolve a server id to its name, keeping the id if the lookup fails."""
        if server_id not in self._server_names:
            try:
                server = self.session.compute.get_server(server_id)
                self._server_names[server_id] = text(server, 'name') or server_id
            except Exception as e:
                logger.debug(f"Server lookup for {server_id} failed: {e}")
                self._server_names[server_id] = server_id
        return self._server_names[server_id]

    def _handle_api_error(self, error: Exception, operation: str) -> None:
        """Convert an API error to ServiceError.

        Raises:
            ServiceError: Wrapped error with context
        """
        project = self.session.project_name or 'unknown project'
        error_message = f"{self.resource_type.plural} {operation} failed in {project}: {error}"
        raise ServiceError(error_message, details=str(error))
