"""
Compute collector for Nova servers.
"""
import logging
from typing import Any, Dict, List, Tuple

from .base import BaseCollector, UNKNOWN, field_value, parse_timestamp, text
from .models import Resource, ResourceType, ServerProperties


logger = logging.getLogger(__name__)


def extract_networks(addresses: Any) -> Dict[str, str]:
    """Map each network name to its first address.

    Nova reports ``{net_name: [{"addr": ..., "version": ...}, ...]}``;
    anything not shaped like that is skipped.
    """
    networks: Dict[str, str] = {}
    if not isinstance(addresses, dict):
        return networks

    for net_name, entries in addresses.items():
        if not isinstance(entries, list) or not entries:
            continue
        addr = text(entries[0], 'addr')
        if addr:
            networks[str(net_name)] = addr
    return networks


class ServerCollector(BaseCollector):
    """Collects Nova servers with flavor names resolved."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._flavor_cache: Dict[str, str] = {}

    @property
    def resource_type(self) -> ResourceType:
        return ResourceType.SERVER

    def collect(self) -> List[Resource]:
        """Collect all servers visible to the session.

        Returns:
            List of servers as Resource objects

        Raises:
            ServiceError: If listing fails
        """
        try:
            servers = self._list_with_all_projects_fallback(self.session.compute.servers, details=True)
        except Exception as e:
            self._handle_api_error(e, 'list')

        resources = []
        for server in servers:
            project_id, project_name = self._resolve_project(server)
            flavor_name, flavor_id = self.flavor_details(field_value(server, 'flavor'))

            resources.append(Resource(
                id=text(server, 'id'),
                name=text(server, 'name'),
                type=ResourceType.SERVER,
                project_id=project_id,
                project_name=project_name,
                status=text(server, 'status', UNKNOWN),
                created_at=parse_timestamp(field_value(server, 'created_at')),
                updated_at=parse_timestamp(field_value(server, 'updated_at')),
                properties=ServerProperties(
                    flavor_name=flavor_name,
                    flavor_id=flavor_id,
                    networks=extract_networks(field_value(server, 'addresses')),
                ),
            ))

        logger.debug(f"Collected {len(resources)} servers in {self.session.project_name}")
        return resources

    def flavor_details(self, flavor_ref: Any) -> Tuple[str, str]:
        """Return (flavor_name, flavor_id) for a server's flavor reference.

        Newer compute microversions embed the flavor name; older ones only
        carry the id, which is then looked up. A failed lookup keeps the id
        and reports the name as Unknown.
        """
        if flavor_ref is None:
            return UNKNOWN, ''

        flavor_id = text(flavor_ref, 'id')
        embedded_name = text(flavor_ref, 'original_name') or text(flavor_ref, 'name')
        if embedded_name:
            return embedded_name, flavor_id
        if not flavor_id:
            return UNKNOWN, ''

        if flavor_id not in self._flavor_cache:
            try:
                flavor = self.session.compute.get_flavor(flavor_id)
                self._flavor_cache[flavor_id] = text(flavor, 'name', UNKNOWN) or UNKNOWN
            except Exception as e:
                logger.debug(f"Flavor lookup for {flavor_id} failed: {e}")
                self._flavor_cache[flavor_id] = UNKNOWN

        return self._flavor_cache[flavor_id], flavor_id

