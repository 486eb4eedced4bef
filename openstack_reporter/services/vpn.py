"""
VPNaaS collector for IPsec site connections.
"""
import logging
from typing import List

from .base import BaseCollector, UNKNOWN, field_value, integer, parse_timestamp, text
from .models import Resource, ResourceType, VPNConnectionProperties


logger = logging.getLogger(__name__)


def connection_name(raw) -> str:
    """Connection name, or ``vpn-connection-<id prefix>`` for unnamed ones."""
    name = text(raw, 'name')
    if name:
        return name
    return f"vpn-connection-{text(raw, 'id')[:8]}"


class VPNConnectionCollector(BaseCollector):

    @property
    def resource_type(self) -> ResourceType:
        return ResourceType.VPN_CONNECTION

    def collect(self) -> List[Resource]:
        try:
            connections = list(self.session.network.vpn_ipsec_site_connections(**self._owner_query()))
        except Exception as e:
            self._handle_api_error(e, 'list')

        resources = []
        for conn in connections:
            project_id, project_name = self._resolve_project(conn)
            resources.append(Resource(
                id=text(conn, 'id'),
                name=connection_name(conn),
                type=ResourceType.VPN_CONNECTION,
                project_id=project_id,
                project_name=project_name,
                status=text(conn, 'status', UNKNOWN),
                created_at=parse_timestamp(field_value(conn, 'created_at')),
                updated_at=parse_timestamp(field_value(conn, 'updated_at')),
                properties=VPNConnectionProperties(
                    peer_address=text(conn, 'peer_address'),
                    peer_id=text(conn, 'peer_id'),
                    auth_mode=text(conn, 'auth_mode'),
                    mtu=integer(conn, 'mtu', default=None),
                    vpn_service_id=text(conn, 'vpnservice_id') or text(conn, 'vpn_service_id'),
                    description=text(conn, 'description'),
                ),
            ))

        logger.debug(f"Collected {len(resources)} VPN connections in {self.session.project_name}")
        return resources
