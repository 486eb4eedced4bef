"""
Neutron collectors: floating IPs, routers and networks.
"""
import logging
from typing import Any, List, Optional

from .base import BaseCollector, UNKNOWN, field_value, flag, parse_timestamp, text
from .models import (
    ExternalFixedIP, ExternalGateway, FloatingIPProperties, NetworkProperties,
    Resource, ResourceType, Route, RouterProperties, Subnet
)


logger = logging.getLogger(__name__)

# Port owners prefixed with this belong to Nova servers
COMPUTE_OWNER_PREFIX = 'compute:'


def decode_gateway(raw: Any) -> Optional[ExternalGateway]:
    """Decode a router's ``external_gateway_info``; None when there is no gateway."""
    network_id = text(raw, 'network_id')
    if not network_id:
        return None

    enable_snat = field_value(raw, 'enable_snat')
    fixed_ips = []
    raw_ips = field_value(raw, 'external_fixed_ips', [])
    if isinstance(raw_ips, list):
        for raw_ip in raw_ips:
            ip_address = text(raw_ip, 'ip_address')
            if ip_address:
                fixed_ips.append(ExternalFixedIP(subnet_id=text(raw_ip, 'subnet_id'), ip_address=ip_address))

    return ExternalGateway(
        network_id=network_id,
        enable_snat=enable_snat if isinstance(enable_snat, bool) else None,
        external_fixed_ips=fixed_ips,
    )


def decode_routes(raw_routes: Any) -> List[Route]:
    if not isinstance(raw_routes, list):
        return []
    routes = []
    for raw in raw_routes:
        destination = text(raw, 'destination')
        nexthop = text(raw, 'nexthop')
        if destination and nexthop:
            routes.append(Route(destination=destination, nexthop=nexthop))
    return routes


class FloatingIPCollector(BaseCollector):
    """Collects floating IPs and names the resource behind each port."""

    @property
    def resource_type(self) -> ResourceType:
        return ResourceType.FLOATING_IP

    def collect(self) -> List[Resource]:
        try:
            floating_ips = list(self.session.network.ips(**self._owner_query()))
        except Exception as e:
            self._handle_api_error(e, 'list')

        resources = []
        for fip in floating_ips:
            project_id, project_name = self._resolve_project(fip)
            address = text(fip, 'floating_ip_address')
            port_id = text(fip, 'port_id')

            resources.append(Resource(
                id=text(fip, 'id'),
                name=address,
                type=ResourceType.FLOATING_IP,
                project_id=project_id,
                project_name=project_name,
                status=text(fip, 'status', UNKNOWN),
                created_at=parse_timestamp(field_value(fip, 'created_at')),
                updated_at=parse_timestamp(field_value(fip, 'updated_at')),
                properties=FloatingIPProperties(
                    floating_ip=address,
                    fixed_ip=text(fip, 'fixed_ip_address'),
                    port_id=port_id,
                    floating_network_id=text(fip, 'floating_network_id'),
                    attached_resource_name=self.attached_resource_name(port_id),
                ),
            ))

        logger.debug(f"Collected {len(resources)} floating IPs in {self.session.project_name}")
        return resources

    def attached_resource_name(self, port_id: str) -> str:
        """Name the device behind a port.

        Server ports resolve to the server name, other devices to their id.
        A failed port lookup leaves the port id.
        """
        if not port_id:
            return ''

        try:
            port = self.session.network.get_port(port_id)
        except Exception as e:
            logger.debug(f"Port lookup for {port_id} failed: {e}")
            return port_id

        device_id = text(port, 'device_id')
        if not device_id:
            return ''
        if text(port, 'device_owner').startswith(COMPUTE_OWNER_PREFIX):
            return self._server_name(device_id)
        return device_id


class RouterCollector(BaseCollector):
    """Collects Neutron routers with gateway and static routes."""

    @property
    def resource_type(self) -> ResourceType:
        return ResourceType.ROUTER

    def collect(self) -> List[Resource]:
        try:
            routers = list(self.session.network.routers(**self._owner_query()))
        except Exception as e:
            self._handle_api_error(e, 'list')

        resources = []
        for router in routers:
            project_id, project_name = self._resolve_project(router)
            resources.append(Resource(
                id=text(router, 'id'),
                name=text(router, 'name'),
                type=ResourceType.ROUTER,
                project_id=project_id,
                project_name=project_name,
                status=text(router, 'status', UNKNOWN),
                created_at=parse_timestamp(field_value(router, 'created_at')),
                updated_at=parse_timestamp(field_value(router, 'updated_at')),
                properties=RouterProperties(
                    admin_state_up=flag(router, 'is_admin_state_up', 'admin_state_up', default=True),
                    external_gateway=decode_gateway(field_value(router, 'external_gateway_info')),
                    routes=decode_routes(field_value(router, 'routes', [])),
                ),
            ))

        logger.debug(f"Collected {len(resources)} routers in {self.session.project_name}")
        return resources


class NetworkCollector(BaseCollector):
    """Collects Neutron networks with their subnets."""

    @property
    def resource_type(self) -> ResourceType:
        return ResourceType.NETWORK

    def collect(self) -> List[Resource]:
        try:
            networks = list(self.session.network.networks(**self._owner_query()))
        except Exception as e:
            self._handle_api_error(e, 'list')

        resources = []
        for network in networks:
            project_id, project_name = self._resolve_project(network)
            network_id = text(network, 'id')
            resources.append(Resource(
                id=network_id,
                name=text(network, 'name'),
                type=ResourceType.NETWORK,
                project_id=project_id,
                project_name=project_name,
                status=text(network, 'status', UNKNOWN),
                created_at=parse_timestamp(field_value(network, 'created_at')),
                updated_at=parse_timestamp(field_value(network, 'updated_at')),
                properties=NetworkProperties(
                    admin_state_up=flag(network, 'is_admin_state_up', 'admin_state_up', default=True),
                    shared=flag(network, 'is_shared', 'shared'),
                    external=flag(network, 'is_router_external', 'router:external'),
                    network_type=text(network, 'provider_network_type', UNKNOWN) or UNKNOWN,
                    subnets=self.subnets(network_id),
                ),
            ))

        logger.debug(f"Collected {len(resources)} networks in {self.session.project_name}")
        return resources

    def subnets(self, network_id: str) -> List[Subnet]:
        """List a network's subnets; empty when the lookup fails."""
        if not network_id:
            return []
        try:
            raw_subnets = list(self.session.network.subnets(network_id=network_id))
        except Exception as e:
            logger.debug(f"Subnet listing for network {network_id} failed: {e}")
            return []

        return [
            Subnet(
                id=text(raw, 'id'),
                name=text(raw, 'name'),
                cidr=text(raw, 'cidr'),
                gateway_ip=text(raw, 'gateway_ip'),
            )
            for raw in raw_subnets
        ]
