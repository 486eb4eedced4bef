"""
Data models for the OpenStack resource report.
"""
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, Union


class ResourceType(str, Enum):
    """Closed set of resource types collected into a report."""
    SERVER = 'server'
    VOLUME = 'volume'
    FLOATING_IP = 'floating_ip'
    ROUTER = 'router'
    NETWORK = 'network'
    LOAD_BALANCER = 'load_balancer'
    VPN_CONNECTION = 'vpn_connection'
    CLUSTER = 'cluster'

    @property
    def plural(self) -> str:
        """Collection key used in progress events and summaries."""
        return _PLURALS[self]


# Placeholder identity used when the current project cannot be determined
CURRENT_PROJECT_ID = 'current-project'
CURRENT_PROJECT_NAME = 'Current Project'


_PLURALS = {
    ResourceType.SERVER: 'servers',
    ResourceType.VOLUME: 'volumes',
    ResourceType.FLOATING_IP: 'floating_ips',
    ResourceType.ROUTER: 'routers',
    ResourceType.NETWORK: 'networks',
    ResourceType.LOAD_BALANCER: 'load_balancers',
    ResourceType.VPN_CONNECTION: 'vpn_connections',
    ResourceType.CLUSTER: 'k8s_clusters',
}


@dataclass
class Project:
    """An OpenStack project (tenant scope)."""
    id: str
    name: str
    description: str = ''
    domain_id: str = ''
    enabled: bool = True


@dataclass
class ServerProperties:
    flavor_name: str            # 'Unknown' when unresolvable
    flavor_id: str
    networks: Dict[str, str]    # network name -> first address


@dataclass
class VolumeAttachment:
    server_id: str
    server_name: str            # raw server id when the lookup failed
    device: str = ''


@dataclass
class VolumeProperties:
    size: int
    volume_type: str
    bootable: bool
    attachments: List[VolumeAttachment] = field(default_factory=list)
    attached_to: str = ''       # display name of the first attachment


@dataclass
class FloatingIPProperties:
    floating_ip: str
    fixed_ip: str = ''
    port_id: str = ''
    floating_network_id: str = ''
    attached_resource_name: str = ''


@dataclass
class ExternalFixedIP:
    subnet_id: str
    ip_address: str


@dataclass
class ExternalGateway:
    network_id: str
    enable_snat: Optional[bool] = None
    external_fixed_ips: List[ExternalFixedIP] = field(default_factory=list)


@dataclass
class Route:
    destination: str
    nexthop: str


@dataclass
class RouterProperties:
    admin_state_up: bool
    external_gateway: Optional[ExternalGateway] = None
    routes: List[Route] = field(default_factory=list)


@dataclass
class Subnet:
    id: str
    name: str
    cidr: str
    gateway_ip: str = ''


@dataclass
class NetworkProperties:
    admin_state_up: bool
    shared: bool
    external: bool
    network_type: str
    subnets: List[Subnet] = field(default_factory=list)


@dataclass
class LoadBalancerProperties:
    vip_address: str
    vip_subnet_id: str
    provisioning_status: str
    operating_status: str
    description: str = ''


@dataclass
class VPNConnectionProperties:
    peer_address: str
    peer_id: str
    auth_mode: str
    mtu: Optional[int]
    vpn_service_id: str          # parent VPN service
    description: str = ''


@dataclass
class ClusterProperties:
    cluster_template_id: str
    node_count: int
    master_count: int
    keypair: str = ''


Properties = Union[
    ServerProperties,
    VolumeProperties,
    FloatingIPProperties,
    RouterProperties,
    NetworkProperties,
    LoadBalancerProperties,
    VPNConnectionProperties,
    ClusterProperties,
]

# Concrete properties class for each resource type
PROPERTIES_TYPES = {
    ResourceType.SERVER: ServerProperties,
    ResourceType.VOLUME: VolumeProperties,
    ResourceType.FLOATING_IP: FloatingIPProperties,
    ResourceType.ROUTER: RouterProperties,
    ResourceType.NETWORK: NetworkProperties,
    ResourceType.LOAD_BALANCER: LoadBalancerProperties,
    ResourceType.VPN_CONNECTION: VPNConnectionProperties,
    ResourceType.CLUSTER: ClusterProperties,
}


@dataclass
class Resource:
    """A normalized OpenStack resource.

    ``type`` determines the concrete class of ``properties``; consumers
    must switch on ``type`` before interpreting ``properties``.
    """
    id: str
    name: str
    type: ResourceType
    project_id: str
    project_name: str
    status: str
    properties: Properties
    created_at: Optional[datetime] = None    # None when the API does not expose it
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.project_name or not self.project_name.strip():
            raise ValueError(f"{self.type.value} resource {self.id} has no project name")
        expected = PROPERTIES_TYPES[self.type]
        if not isinstance(self.properties, expected):
            raise TypeError(
                f"{self.type.value} resource {self.id} requires {expected.__name__}, "
                f"got {type(self.properties).__name__}"
            )

    @property
    def display_name(self) -> str:
        return self.name or 'unnamed'


@dataclass(frozen=True)
class Summary:
    """Resource counts per type. Only built by ``from_resources``."""
    total_projects: int = 0
    servers: int = 0
    volumes: int = 0
    floating_ips: int = 0
    routers: int = 0
    networks: int = 0
    load_balancers: int = 0
    vpn_connections: int = 0
    clusters: int = 0

    @classmethod
    def from_resources(cls, resources: Iterable[Resource], total_projects: int) -> 'Summary':
        counts = Counter(r.type for r in resources)
        return cls(
            total_projects=total_projects,
            servers=counts[ResourceType.SERVER],
            volumes=counts[ResourceType.VOLUME],
            floating_ips=counts[ResourceType.FLOATING_IP],
            routers=counts[ResourceType.ROUTER],
            networks=counts[ResourceType.NETWORK],
            load_balancers=counts[ResourceType.LOAD_BALANCER],
            vpn_connections=counts[ResourceType.VPN_CONNECTION],
            clusters=counts[ResourceType.CLUSTER],
        )

    def count_for(self, resource_type: ResourceType) -> int:
        return getattr(self, _SUMMARY_FIELDS[resource_type])

    def by_type(self) -> Dict[str, int]:
        """Counts keyed by resource type value, in collection order."""
        return {rt.value: self.count_for(rt) for rt in ResourceType}

    @property
    def total_resources(self) -> int:
        return sum(self.count_for(rt) for rt in ResourceType)


_SUMMARY_FIELDS = {
    ResourceType.SERVER: 'servers',
    ResourceType.VOLUME: 'volumes',
    ResourceType.FLOATING_IP: 'floating_ips',
    ResourceType.ROUTER: 'routers',
    ResourceType.NETWORK: 'networks',
    ResourceType.LOAD_BALANCER: 'load_balancers',
    ResourceType.VPN_CONNECTION: 'vpn_connections',
    ResourceType.CLUSTER: 'clusters',
}


@dataclass(frozen=True)
class Report:
    """Immutable result of one full collection run."""
    generated_at: datetime
    projects: Tuple[Project, ...]
    resources: Tuple[Resource, ...]
    summary: Summary

    @classmethod
    def build(
        cls,
        generated_at: datetime,
        projects: Iterable[Project],
        resources: Iterable[Resource]
    ) -> 'Report':
        """Create a report whose summary is derived from its resources."""
        projects = tuple(projects)
        resources = tuple(resources)
        return cls(
            generated_at=generated_at,
            projects=projects,
            resources=resources,
            summary=Summary.from_resources(resources, len(projects)),
        )

    def resources_of(self, resource_type: ResourceType) -> List[Resource]:
        return [r for r in self.resources if r.type == resource_type]

    def resources_by_project(self) -> Dict[str, List[Resource]]:
        grouped: Dict[str, List[Resource]] = {}
        for resource in self.resources:
            grouped.setdefault(resource.project_name, []).append(resource)
        return grouped
