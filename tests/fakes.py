"""
Fake openstacksdk sessions and records shared by the test suite.
"""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import Mock

from openstack_reporter.auth.session import ScopedSession
from openstack_reporter.core.config import Config
from openstack_reporter.services.models import (
    Project, Resource, ResourceType, ServerProperties, VolumeProperties
)


def make_config(**overrides) -> Config:
    values = {
        'auth_url': 'https://keystone.example.com:5000/v3',
        'username': 'reporter',
        'password': 'secret',
    }
    values.update(overrides)
    return Config(**values)


def make_session(project=None, load_balancer=True, container_infra=False) -> ScopedSession:
    """A session whose proxies list nothing until a test says otherwise."""
    compute = Mock()
    compute.servers.return_value = []
    block_storage = Mock()
    block_storage.volumes.return_value = []
    network = Mock()
    network.ips.return_value = []
    network.routers.return_value = []
    network.networks.return_value = []
    network.subnets.return_value = []
    network.vpn_ipsec_site_connections.return_value = []

    lb_proxy = None
    if load_balancer:
        lb_proxy = Mock()
        lb_proxy.load_balancers.return_value = []

    magnum = None
    if container_infra:
        magnum = Mock()
        magnum.clusters.return_value = []

    connection = Mock()
    connection.current_project_id = None

    return ScopedSession(
        connection=connection,
        compute=compute,
        block_storage=block_storage,
        network=network,
        identity=Mock(),
        load_balancer=lb_proxy,
        container_infra=magnum,
        project=project,
    )


def server(id, name='', project_id='', flavor=None, addresses=None, status='ACTIVE', created_at=None):
    return SimpleNamespace(
        id=id,
        name=name or id,
        project_id=project_id,
        status=status,
        flavor=flavor if flavor is not None else {'original_name': 'm1.small', 'id': 'f1'},
        addresses=addresses or {},
        created_at=created_at,
        updated_at=None,
    )


def volume(id, name='', project_id='', attachments=None, size=10):
    return SimpleNamespace(
        id=id,
        name=name,
        project_id=project_id,
        status='in-use' if attachments else 'available',
        size=size,
        volume_type='ssd',
        is_bootable=False,
        attachments=attachments or [],
        created_at='2024-03-01T10:00:00.000000',
        updated_at=None,
    )


def network(id, name='', project_id=''):
    return SimpleNamespace(
        id=id,
        name=name or id,
        project_id=project_id,
        status='ACTIVE',
        is_admin_state_up=True,
        is_shared=False,
        is_router_external=False,
        provider_network_type='vxlan',
        created_at=None,
        updated_at=None,
    )


def router(id, name='', project_id='', gateway=None, routes=None):
    return SimpleNamespace(
        id=id,
        name=name or id,
        project_id=project_id,
        status='ACTIVE',
        is_admin_state_up=True,
        external_gateway_info=gateway,
        routes=routes or [],
        created_at=None,
        updated_at=None,
    )


def sample_resource(id='srv-1', project=None, created_at=None) -> Resource:
    project = project or Project(id='p-alpha', name='alpha')
    return Resource(
        id=id,
        name=f"name-{id}",
        type=ResourceType.SERVER,
        project_id=project.id,
        project_name=project.name,
        status='ACTIVE',
        created_at=created_at or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        properties=ServerProperties(flavor_name='m1.small', flavor_id='f1', networks={'private': '10.0.0.5'}),
    )


def sample_volume(id='vol-1', project=None) -> Resource:
    project = project or Project(id='p-alpha', name='alpha')
    return Resource(
        id=id,
        name='',
        type=ResourceType.VOLUME,
        project_id=project.id,
        project_name=project.name,
        status='available',
        properties=VolumeProperties(size=20, volume_type='ssd', bootable=True),
    )
