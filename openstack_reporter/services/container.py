"""
Magnum collector for container orchestration clusters.
"""
import logging
from typing import List

from .base import BaseCollector, UNKNOWN, field_value, integer, parse_timestamp, text
from .models import ClusterProperties, Resource, ResourceType


logger = logging.getLogger(__name__)


class ClusterCollector(BaseCollector):
    """Collects Magnum clusters when the cloud offers them.

    Magnum lists the token's own project only, so no owner filter is sent.
    """

    @property
    def resource_type(self) -> ResourceType:
        return ResourceType.CLUSTER

    @property
    def available(self) -> bool:
        return self.session.container_infra is not None

    def collect(self) -> List[Resource]:
        if not self.available:
            return []

        try:
            clusters = list(self.session.container_infra.clusters())
        except Exception as e:
            self._handle_api_error(e, 'list')

        resources = []
        for cluster in clusters:
            project_id, project_name = self._resolve_project(cluster)
            resources.append(Resource(
                id=text(cluster, 'id') or text(cluster, 'uuid'),
                name=text(cluster, 'name'),
                type=ResourceType.CLUSTER,
                project_id=project_id,
                project_name=project_name,
                status=text(cluster, 'status', UNKNOWN),
                created_at=parse_timestamp(field_value(cluster, 'created_at')),
                updated_at=parse_timestamp(field_value(cluster, 'updated_at')),
                properties=ClusterProperties(
                    cluster_template_id=text(cluster, 'cluster_template_id'),
                    node_count=integer(cluster, 'node_count'),
                    master_count=integer(cluster, 'master_count'),
                    keypair=text(cluster, 'keypair'),
                ),
            ))

        logger.debug(f"Collected {len(resources)} clusters in {self.session.project_name}")
        return resources
