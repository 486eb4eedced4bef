"""
Octavia collector for load balancers.
"""
import logging
from typing import List

from .base import BaseCollector, UNKNOWN, field_value, parse_timestamp, text
from .models import LoadBalancerProperties, Resource, ResourceType


logger = logging.getLogger(__name__)


class LoadBalancerCollector(BaseCollector):
    """Collects Octavia load balancers when the cloud offers them."""

    @property
    def resource_type(self) -> ResourceType:
        return ResourceType.LOAD_BALANCER

    @property
    def available(self) -> bool:
        return self.session.load_balancer is not None

    def collect(self) -> List[Resource]:
        """Collect load balancers; empty when the service is not deployed.

        Raises:
            ServiceError: If listing fails
        """
        if not self.available:
            return []

        try:
            load_balancers = list(self.session.load_balancer.load_balancers(**self._owner_query()))
        except Exception as e:
            self._handle_api_error(e, 'list')

        resources = []
        for lb in load_balancers:
            project_id, project_name = self._resolve_project(lb)
            provisioning_status = text(lb, 'provisioning_status', UNKNOWN)
            resources.append(Resource(
                id=text(lb, 'id'),
                name=text(lb, 'name'),
                type=ResourceType.LOAD_BALANCER,
                project_id=project_id,
                project_name=project_name,
                status=provisioning_status,
                created_at=parse_timestamp(field_value(lb, 'created_at')),
                updated_at=parse_timestamp(field_value(lb, 'updated_at')),
                properties=LoadBalancerProperties(
                    vip_address=text(lb, 'vip_address'),
                    vip_subnet_id=text(lb, 'vip_subnet_id'),
                    provisioning_status=provisioning_status,
                    operating_status=text(lb, 'operating_status', UNKNOWN),
                    description=text(lb, 'description'),
                ),
            ))

        logger.debug(f"Collected {len(resources)} load balancers in {self.session.project_name}")
        return resources
