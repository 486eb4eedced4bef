"""
Block storage collector for Cinder volumes.
"""
import logging
from typing import Any, List

from .base import BaseCollector, UNKNOWN, field_value, flag, integer, parse_timestamp, text
from .models import Resource, ResourceType, VolumeAttachment, VolumeProperties


logger = logging.getLogger(__name__)


class VolumeCollector(BaseCollector):
    """Collects Cinder volumes with attachment server names resolved."""

    @property
    def resource_type(self) -> ResourceType:
        return ResourceType.VOLUME

    def collect(self) -> List[Resource]:
        """Collect all volumes visible to the session.

        Raises:
            ServiceError: If listing fails
        """
        try:
            volumes = self._list_with_all_projects_fallback(self.session.block_storage.volumes, details=True)
        except Exception as e:
            self._handle_api_error(e, 'list')

        resources = []
        for volume in volumes:
            project_id, project_name = self._resolve_project(volume)
            attachments = self.attachments(field_value(volume, 'attachments', []))

            resources.append(Resource(
                id=text(volume, 'id'),
                name=text(volume, 'name'),
                type=ResourceType.VOLUME,
                project_id=project_id,
                project_name=project_name,
                status=text(volume, 'status', UNKNOWN),
                created_at=parse_timestamp(field_value(volume, 'created_at')),
                updated_at=parse_timestamp(field_value(volume, 'updated_at')),
                properties=VolumeProperties(
                    size=integer(volume, 'size'),
                    volume_type=text(volume, 'volume_type', UNKNOWN) or UNKNOWN,
                    bootable=flag(volume, 'is_bootable', 'bootable'),
                    attachments=attachments,
                    attached_to=attachments[0].server_name if attachments else '',
                ),
            ))

        logger.debug(f"Collected {len(resources)} volumes in {self.session.project_name}")
        return resources

    def attachments(self, raw_attachments: Any) -> List[VolumeAttachment]:
        if not isinstance(raw_attachments, list):
            return []

        result = []
        for raw in raw_attachments:
            server_id = text(raw, 'server_id')
            if not server_id:
                continue
            result.append(VolumeAttachment(
                server_id=server_id,
                server_name=self._server_name(server_id),
                device=text(raw, 'device'),
            ))
        return result

