"""
Snapshot persistence for the latest report and its rotating backups.
"""
import json
import logging
from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..services.models import (
    ClusterProperties, ExternalFixedIP, ExternalGateway, FloatingIPProperties,
    LoadBalancerProperties, NetworkProperties, Project, Properties, Report,
    Resource, ResourceType, Route, RouterProperties, ServerProperties, Subnet,
    Summary, VolumeAttachment, VolumeProperties, VPNConnectionProperties
)
from ..core.exceptions import SnapshotNotFoundError, StateError

logger = logging.getLogger(__name__)

REPORT_FILE = 'openstack_report.json'
BACKUP_PREFIX = 'backup_'
BACKUP_TIMESTAMP_FORMAT = '%Y%m%d-%H%M%S-%f'


class SnapshotManager:
    """Keeps one canonical report file and renames the previous one to a backup.

    Assumes a single writer per data directory.
    """

    def __init__(self, data_dir: Optional[Path] = None):
        """Initialize the snapshot manager.

        Args:
            data_dir: Directory holding the report. Defaults to ./data
        """
        self.data_dir = Path(data_dir) if data_dir is not None else Path('data')
        self.data_dir.mkdir(parents=True, exist_ok=True)

    @property
    def report_path(self) -> Path:
        return self.data_dir / REPORT_FILE

    def save_report(self, report: Report) -> Path:
        """Save a report, moving any existing one to a timestamped backup.

        Returns:
            Path to the saved report file

        Raises:
            StateError: If the backup or the write fails
        """
        try:
            if self.report_path.exists():
                stamp = datetime.now().strftime(BACKUP_TIMESTAMP_FORMAT)
                backup_path = self.data_dir / f"{BACKUP_PREFIX}{stamp}_{REPORT_FILE}"
                self.report_path.rename(backup_path)
                logger.info(f"Backed up previous report to {backup_path}")

            temp_file = self.report_path.with_suffix('.tmp')
            with open(temp_file, 'w') as f:
                json.dump(serialize_report(report), f, indent=2)

            temp_file.replace(self.report_path)

            logger.info(f"Saved report to {self.report_path}")
            return self.report_path

        except Exception as e:
            raise StateError(f"Failed to save report: {e}")

    def load_report(self) -> Report:
        """Load the saved report.

        Raises:
            SnapshotNotFoundError: If no report has been saved
            StateError: If the file is unreadable or corrupted
        """
        if not self.report_path.exists():
            raise SnapshotNotFoundError()

        try:
            with open(self.report_path, 'r') as f:
                data = json.load(f)

            return deserialize_report(data)

        except json.JSONDecodeError as e:
            raise StateError(f"Report file corrupted: {e}")
        except Exception as e:
            raise StateError(f"Failed to load report: {e}")

    def report_exists(self) -> bool:
        return self.report_path.exists()

    def report_age(self) -> timedelta:
        """Time since the report file was last written.

        Raises:
            SnapshotNotFoundError: If no report has been saved
        """
        try:
            mtime = self.report_path.stat().st_mtime
        except FileNotFoundError:
            raise SnapshotNotFoundError()
        return datetime.now() - datetime.fromtimestamp(mtime)

    def list_backups(self) -> List[Path]:
        """Backup files, oldest first."""
        backups = [
            path for path in self.data_dir.glob(f"{BACKUP_PREFIX}*_{REPORT_FILE}")
            if path.is_file()
        ]
        return sorted(backups, key=lambda p: p.name)

    def cleanup_backups(self, max_age: timedelta) -> int:
        """Remove backups whose modification time is older than ``max_age``.

        Returns:
            Number of backups deleted

        Raises:
            StateError: If a stale backup cannot be removed
        """
        cutoff = datetime.now() - max_age
        deleted = 0

        for path in self.list_backups():
            try:
                modified = datetime.fromtimestamp(path.stat().st_mtime)
            except FileNotFoundError:
                continue

            if modified < cutoff:
                try:
                    path.unlink()
                except OSError as e:
                    raise StateError(f"Failed to remove backup {path}: {e}")
                deleted += 1

        if deleted:
            logger.info(f"Removed {deleted} backups older than {max_age}")
        return deleted


def serialize_report(report: Report) -> Dict[str, Any]:
    """Serialize a Report to JSON-compatible data."""
    return {
        'generated_at': report.generated_at.isoformat(),
        'projects': [asdict(p) for p in report.projects],
        'resources': [_serialize_resource(r) for r in report.resources],
        'summary': _serialize_summary(report.summary),
    }


def deserialize_report(data: Dict[str, Any]) -> Report:
    """Rebuild a Report; the summary is recomputed from the resources."""
    return Report.build(
        generated_at=_parse_datetime(data['generated_at']),
        projects=[Project(**p) for p in data.get('projects', [])],
        resources=[_deserialize_resource(r) for r in data.get('resources', [])],
    )


def _serialize_resource(resource: Resource) -> Dict[str, Any]:
    return {
        'id': resource.id,
        'name': resource.name,
        'type': resource.type.value,
        'project_id': resource.project_id,
        'project_name': resource.project_name,
        'status': resource.status,
        'created_at': resource.created_at.isoformat() if resource.created_at else None,
        'updated_at': resource.updated_at.isoformat() if resource.updated_at else None,
        'properties': asdict(resource.properties),
    }


def _serialize_summary(summary: Summary) -> Dict[str, int]:
    data = {'total_projects': summary.total_projects}
    for resource_type in ResourceType:
        data[f"total_{_summary_key(resource_type)}"] = summary.count_for(resource_type)
    return data


def _summary_key(resource_type: ResourceType) -> str:
    if resource_type == ResourceType.CLUSTER:
        return 'clusters'
    return resource_type.plural


def _deserialize_resource(data: Dict[str, Any]) -> Resource:
    resource_type = ResourceType(data['type'])
    return Resource(
        id=data['id'],
        name=data.get('name', ''),
        type=resource_type,
        project_id=data['project_id'],
        project_name=data['project_name'],
        status=data.get('status', ''),
        created_at=_parse_datetime(data.get('created_at')),
        updated_at=_parse_datetime(data.get('updated_at')),
        properties=_deserialize_properties(resource_type, data.get('properties') or {}),
    )


def _deserialize_properties(resource_type: ResourceType, data: Dict[str, Any]) -> Properties:
    if resource_type == ResourceType.SERVER:
        return ServerProperties(**data)

    if resource_type == ResourceType.VOLUME:
        fields = dict(data)
        fields['attachments'] = [VolumeAttachment(**a) for a in data.get('attachments', [])]
        return VolumeProperties(**fields)

    if resource_type == ResourceType.FLOATING_IP:
        return FloatingIPProperties(**data)

    if resource_type == ResourceType.ROUTER:
        gateway = data.get('external_gateway')
        if gateway is not None:
            gateway = ExternalGateway(
                network_id=gateway['network_id'],
                enable_snat=gateway.get('enable_snat'),
                external_fixed_ips=[ExternalFixedIP(**ip) for ip in gateway.get('external_fixed_ips', [])],
            )
        return RouterProperties(
            admin_state_up=data['admin_state_up'],
            external_gateway=gateway,
            routes=[Route(**r) for r in data.get('routes', [])],
        )

    if resource_type == ResourceType.NETWORK:
        fields = dict(data)
        fields['subnets'] = [Subnet(**s) for s in data.get('subnets', [])]
        return NetworkProperties(**fields)

    if resource_type == ResourceType.LOAD_BALANCER:
        return LoadBalancerProperties(**data)

    if resource_type == ResourceType.VPN_CONNECTION:
        return VPNConnectionProperties(**data)

    return ClusterProperties(**data)


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
