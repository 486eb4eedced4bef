"""OpenStack resource collection package."""

from .base import BaseCollector
from .models import Project, Report, Resource, ResourceType, Summary
from .progress import ProgressEvent, ProgressEventType, ProgressReporter
from .compute import ServerCollector
from .block_storage import VolumeCollector
from .network import FloatingIPCollector, NetworkCollector, RouterCollector
from .load_balancer import LoadBalancerCollector
from .vpn import VPNConnectionCollector
from .container import ClusterCollector

__all__ = [
    'BaseCollector',
    'Project',
    'Report',
    'Resource',
    'ResourceType',
    'Summary',
    'ProgressEvent',
    'ProgressEventType',
    'ProgressReporter',
    'ServerCollector',
    'VolumeCollector',
    'FloatingIPCollector',
    'RouterCollector',
    'NetworkCollector',
    'LoadBalancerCollector',
    'VPNConnectionCollector',
    'ClusterCollector'
]
