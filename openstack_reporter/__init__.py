"""
OpenStack Reporter - Point-in-time inventory of OpenStack resources.

Collects servers, volumes, floating IPs, routers, networks, load balancers,
VPN connections and container clusters from every project visible to a set
of credentials, and keeps the resulting report as a JSON snapshot.
"""

__version__ = "1.0.0"
__author__ = "OpenStack Reporter Team"

from openstack_reporter.core.exceptions import ReporterError

__all__ = ["ReporterError", "__version__"]
