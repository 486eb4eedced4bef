"""
Pytest configuration and shared fixtures for OpenStack Reporter tests.
"""

import pytest

from openstack_reporter.services.models import Project

from fakes import make_config, make_session


@pytest.fixture
def config(tmp_path):
    """Multi-project configuration writing snapshots into a temp directory."""
    return make_config(data_dir=tmp_path / "data")


@pytest.fixture
def alpha():
    return Project(id='p-alpha', name='alpha')


@pytest.fixture
def beta():
    return Project(id='p-beta', name='beta')


@pytest.fixture
def alpha_session(alpha):
    return make_session(project=alpha)
