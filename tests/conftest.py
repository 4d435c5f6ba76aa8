from dataclasses import replace
from os import path

import pytest

from cyberops.catalog import Catalog, load_catalog
from cyberops.sim import Host, HostStatus, make_initial_hosts

## Helpers


def path_testdata(filename: str) -> str:
    """Returns the absolute path of a test data file (in ./testdata)

    Arguments:
    filename    - filename to append to path of ./testdata
    """
    current_dir = path.dirname(path.realpath(__file__))
    return path.join(current_dir, f'testdata/{filename}')


def get_host(hosts: tuple[Host, ...], host_id: str) -> Host:
    host = next((h for h in hosts if h.id == host_id), None)
    assert host, f'Host {host_id} does not exist'
    return host


def with_host(hosts: tuple[Host, ...], host_id: str, **changes) -> tuple[Host, ...]:
    """Return `hosts` with the fields in `changes` set on one host"""
    return tuple(
        replace(h, **changes) if h.id == host_id else h for h in hosts
    )


def make_host(host_id: str, vuln_id: str, **changes) -> Host:
    """A spawned host in warning at stage 0"""
    host = Host(
        id=host_id,
        vuln_id=vuln_id,
        spawn_delay_sec=0,
        spawned=True,
        spawn_countdown=0,
        status=HostStatus.WARNING,
        stage_index=0,
        stage_time_left=10,
    )
    return replace(host, **changes)


## Fixtures


@pytest.fixture(scope='session')
def small_catalog() -> Catalog:
    """Three hosts, two vulnerabilities, see testdata/catalogs"""
    return Catalog.load_from_file(path_testdata('catalogs/small_catalog.yml'))


@pytest.fixture(scope='session')
def default_catalog() -> Catalog:
    return load_catalog()


@pytest.fixture
def hosts(small_catalog: Catalog) -> tuple[Host, ...]:
    return make_initial_hosts(small_catalog)
