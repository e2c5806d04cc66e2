"""Shared fixtures for LockShield tests."""

import pytest

from lock_shield.core.matcher import Advisory, AdvisoryBranch

# 2021-01-01T00:00:00Z
FIX_TIME = 1609459200


def make_advisory(package, title="Advisory", branches=None, cve=None, link=None):
    """Build an advisory for a package with {branch name: (versions, timestamp)}."""
    branches = branches if branches is not None else {"1.x": ([">=1.0.0,<1.0.71"], FIX_TIME)}
    return Advisory(
        title=title,
        link=link or f"https://example.com/{package}/{title.replace(' ', '-')}",
        cve=cve,
        reference=f"composer://{package}",
        branches=[
            AdvisoryBranch(name=name, versions=versions, timestamp=timestamp)
            for name, (versions, timestamp) in branches.items()
        ],
    )


@pytest.fixture
def flysystem_advisory():
    return make_advisory(
        "league/flysystem",
        title="TOCTOU Race Condition enabling remote code execution",
        cve="CVE-2021-32708",
        branches={"1.x": ([">=1.0.0,<1.0.71"], FIX_TIME)},
    )


@pytest.fixture
def twig_advisory():
    return make_advisory(
        "twig/twig",
        title="Sandbox information disclosure",
        cve="CVE-2019-9942",
        branches={
            "1.x": ([">=1.0.0,<1.38.0"], FIX_TIME),
            "2.x": ([">=2.0.0,<2.7.0"], FIX_TIME),
        },
    )


@pytest.fixture
def lock_data():
    """Decoded composer.lock with one vulnerable package in each list."""
    return {
        "packages": [
            {"name": "league/flysystem", "version": "1.0.70", "time": "2020-07-26T07:20:36+00:00"},
            {"name": "symfony/console", "version": "v5.2.0"},
        ],
        "packages-dev": [
            {"name": "twig/twig", "version": "v1.37.0"},
        ],
    }
