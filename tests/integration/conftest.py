# tests/integration/conftest.py — v1
"""Shared fixtures for integration tests.

Most integration tests need nothing beyond tmp_path (JSON/SQLite
checkpoints, xlsx workbooks, local directory trees). The Redis checkpoint
tests use a testcontainers Redis instance and are skipped when no Docker
daemon is reachable.

Container lifecycle:
- session scope: the container starts once per pytest session
- function scope: a fresh key prefix per test for isolation

The container is reached through its bridge network IP + internal port so
the tests also work from a devcontainer with docker-outside-of-docker.
"""

from __future__ import annotations

import logging
import time
import uuid
from pathlib import Path

import pytest

logger = logging.getLogger(__name__)


# ── Pytest markers ──────────────────────────────────────────────

def pytest_configure(config):
    config.addinivalue_line("markers", "redis: marks tests requiring Redis container")


# =====================================================================
#  DEVCONTAINER NETWORKING HELPERS
# =====================================================================

def _get_container_bridge_ip(container, max_attempts: int = 10) -> str:
    """Get container bridge network IP with retries."""
    for attempt in range(max_attempts):
        try:
            wrapped = container.get_wrapped_container()
            wrapped.reload()
            networks = wrapped.attrs.get("NetworkSettings", {}).get("Networks", {})
            for net_name, net_info in networks.items():
                ip = net_info.get("IPAddress", "")
                if ip:
                    logger.info(
                        "Container %s IP: %s (network: %s, attempt %d)",
                        wrapped.short_id, ip, net_name, attempt + 1,
                    )
                    return ip
            logger.debug("Container IP empty, attempt %d/%d", attempt + 1, max_attempts)
        except Exception as e:
            logger.debug("Error getting IP (attempt %d): %s", attempt + 1, e)
        time.sleep(0.5)

    raise RuntimeError(
        f"Could not obtain container bridge IP after {max_attempts} attempts"
    )


def _docker_available() -> bool:
    """Check if Docker daemon is reachable."""
    try:
        import docker
        client = docker.from_env()
        client.ping()
        return True
    except Exception:
        return False


# =====================================================================
#  LOCAL TREE — no Docker required
# =====================================================================

@pytest.fixture
def local_tree(tmp_path: Path) -> Path:
    """Directory tree on disk.

    docs/
      a.txt, b, report.pdf
      drafts/  old.txt
        deep/  notes.md
      empty/
    """
    root = tmp_path / "docs"
    (root / "drafts" / "deep").mkdir(parents=True)
    (root / "empty").mkdir()
    (root / "a.txt").write_text("a")
    (root / "b").write_text("b")
    (root / "report.pdf").write_bytes(b"%PDF-1.4")
    (root / "drafts" / "old.txt").write_text("old")
    (root / "drafts" / "deep" / "notes.md").write_text("# notes")
    return root


# =====================================================================
#  REDIS CONTAINER — session scope (bridge IP)
# =====================================================================

REDIS_IMAGE = "redis:7-alpine"
REDIS_INTERNAL_PORT = 6379


@pytest.fixture(scope="session")
def redis_container():
    if not _docker_available():
        pytest.skip("Docker not available")

    from testcontainers.core.container import DockerContainer
    from testcontainers.core.waiting_utils import wait_for_logs

    container = DockerContainer(REDIS_IMAGE).with_exposed_ports(REDIS_INTERNAL_PORT)
    container.start()
    wait_for_logs(container, predicate=r"Ready to accept connections", timeout=30)

    ip = _get_container_bridge_ip(container)
    logger.info("Redis ready at %s:%d", ip, REDIS_INTERNAL_PORT)
    yield {"host": ip, "port": REDIS_INTERNAL_PORT}
    container.stop()


@pytest.fixture(scope="session")
def redis_url(redis_container) -> str:
    c = redis_container
    return f"redis://{c['host']}:{c['port']}/0"


@pytest.fixture
def unique_prefix() -> str:
    """Key prefix unique to one test."""
    return f"test{uuid.uuid4().hex[:8]}"
