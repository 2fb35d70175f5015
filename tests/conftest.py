from __future__ import annotations

from pathlib import Path

import pytest

from config import get_settings
from observability.errors import error_recorder
from observability.metrics import metrics
from security.manager import AccessControl


OWNER = 0x111
WRITER = 0x222
CONTRACT = 0x333
STRANGER = 0x444


def write_security_config(path: Path, *, enforce_namespace_write: bool = False) -> None:
    path.write_text(
        f"""
version: 1
default:
  unknown_caller_kind: contract
  reserved_selectors:
    - "0xdead"
  enforce_namespace_write_on_register: {str(enforce_namespace_write).lower()}

accounts:
  - address: "{hex(OWNER)}"
    label: owner
  - address: "{hex(WRITER)}"
    label: writer
  - address: "{hex(STRANGER)}"

contracts:
  - address: "{hex(CONTRACT)}"
    label: actions
""",
        encoding="utf-8",
    )


@pytest.fixture(autouse=True)
def _reset_observability():
    metrics.reset()
    error_recorder.clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def security_config(tmp_path: Path) -> Path:
    config = tmp_path / "security.yaml"
    write_security_config(config)
    return config


@pytest.fixture()
def core(security_config: Path) -> AccessControl:
    return AccessControl(config_path=security_config, default_namespace="dojo")


@pytest.fixture()
def game_world(core: AccessControl) -> AccessControl:
    """Owner registers namespace ``game`` (selector 1) and model ``game-Position`` (selector 2)."""

    core.register_namespace(OWNER, "game", selector=1)
    core.register_resource(OWNER, 1, "Position", kind="model", selector=2)
    return core
