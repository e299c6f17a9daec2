from __future__ import annotations

from pathlib import Path

import pytest

from avesta.config import AvestaConfig
from avesta.engine.context import ProjectContext
from avesta.rules.registry import set_extra_rules


@pytest.fixture()
def project_ctx(tmp_path: Path) -> ProjectContext:
    return ProjectContext(
        project_root=tmp_path,
        scan_path=tmp_path,
        files=(),
        config=AvestaConfig(),
    )


@pytest.fixture(autouse=True)
def _reset_rule_registry_plugins() -> None:
    set_extra_rules([])
