"""Deployment sink that writes campaign groups to a JSON file.

Live ad-platform clients consume this file; the engine never talks to an
ad platform directly.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path

import structlog

from bidding.domain.models import CampaignGroup

logger = structlog.get_logger()


class JsonDeploymentSink:
    """``DeploymentSink`` that writes each deployment to *path*.

    Args:
        path: Output file.  Overwritten on each deploy.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    def deploy(self, groups: Sequence[CampaignGroup]) -> None:
        """Serialize *groups* with a generation timestamp."""
        document = {
            "generated_at": datetime.now(tz=UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "group_count": len(groups),
            "groups": [g.model_dump(mode="json") for g in groups],
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(document, indent=2))
        logger.info("groups_written", path=str(self._path), groups=len(groups))
