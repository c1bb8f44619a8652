"""Tests for the JSON deployment sink."""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

from bidding.adapters.deployment import JsonDeploymentSink
from bidding.selection.grouper import group_candidates


def test_writes_groups(tmp_path: Path, make_candidate) -> None:
    groups = group_candidates(
        [make_candidate("a", cost="3"), make_candidate("b", cost="2", path="/categories/x")],
        min_budget=Decimal("1"),
        max_budget=Decimal("50"),
    )
    path = tmp_path / "out" / "groups.json"

    JsonDeploymentSink(path).deploy(groups)

    document = json.loads(path.read_text())
    assert document["group_count"] == 2
    assert document["generated_at"].endswith("Z")
    first = document["groups"][0]
    assert first["platform"] == "GOOGLE_SEARCH"
    assert first["daily_budget"] == "3"
    assert first["candidates"][0]["attribution"]["source"] == "google_ads"


def test_empty_deploy_overwrites(tmp_path: Path) -> None:
    path = tmp_path / "groups.json"
    path.write_text("stale")

    JsonDeploymentSink(path).deploy([])

    assert json.loads(path.read_text())["groups"] == []
