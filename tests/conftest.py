"""Shared fixtures for workboard tests."""

from pathlib import Path

import pytest

from workboard.lib.config import WorkboardConfig, config_from_dict


def make_item(
    item_id: str = "001",
    status: str = "todo",
    title: str = "Example item",
    kind: str = "prd",
    created: str = "2024-01-15",
    extra: str = "",
    body: str = "\n# Example item\n\n## Requirements\n\nSomething useful.\n",
) -> str:
    """Work item document text with the core fields filled in."""
    return (
        "---\n"
        f"id: {item_id}\n"
        f"title: {title}\n"
        f"status: {status}\n"
        f"kind: {kind}\n"
        f"created: {created}\n"
        f"{extra}"
        "---\n"
        f"{body}"
    )


@pytest.fixture
def repo(tmp_path) -> Path:
    """Repository root with the default status folders."""
    for folder in ("0_backlog", "1_todo", "2_doing", "3_review", "4_done", "z_archive"):
        (tmp_path / ".work" / folder).mkdir(parents=True)
    return tmp_path


@pytest.fixture
def config(repo) -> WorkboardConfig:
    return config_from_dict({}, root=repo)


@pytest.fixture
def write_item(repo):
    """Write a work item under .work/<folder>/<name> and return its path."""
    def _write(folder: str, name: str, content: str) -> Path:
        path = repo / ".work" / folder / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, newline="")
        return path
    return _write
