"""Tests for workboard.lib.documents module."""

import os
from unittest.mock import patch

import pytest
from conftest import make_item

from workboard.lib.documents import (
    ensure_within,
    find_work_item,
    list_work_item_files,
    load_corpus,
    load_document,
    write_document,
)


class TestListWorkItemFiles:
    """Test corpus enumeration."""

    def test_sorted_and_filtered(self, repo, write_item):
        write_item("1_todo", "002-b.md", make_item("002"))
        write_item("0_backlog", "001-a.md", make_item("001"))
        write_item("templates", "template.prd.md", "---\n---\n")
        write_item("0_backlog", "IDEAS.md", "# Ideas\n")
        write_item("1_todo", "notes.txt", "not markdown")

        files = list_work_item_files(repo / ".work")
        assert [f.name for f in files] == ["001-a.md", "002-b.md"]

    def test_missing_work_folder(self, tmp_path):
        assert list_work_item_files(tmp_path / ".work") == []


class TestLoadDocument:
    """Test load_document and load_corpus."""

    def test_loads_fields_and_folder(self, repo, write_item):
        path = write_item("2_doing", "007-x.md", make_item("007", status="doing"))
        doc = load_document(path, repo / ".work")
        assert doc.parsed
        assert doc.id == "007"
        assert doc.status == "doing"
        assert doc.folder == "2_doing"
        assert doc.mtime == path.stat().st_mtime

    def test_parse_error_recorded_not_raised(self, repo, write_item):
        path = write_item("1_todo", "bad.md", "# No frontmatter\n")
        doc = load_document(path, repo / ".work")
        assert not doc.parsed
        assert doc.id is None
        assert "missing frontmatter" in doc.error.reason
        assert doc.error.path == str(path)

    def test_preserves_crlf(self, repo, write_item):
        content = make_item().replace("\n", "\r\n")
        path = write_item("1_todo", "001-a.md", content)
        assert load_document(path, repo / ".work").content == content

    def test_corpus_continues_after_bad_document(self, config, write_item):
        write_item("1_todo", "001-a.md", "---\nid: [\n---\n")
        write_item("1_todo", "002-b.md", make_item("002"))
        corpus = load_corpus(config)
        assert [d.parsed for d in corpus] == [False, True]

    def test_find_work_item(self, config, write_item):
        write_item("1_todo", "001-a.md", make_item("001"))
        write_item("3_review", "002-b.md", make_item("002", status="review"))
        assert find_work_item(config, "002").folder == "3_review"
        assert find_work_item(config, "999") is None


class TestWriteDocument:
    """Test atomic writes."""

    def test_replaces_content(self, tmp_path):
        path = tmp_path / "a.md"
        path.write_text("old")
        write_document(path, "new\r\nline\n")
        with open(path, newline="") as f:
            assert f.read() == "new\r\nline\n"

    def test_keeps_mode(self, tmp_path):
        path = tmp_path / "a.md"
        path.write_text("old")
        os.chmod(path, 0o640)
        write_document(path, "new")
        assert (path.stat().st_mode & 0o777) == 0o640

    def test_failed_write_leaves_original(self, tmp_path):
        path = tmp_path / "a.md"
        path.write_text("original")
        with patch("workboard.lib.documents.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                write_document(path, "new")
        assert path.read_text() == "original"
        assert [p.name for p in tmp_path.iterdir()] == ["a.md"]


class TestEnsureWithin:
    """Test path containment."""

    def test_inside(self, tmp_path):
        inner = tmp_path / "work" / "a.md"
        assert ensure_within(inner, tmp_path / "work") == inner.resolve()

    def test_outside(self, tmp_path):
        with pytest.raises(ValueError, match="outside work folder"):
            ensure_within(tmp_path / "work" / ".." / "secret.md", tmp_path / "work")
