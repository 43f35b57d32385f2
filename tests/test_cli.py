"""Tests for the workboard CLI and command handlers."""

from unittest.mock import patch

import pytest
from conftest import make_item

from workboard.cli import main
from workboard.git.runner import GitResult

SLICED = make_item("001", body=(
    "\n# Login\n\n"
    "## Slices\n\n"
    "### S1\n"
    "- [x] T001: Add form\n"
    "- [ ] T002: Validate input\n"
    "\n"
    "## Release Notes\n"
))


def run(repo, *argv) -> int:
    return main(["--root", str(repo), *argv])


class TestLintCommand:
    """Test workboard lint."""

    def test_clean(self, repo, write_item, capsys):
        write_item("1_todo", "001-a.md", make_item("001"))
        assert run(repo, "lint") == 0
        assert "No issues found." in capsys.readouterr().out

    def test_groups_findings(self, repo, write_item, capsys):
        write_item("3_review", "001-a.md", make_item("001", status="doing", created="2024/01/15"))
        write_item("1_todo", "002-b.md", make_item("001"))
        assert run(repo, "lint") == 1
        out = capsys.readouterr().out
        assert "Field errors (1):" in out
        assert "Workflow errors (1):" in out
        assert "Duplicate IDs (1):" in out
        assert out.index("Field errors") < out.index("Workflow errors") < out.index("Duplicate IDs")

    def test_strict_flag(self, repo, write_item, capsys):
        write_item("1_todo", "001-a.md", make_item("001", extra="color: red\n"))
        assert run(repo, "lint") == 0
        assert run(repo, "lint", "--strict") == 1
        assert "[unknown-field]" in capsys.readouterr().out

    def test_bad_config_exits_2(self, repo, capsys):
        (repo / "workboard.yml").write_text("validation:\n  strict: maybe\n")
        with pytest.raises(SystemExit) as exc_info:
            run(repo, "lint")
        assert exc_info.value.code == 2
        assert "validation.strict" in capsys.readouterr().out


class TestDoctorCommand:
    """Test workboard doctor."""

    def test_fixes_and_reports(self, repo, write_item, capsys):
        path = write_item("1_todo", "001-a.md", make_item("001", created="2024/01/15"))
        assert run(repo, "doctor") == 0
        out = capsys.readouterr().out
        assert "Fixed (1):" in out
        assert "Updated 1 file(s)." in out
        assert "created: 2024-01-15\n" in path.read_text()

    def test_dry_run(self, repo, write_item, capsys):
        path = write_item("1_todo", "001-a.md", make_item("001", created="2024/01/15"))
        before = path.read_text()
        assert run(repo, "doctor", "--dry-run") == 0
        assert "Would fix (1):" in capsys.readouterr().out
        assert path.read_text() == before

    def test_unfixable(self, repo, write_item, capsys):
        write_item("1_todo", "001-a.md", make_item("001", created="someday"))
        assert run(repo, "doctor") == 1
        out = capsys.readouterr().out
        assert "Could not fix (1):" in out
        assert "Remaining issues:" in out

    @patch("workboard.workflow.engine.write_document", side_effect=OSError("disk full"))
    def test_write_failure_reported(self, mock_write, repo, write_item, capsys):
        path = write_item("1_todo", "001-a.md", make_item("001", created="2024/01/15"))
        before = path.read_text()
        assert run(repo, "doctor") == 1
        assert "ERROR: Could not write fixes: disk full" in capsys.readouterr().out
        assert path.read_text() == before


class TestSliceCommand:
    """Test workboard slice subcommands."""

    def test_show(self, repo, write_item, capsys):
        write_item("1_todo", "001-a.md", SLICED)
        assert run(repo, "slice", "show", "001") == 0
        out = capsys.readouterr().out
        assert "001: 1/2 tasks done" in out
        assert "[ ] T002: Validate input  <-- NEXT" in out

    def test_unknown_item(self, repo, capsys):
        assert run(repo, "slice", "show", "999") == 2
        assert "not found" in capsys.readouterr().out

    def test_toggle_rewrites_only_slices(self, repo, write_item):
        path = write_item("1_todo", "001-a.md", SLICED)
        assert run(repo, "slice", "task-toggle", "001", "T002") == 0
        assert path.read_text() == SLICED.replace("- [ ] T002", "- [x] T002")

    def test_task_add_and_notes(self, repo, write_item):
        path = write_item("1_todo", "001-a.md", SLICED)
        assert run(repo, "slice", "task-add", "001", "S1", "Show errors", "--notes", "inline") == 0
        assert "- [ ] T003: Show errors\n  - Notes: inline\n\n## Release Notes" in path.read_text()

    def test_add_slice_to_document_without_section(self, repo, write_item):
        path = write_item("1_todo", "001-a.md", make_item("001"))
        assert run(repo, "slice", "add", "001", "API") == 0
        assert path.read_text().endswith("\n## Slices\n\n### API\n")

    def test_duplicate_slice_is_error(self, repo, write_item, capsys):
        path = write_item("1_todo", "001-a.md", SLICED)
        assert run(repo, "slice", "add", "001", "s1") == 1
        assert "already exists" in capsys.readouterr().out
        assert path.read_text() == SLICED

    def test_edit_then_remove(self, repo, write_item):
        path = write_item("1_todo", "001-a.md", SLICED)
        assert run(repo, "slice", "task-edit", "001", "T001", "Add login form") == 0
        assert run(repo, "slice", "task-remove", "001", "T002") == 0
        assert "### S1\n- [x] T001: Add login form\n\n## Release Notes" in path.read_text()

    @patch("workboard.commands.slice.write_document", side_effect=OSError("read-only"))
    def test_write_failure_reported(self, mock_write, repo, write_item, capsys):
        write_item("1_todo", "001-a.md", SLICED)
        assert run(repo, "slice", "task-toggle", "001", "T002") == 1
        assert "ERROR: Could not write" in capsys.readouterr().out

    def test_lint(self, repo, write_item, capsys):
        body = "\n## Slices\n\n### API\n- [ ] T001: a\n\n### api\n- [ ] T002: b\n"
        write_item("1_todo", "001-a.md", make_item("001", body=body))
        assert run(repo, "slice", "lint", "001") == 1
        assert "[duplicate-slice-name]" in capsys.readouterr().out

    @patch("workboard.commands.slice.commit_files")
    def test_commit_flag(self, mock_commit, repo, write_item, capsys):
        mock_commit.return_value = GitResult(returncode=0, stdout="", stderr="")
        write_item("1_todo", "001-a.md", SLICED)
        assert run(repo, "slice", "task-toggle", "001", "T002", "--commit") == 0
        args = mock_commit.call_args[0]
        assert args[1] == [".work/1_todo/001-a.md"]
        assert args[2] == "Complete T002: Validate input"
        assert "Committed: Complete T002" in capsys.readouterr().out

    @patch("workboard.commands.slice.show_file_at_ref")
    def test_commit_message(self, mock_show, repo, write_item, capsys):
        mock_show.return_value = SLICED
        write_item("1_todo", "001-a.md", SLICED.replace("- [ ] T002", "- [x] T002"))
        assert run(repo, "slice", "commit-message", "001") == 0
        assert capsys.readouterr().out.strip() == "Complete T002: Validate input"

    @patch("workboard.commands.slice.show_file_at_ref", return_value=None)
    def test_commit_message_new_file(self, mock_show, repo, write_item, capsys):
        write_item("1_todo", "001-a.md", SLICED)
        assert run(repo, "slice", "commit-message", "001") == 0
        assert capsys.readouterr().out.strip() == "Add tasks T001, T002"
