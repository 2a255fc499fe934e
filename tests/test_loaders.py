"""Tests for project agent discovery and its privacy boundary."""

import os
from pathlib import Path

import pytest

from codeflow_orchestrator import AgentDefinitionError, ProjectAgentLoader
from codeflow_orchestrator.loaders import parse_agent_definition, split_front_matter


@pytest.fixture
def agents_dir(project_dir: Path) -> Path:
    return project_dir / ".codeflow" / "agents"


@pytest.fixture
def fs_access(monkeypatch: pytest.MonkeyPatch) -> dict[str, list[Path]]:
    """Record every file read and directory listing made through pathlib.

    Opens for writing are not recorded, so tests can create files after
    requesting the fixture.
    """
    access: dict[str, list[Path]] = {"read": [], "listed": []}
    original_read_text = Path.read_text
    original_open = Path.open
    original_iterdir = Path.iterdir

    def read_text(self, *args, **kwargs):
        access["read"].append(self)
        return original_read_text(self, *args, **kwargs)

    def open_(self, *args, **kwargs):
        mode = args[0] if args else kwargs.get("mode", "r")
        if not set(mode) & set("wax"):
            access["read"].append(self)
        return original_open(self, *args, **kwargs)

    def iterdir(self):
        access["listed"].append(self)
        return original_iterdir(self)

    monkeypatch.setattr(Path, "read_text", read_text)
    monkeypatch.setattr(Path, "open", open_)
    monkeypatch.setattr(Path, "iterdir", iterdir)
    return access


class TestParsing:
    """Test definition parsing."""

    def test_yaml_definition(self, tmp_path: Path):
        """Test a YAML mapping becomes a project agent."""
        path = tmp_path / "reviewer.yaml"
        agent = parse_agent_definition(
            path, "name: reviewer\ndescription: Reviews\ninputs: [diff]\ntimeout: 30\n"
        )

        assert agent.name == "reviewer"
        assert agent.scope == "project"
        assert agent.inputs == ("diff",)
        assert agent.timeout == 30
        assert agent.source == str(path)

    def test_name_defaults_to_stem(self, tmp_path: Path):
        """Test the file stem is used when no name is given."""
        agent = parse_agent_definition(tmp_path / "doc-writer.yml", "description: Writes docs\n")

        assert agent.name == "doc-writer"

    def test_scope_cannot_be_overridden(self, tmp_path: Path):
        """Test project files cannot claim built-in scope."""
        agent = parse_agent_definition(tmp_path / "x.yaml", "scope: built-in\n")

        assert agent.scope == "project"

    def test_markdown_front_matter(self, tmp_path: Path):
        """Test Markdown definitions use front matter and keep the body as instructions."""
        text = "---\nname: planner\ndescription: Plans work\n---\n\n# Planner\n\nBreak it down.\n"

        agent = parse_agent_definition(tmp_path / "planner.md", text)

        assert agent.name == "planner"
        assert agent.instructions == "# Planner\n\nBreak it down."

    def test_split_front_matter_errors(self):
        """Test documents without a closed front matter block are rejected."""
        with pytest.raises(ValueError, match="missing"):
            split_front_matter("# Title\n")
        with pytest.raises(ValueError, match="unterminated"):
            split_front_matter("---\nname: x\n")

    @pytest.mark.parametrize(
        "text",
        [
            "- just\n- a list\n",
            "name: [unclosed\n",
            "name: 'has spaces'\n",
            "timeout: -5\n",
        ],
    )
    def test_malformed_definitions(self, tmp_path: Path, text: str):
        """Test malformed definitions raise AgentDefinitionError."""
        with pytest.raises(AgentDefinitionError):
            parse_agent_definition(tmp_path / "bad.yaml", text)


class TestProjectAgentLoader:
    """Test directory scanning."""

    def test_loads_supported_files_in_order(self, agents_dir: Path):
        """Test YAML and Markdown definitions load in name order; others are ignored."""
        (agents_dir / "b.yaml").write_text("description: B\n")
        (agents_dir / "a.md").write_text("---\ndescription: A\n---\nBody\n")
        (agents_dir / "notes.txt").write_text("not an agent")

        agents, warnings = ProjectAgentLoader(agents_dir).load()

        assert [a.name for a in agents] == ["a", "b"]
        assert warnings == []

    def test_malformed_files_are_skipped_with_warnings(self, agents_dir: Path):
        """Test one bad file does not stop the load."""
        (agents_dir / "good.yaml").write_text("description: Good\n")
        (agents_dir / "broken.yaml").write_text("description: [oops\n")
        (agents_dir / "binary.yaml").write_bytes(b"\xff\xfe\x00")

        agents, warnings = ProjectAgentLoader(agents_dir).load()

        assert [a.name for a in agents] == ["good"]
        assert len(warnings) == 2
        assert any("broken.yaml" in w for w in warnings)
        assert any("binary.yaml" in w for w in warnings)

    def test_oversized_file_is_not_read(self, agents_dir: Path, fs_access):
        """Test files over the size limit are skipped unread."""
        big = agents_dir / "big.yaml"
        big.write_text("description: " + "x" * 200 + "\n")

        agents, warnings = ProjectAgentLoader(agents_dir, max_bytes=64).load()

        assert agents == []
        assert "exceeds limit" in warnings[0]
        assert big not in fs_access["read"]

    def test_directories_are_skipped(self, agents_dir: Path):
        """Test subdirectories are not descended into."""
        nested = agents_dir / "nested.yaml"
        nested.mkdir()
        (nested / "inner.yaml").write_text("description: Inner\n")

        agents, warnings = ProjectAgentLoader(agents_dir).load()

        assert agents == []
        assert "not a regular file" in warnings[0]

    def test_missing_directory(self, tmp_path: Path):
        """Test a missing agent directory yields nothing."""
        agents, warnings = ProjectAgentLoader(tmp_path / "absent").load()

        assert agents == []
        assert warnings == []


class TestPrivacyBoundary:
    """Test the loader never reads outside its allowed root."""

    def test_reads_only_inside_agent_directory(self, project_dir: Path, agents_dir: Path, fs_access):
        """Test only the agent directory is listed and only its files are read."""
        (agents_dir / "reviewer.yaml").write_text("description: Reviewer\n")
        (agents_dir / "planner.md").write_text("---\ndescription: Planner\n---\n")

        agents, _warnings = ProjectAgentLoader(agents_dir).load()

        assert len(agents) == 2
        assert fs_access["listed"] == [agents_dir]
        assert fs_access["read"]
        for path in fs_access["read"]:
            assert path.parent == agents_dir
        assert project_dir / ".env" not in fs_access["read"]
        assert project_dir / "src" / "main.py" not in fs_access["read"]

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlink_escape_is_not_followed(self, project_dir: Path, agents_dir: Path, fs_access):
        """Test a symlink pointing outside the agent directory is skipped unread."""
        secret = project_dir / "secret.yaml"
        secret.write_text("name: leaked\ndescription: credentials live here\n")
        link = agents_dir / "leak.yaml"
        link.symlink_to(secret)

        agents, warnings = ProjectAgentLoader(agents_dir).load()

        assert agents == []
        assert len(warnings) == 1
        assert "symbolic link" in warnings[0]
        assert secret not in fs_access["read"]
        assert link not in fs_access["read"]

    def test_fixture_ignores_setup_writes(self, agents_dir: Path, fs_access):
        """Test creating files is not mistaken for the loader reading them."""
        path = agents_dir / "written.yaml"
        path.write_text("description: Written\n")
        path.write_bytes(b"description: Rewritten\n")

        assert fs_access["read"] == []

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_linked_agent_directory_is_not_followed(self, tmp_path: Path, fs_access):
        """Test an agent directory that links outside the project loads nothing."""
        from codeflow_orchestrator import AgentRegistry

        outside = tmp_path / "home_secrets"
        outside.mkdir()
        creds = outside / "creds.yaml"
        creds.write_text("name: leaked\ndescription: credentials\n")
        project = tmp_path / "proj"
        (project / ".codeflow").mkdir(parents=True)
        (project / ".codeflow" / "agents").symlink_to(outside, target_is_directory=True)

        report = AgentRegistry().load_project(project)

        assert report.loaded == []
        assert len(report.warnings) == 1
        assert "linked elsewhere" in report.warnings[0]
        assert fs_access["listed"] == []
        assert fs_access["read"] == []

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_linked_codeflow_directory_is_not_followed(self, tmp_path: Path, fs_access):
        """Test a linked parent of the agent directory is rejected too."""
        outside = tmp_path / "elsewhere"
        (outside / "agents").mkdir(parents=True)
        (outside / "agents" / "creds.yaml").write_text("name: leaked\n")
        project = tmp_path / "proj"
        project.mkdir()
        (project / ".codeflow").symlink_to(outside, target_is_directory=True)

        agents, warnings = ProjectAgentLoader(
            project / ".codeflow" / "agents", project_root=project
        ).load()

        assert agents == []
        assert str(project / ".codeflow") in warnings[0]
        assert fs_access["read"] == []

    def test_registry_load_project_respects_boundary(self, project_dir: Path, agents_dir: Path, fs_access):
        """Test registry.load_project only touches the agent directory."""
        from codeflow_orchestrator import AgentRegistry

        (agents_dir / "helper.yaml").write_text("description: Helper\n")
        registry = AgentRegistry()

        registry.load_project(project_dir)

        assert [p.resolve() for p in fs_access["listed"]] == [agents_dir.resolve()]
        assert all(p.resolve().parent == agents_dir.resolve() for p in fs_access["read"])
