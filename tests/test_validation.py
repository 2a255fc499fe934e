"""Tests for static workflow validation."""

import pytest

from codeflow_orchestrator import (
    AgentInvocation,
    ContextCondition,
    DefinitionInvalidError,
    WorkflowDefinition,
    WorkflowPhase,
    execution_order,
    validate,
)


def phase(name: str, *deps: str, mode: str = "sequential", agent: str = "alpha", **kwargs) -> WorkflowPhase:
    return WorkflowPhase(
        name=name,
        mode=mode,
        depends_on=list(deps),
        agents=[AgentInvocation(agent=agent)],
        **kwargs,
    )


def workflow(*phases: WorkflowPhase) -> WorkflowDefinition:
    return WorkflowDefinition(name="test", phases=list(phases))


class TestValidate:
    """Test individual validation rules."""

    def test_valid_definition(self):
        """Test a well-formed graph has no violations."""
        result = validate(workflow(phase("a"), phase("b", "a"), phase("c", "a", "b")))

        assert result.is_valid
        assert result
        assert result.violations == []

    def test_duplicate_phase_names(self):
        """Test repeated phase names are reported."""
        result = validate(workflow(phase("a"), phase("a")))

        assert result.codes() == ["duplicate_phase"]

    def test_unknown_dependency(self):
        """Test dangling dependencies are reported."""
        result = validate(workflow(phase("a", "missing")))

        assert result.codes() == ["unknown_dependency"]
        assert result.violations[0].phase == "a"

    def test_self_dependency(self):
        """Test a phase depending on itself is reported once."""
        result = validate(workflow(phase("a", "a")))

        assert result.codes() == ["self_dependency"]

    def test_two_phase_cycle(self):
        """Test a cycle between two phases is reported."""
        result = validate(workflow(phase("a", "b"), phase("b", "a")))

        assert result.codes() == ["dependency_cycle"]
        assert "a, b" in result.violations[0].message

    def test_cycle_report_excludes_downstream_phases(self):
        """Test phases merely depending on a cycle are not named as members."""
        result = validate(
            workflow(phase("root"), phase("a", "c"), phase("b", "a"), phase("c", "b"), phase("tail", "a"))
        )

        assert result.codes() == ["dependency_cycle"]
        message = result.violations[0].message
        assert "a, b, c" in message
        assert "tail" not in message
        assert "root" not in message

    def test_invalid_agent_name(self):
        """Test syntactically invalid agent names are reported without checking existence."""
        result = validate(workflow(phase("a", agent="not a name"), phase("b", agent="unregistered")))

        assert result.codes() == ["invalid_agent_name"]

    def test_conditional_without_condition(self):
        """Test conditional phases require a condition."""
        result = validate(workflow(phase("a", mode="conditional")))

        assert result.codes() == ["missing_condition"]

    def test_condition_on_non_conditional_phase(self):
        """Test a condition on a sequential phase is reported."""
        result = validate(workflow(phase("a", condition=ContextCondition(key="x", operator="exists"))))

        assert result.codes() == ["unexpected_condition"]

    def test_empty_workflow(self):
        """Test a workflow with no phases is invalid."""
        result = validate(WorkflowDefinition(name="empty", phases=[]))

        assert result.codes() == ["empty_workflow"]

    def test_multiple_violations(self):
        """Test every problem is reported, not just the first."""
        result = validate(workflow(phase("a", "ghost"), phase("a"), phase("b", mode="conditional")))

        assert set(result.codes()) == {"unknown_dependency", "duplicate_phase", "missing_condition"}

    def test_raise_for_violations(self):
        """Test violations convert into DefinitionInvalidError."""
        result = validate(workflow(phase("a", "b"), phase("b", "a")))

        with pytest.raises(DefinitionInvalidError, match="cycle") as exc_info:
            result.raise_for_violations()

        assert exc_info.value.violations == result.violations


class TestExecutionOrder:
    """Test topological ordering."""

    def test_declaration_order_tie_break(self):
        """Test independent phases keep their declaration order."""
        order = execution_order(
            workflow(phase("late", "early"), phase("b"), phase("early"), phase("a"))
        )

        assert order == ["b", "early", "a", "late"]

    def test_dependencies_first(self):
        """Test every phase comes after its dependencies."""
        definition = workflow(phase("d", "b", "c"), phase("c", "a"), phase("b", "a"), phase("a"))

        order = execution_order(definition)

        for p in definition.phases:
            for dep in p.depends_on:
                assert order.index(dep) < order.index(p.name)

    def test_invalid_definition(self):
        """Test ordering an invalid definition raises."""
        with pytest.raises(DefinitionInvalidError):
            execution_order(workflow(phase("a", "b"), phase("b", "a")))
