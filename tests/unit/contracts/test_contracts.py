# tests/unit/contracts/test_contracts.py
"""Tests for node references, the error taxonomy, and run outcomes."""

from __future__ import annotations

from types import MappingProxyType

import pytest

from chainedgraphs.contracts import (
    CallableAction,
    CancelledError,
    ChainGraphError,
    ChainValidationError,
    CycleError,
    FailurePolicy,
    NodeAction,
    NodeExecutionError,
    NodeRef,
    NodeResult,
    NodeState,
    RunFailedError,
    RunOutcome,
    RunStatus,
    SelfLinkError,
    SkipReason,
    UnknownNodeError,
    as_action,
)


class TestNodeRef:
    """NodeRef parsing, rendering, and ordering."""

    def test_str_uses_dot_separator(self) -> None:
        assert str(NodeRef("ingest", "parse")) == "ingest.parse"

    def test_parse_round_trips_str(self) -> None:
        ref = NodeRef.parse("ingest.parse")
        assert ref == NodeRef("ingest", "parse")

    def test_parse_splits_on_first_separator(self) -> None:
        """Node IDs may contain dots; graph IDs may not."""
        ref = NodeRef.parse("ingest.v1.parse")
        assert ref.graph_id == "ingest"
        assert ref.node_id == "v1.parse"

    @pytest.mark.parametrize("value", ["ingest", ".parse", "ingest.", ""])
    def test_parse_rejects_incomplete_refs(self, value: str) -> None:
        with pytest.raises(ValueError, match="graph.node"):
            NodeRef.parse(value)

    def test_coerce_accepts_ref_or_string(self) -> None:
        ref = NodeRef("a", "x")
        assert NodeRef.coerce(ref) is ref
        assert NodeRef.coerce("a.x") == ref

    def test_ordering_is_graph_then_node(self) -> None:
        refs = [NodeRef("b", "a"), NodeRef("a", "z"), NodeRef("a", "b")]
        assert sorted(refs) == [NodeRef("a", "b"), NodeRef("a", "z"), NodeRef("b", "a")]

    def test_hashable_and_frozen(self) -> None:
        ref = NodeRef("a", "x")
        assert {ref: 1}[NodeRef("a", "x")] == 1
        with pytest.raises(AttributeError):
            ref.graph_id = "b"  # type: ignore[misc]


class TestActions:
    """NodeAction protocol and callable adaptation."""

    def test_callable_is_wrapped(self) -> None:
        action = as_action(lambda inputs: 42)
        assert isinstance(action, CallableAction)
        assert action.execute({}) == 42

    def test_protocol_implementation_is_kept(self) -> None:
        class Doubler:
            def execute(self, inputs: object) -> int:
                return 2

        doubler = Doubler()
        assert isinstance(doubler, NodeAction)
        assert as_action(doubler) is doubler

    def test_rejects_non_callable(self) -> None:
        with pytest.raises(TypeError, match="callable"):
            as_action(42)  # type: ignore[arg-type]


class TestErrors:
    """Error hierarchy and messages."""

    def test_validation_errors_are_value_errors(self) -> None:
        err = UnknownNodeError(NodeRef("a", "x"))
        assert isinstance(err, ChainValidationError)
        assert isinstance(err, ValueError)
        assert isinstance(err, ChainGraphError)
        assert "a.x" in str(err)

    def test_cycle_error_renders_path(self) -> None:
        err = CycleError(["a", "b", "a"])
        assert err.path == ("a", "b", "a")
        assert str(err) == "Dependency cycle: a -> b -> a"

    def test_self_link_message_distinguishes_same_node(self) -> None:
        ref = NodeRef("a", "x")
        assert "itself" in str(SelfLinkError(ref, ref))
        assert "stays inside graph 'a'" in str(SelfLinkError(ref, NodeRef("a", "y")))

    def test_node_execution_error_chains_cause(self) -> None:
        cause = KeyError("missing")
        err = NodeExecutionError(NodeRef("a", "x"), cause)
        assert err.__cause__ is cause
        assert err.node == NodeRef("a", "x")
        assert "a.x" in str(err)
        assert "KeyError" in str(err)

    def test_run_failed_error_lists_nodes(self) -> None:
        failures = [
            NodeExecutionError(NodeRef("a", "x"), RuntimeError("one")),
            NodeExecutionError(NodeRef("b", "y"), RuntimeError("two")),
        ]
        err = RunFailedError(failures)
        assert err.failures == tuple(failures)
        assert "2 node(s) failed (a.x, b.y)" in str(err)


def _outcome(status: RunStatus, *results: NodeResult) -> RunOutcome:
    return RunOutcome(
        run_id="run-1",
        status=status,
        policy=FailurePolicy.FAIL_FAST,
        results=MappingProxyType({r.ref: r for r in results}),
        duration_seconds=0.1,
    )


class TestRunOutcome:
    """Aggregate outcome accessors and raise_for_status()."""

    def test_completed_outcome_exposes_outputs(self) -> None:
        ok = NodeResult.success(NodeRef("a", "x"), 7, duration_ms=1.0)
        outcome = _outcome(RunStatus.COMPLETED, ok)

        assert outcome.success
        assert outcome.output("a.x") == 7
        assert outcome.succeeded == (NodeRef("a", "x"),)
        assert outcome.failures == ()
        outcome.raise_for_status()

    def test_output_of_unsuccessful_node_raises_key_error(self) -> None:
        skipped = NodeResult.skip(NodeRef("a", "x"), SkipReason.DEPENDENCY_FAILED)
        outcome = _outcome(RunStatus.FAILED, skipped)
        with pytest.raises(KeyError, match="skipped"):
            outcome.output("a.x")

    def test_failures_raise_run_failed_error(self) -> None:
        error = NodeExecutionError(NodeRef("a", "x"), RuntimeError("boom"))
        failed = NodeResult.failure(NodeRef("a", "x"), error, duration_ms=2.0)
        skipped = NodeResult.skip(NodeRef("b", "y"), SkipReason.DEPENDENCY_FAILED)
        outcome = _outcome(RunStatus.FAILED, failed, skipped)

        assert not outcome.success
        assert outcome.skipped == (NodeRef("b", "y"),)
        with pytest.raises(RunFailedError) as exc_info:
            outcome.raise_for_status()
        assert exc_info.value.failures == (error,)

    def test_cancelled_run_raises_cancelled_error(self) -> None:
        ok = NodeResult.success(NodeRef("a", "x"), 1, duration_ms=1.0)
        cancelled = NodeResult.skip(NodeRef("b", "y"), SkipReason.CANCELLED)
        outcome = _outcome(RunStatus.CANCELLED, ok, cancelled)

        with pytest.raises(CancelledError) as exc_info:
            outcome.raise_for_status()
        assert exc_info.value.not_started == 1

    def test_node_result_factories_set_state(self) -> None:
        ref = NodeRef("a", "x")
        assert NodeResult.success(ref, 1, duration_ms=0).state is NodeState.SUCCEEDED
        assert NodeResult.skip(ref, SkipReason.CANCELLED).skipped
        assert NodeResult.skip(ref, SkipReason.CANCELLED).output is None
