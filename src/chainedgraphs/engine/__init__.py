# src/chainedgraphs/engine/__init__.py
"""Execution engine for resolved chains.

- ChainExecutor: runs an ExecutionPlan level by level under a failure policy
- ChainApp: resolve-and-run entry point used by the CLI

Example:
    from chainedgraphs.core import ExecutorSettings, Graph
    from chainedgraphs.engine import ChainApp

    ingest = Graph("ingest")
    ingest.add_node("parse", lambda inputs: [1, 2, 3])
    report = Graph("report")
    report.add_node("render", lambda inputs: len(inputs))

    app = ChainApp.from_graphs(
        [ingest, report],
        links=[("ingest.parse", "report.render")],
        executor_settings=ExecutorSettings(max_workers=4),
    )
    outcome = app.run()
"""

from chainedgraphs.engine.executor import ActionInvoker, ChainExecutor, invoke_action
from chainedgraphs.engine.orchestrator import ChainApp

__all__ = [
    "ActionInvoker",
    "ChainApp",
    "ChainExecutor",
    "invoke_action",
]
