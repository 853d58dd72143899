"""Graph builder — constructs the LangGraph submission topology.

Topology:

    START → resolve_branch → record_thought → detect_cycle
          → schedule_reflection
               ├── "request" → request_input → END
               └── "done"    → END

The graph is compiled once per engine and invoked for every submission.
"""

from __future__ import annotations

from langgraph.graph import END, START, StateGraph

from coconut_reason.graph.nodes import (
    PipelineDeps,
    make_detect_cycle,
    make_record_thought,
    make_request_input,
    make_resolve_branch,
    make_schedule_reflection,
    needs_input,
)
from coconut_reason.graph.state import SubmissionState


def build_submission_graph(deps: PipelineDeps):
    """Construct and compile the submission graph.

    Args:
        deps: Components the nodes operate on.

    Returns:
        A compiled LangGraph application.  Nodes are async, so run it with
        `ainvoke`.
    """
    graph = StateGraph(SubmissionState)

    # ── Register nodes ───────────────────────────────────────────────────
    graph.add_node("resolve_branch", make_resolve_branch(deps))
    graph.add_node("record_thought", make_record_thought(deps))
    graph.add_node("detect_cycle", make_detect_cycle(deps))
    graph.add_node("schedule_reflection", make_schedule_reflection(deps))
    graph.add_node("request_input", make_request_input(deps))

    # ── Edges ────────────────────────────────────────────────────────────
    graph.add_edge(START, "resolve_branch")
    graph.add_edge("resolve_branch", "record_thought")
    graph.add_edge("record_thought", "detect_cycle")
    graph.add_edge("detect_cycle", "schedule_reflection")
    graph.add_edge("request_input", END)

    # ── Conditional exit ─────────────────────────────────────────────────
    graph.add_conditional_edges(
        "schedule_reflection",
        needs_input,
        {
            "request": "request_input",
            "done": END,
        },
    )

    return graph.compile()
