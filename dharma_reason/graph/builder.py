"""Graph builder — constructs the LangGraph reasoning-session topology.

Topology:

    START → prepare_context → generate_step
                                ├── "abort"  → synthesize → END
                                └── "record" → record_step → generate_feedback
                                                → finalize_step → check_termination
                                                     ├── "loop"       → prepare_context
                                                     └── "synthesize" → synthesize → END

The graph is compiled per session; components carry no session state.
"""

from __future__ import annotations

from langgraph.graph import END, START, StateGraph

from dharma_reason.core.feedback import FeedbackGenerator
from dharma_reason.core.step_generator import StepGenerator
from dharma_reason.core.synthesis import Synthesizer
from dharma_reason.graph.nodes import (
    check_termination,
    finalize_step,
    make_generate_feedback,
    make_generate_step,
    make_synthesize,
    prepare_context,
    record_step,
    route_after_generation,
)
from dharma_reason.graph.state import SessionState
from dharma_reason.services.llm import LLMFactory

# Nodes executed per loop iteration
NODES_PER_ITERATION = 5


def recursion_limit_for(max_steps: int) -> int:
    """LangGraph super-step budget large enough for ``max_steps`` iterations."""
    return max_steps * NODES_PER_ITERATION + 10


def build_session_graph(llm_factory: LLMFactory) -> StateGraph:
    """Construct and compile the reasoning-session graph.

    Args:
        llm_factory: Callable taking an LLMProfile and returning a langchain
                     BaseChatModel (e.g. ChatGoogleGenerativeAI).

    Returns:
        A compiled LangGraph application.
    """
    graph = StateGraph(SessionState)

    # ── Register nodes ───────────────────────────────────────────────────
    graph.add_node("prepare_context", prepare_context)
    graph.add_node("generate_step", make_generate_step(StepGenerator(llm_factory)))
    graph.add_node("record_step", record_step)
    graph.add_node("generate_feedback", make_generate_feedback(FeedbackGenerator(llm_factory)))
    graph.add_node("finalize_step", finalize_step)
    graph.add_node("synthesize", make_synthesize(Synthesizer(llm_factory)))

    # ── Edges ────────────────────────────────────────────────────────────
    graph.add_edge(START, "prepare_context")
    graph.add_edge("prepare_context", "generate_step")
    graph.add_conditional_edges(
        "generate_step",
        route_after_generation,
        {
            "abort": "synthesize",
            "record": "record_step",
        },
    )
    graph.add_edge("record_step", "generate_feedback")
    graph.add_edge("generate_feedback", "finalize_step")

    # ── Conditional exit ─────────────────────────────────────────────────
    graph.add_conditional_edges(
        "finalize_step",
        check_termination,
        {
            "loop": "prepare_context",
            "synthesize": "synthesize",
        },
    )
    graph.add_edge("synthesize", END)

    return graph.compile()
