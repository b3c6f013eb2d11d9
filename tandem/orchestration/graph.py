from __future__ import annotations

from langgraph.graph import END, START, StateGraph

from tandem.context import RuntimeContext

from .nodes import (
    finalize_node,
    make_followup_synthesis_node,
    make_generate_final_node,
    make_initial_retrieval_node,
    make_secondary_retrieval_node,
    merge_and_dedup_node,
)
from .state import MultiHopState


def build_multihop_graph(context: RuntimeContext):
    graph_builder = StateGraph(MultiHopState)

    graph_builder.add_node(
        "initial_retrieval",
        make_initial_retrieval_node(context.bindings, context.settings),
    )
    graph_builder.add_node(
        "followup_synthesis",
        make_followup_synthesis_node(context.invoker, context.settings),
    )
    graph_builder.add_node(
        "secondary_retrieval",
        make_secondary_retrieval_node(context.settings),
    )
    graph_builder.add_node("merge_and_dedup", merge_and_dedup_node)
    graph_builder.add_node(
        "generate_final",
        make_generate_final_node(context.invoker, context.settings),
    )
    graph_builder.add_node("finalize", finalize_node)

    graph_builder.add_edge(START, "initial_retrieval")
    graph_builder.add_edge("initial_retrieval", "followup_synthesis")
    graph_builder.add_conditional_edges(
        "followup_synthesis",
        _route_after_followups,
        ["secondary_retrieval", "merge_and_dedup"],
    )
    graph_builder.add_edge("secondary_retrieval", "merge_and_dedup")
    graph_builder.add_edge("merge_and_dedup", "generate_final")
    graph_builder.add_edge("generate_final", "finalize")
    graph_builder.add_edge("finalize", END)

    return graph_builder.compile()


def _route_after_followups(state: MultiHopState) -> str:
    if state.get("followup_questions"):
        return "secondary_retrieval"
    return "merge_and_dedup"
