from .graph import build_multihop_graph
from .state import MultiHopStage, MultiHopState, create_initial_state
from .telemetry import build_graph_invoke_config, emit_orchestration_telemetry

__all__ = [
    "MultiHopStage",
    "MultiHopState",
    "build_graph_invoke_config",
    "build_multihop_graph",
    "create_initial_state",
    "emit_orchestration_telemetry",
]
