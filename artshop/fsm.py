from __future__ import annotations

from enum import StrEnum

from statemachine import State, StateMachine


class SurfacePhase(StrEnum):
    idle = "idle"
    drawing = "drawing"


class SalePhase(StrEnum):
    idle = "idle"
    evaluating = "evaluating"
    offered = "offered"


class SurfaceFSM(StateMachine):
    """Pointer gesture lifecycle of a drawing surface: idle -> drawing -> idle.

    The surface does the rasterizing; the FSM only guards transitions.
    """

    idle = State(SurfacePhase.idle.value, value=SurfacePhase.idle.value, initial=True)
    drawing = State(SurfacePhase.drawing.value, value=SurfacePhase.drawing.value)

    stroke_started = idle.to(drawing)
    stroke_ended = drawing.to(idle)

    @property
    def phase(self) -> SurfacePhase:
        return SurfacePhase(str(self.current_state.value))


class SaleFSM(StateMachine):
    """Sale dialog flow around one valuation request.

    - only one evaluation may be outstanding at a time.
    - cancelling while evaluating means the late result must be dropped.
    """

    idle = State(SalePhase.idle.value, value=SalePhase.idle.value, initial=True)
    evaluating = State(SalePhase.evaluating.value, value=SalePhase.evaluating.value)
    offered = State(SalePhase.offered.value, value=SalePhase.offered.value)

    evaluation_started = idle.to(evaluating) | offered.to(evaluating)
    offer_made = evaluating.to(offered)
    offer_accepted = offered.to(idle)
    offer_rejected = offered.to(idle)
    cancelled = evaluating.to(idle) | offered.to(idle)

    @property
    def phase(self) -> SalePhase:
        return SalePhase(str(self.current_state.value))
