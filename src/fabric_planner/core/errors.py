"""
Error taxonomy.

Almost every finding in this library is returned as data: topology warnings,
divisibility severities and allocation shortfalls all travel inside result
objects so the caller can decide whether to block a save or show a banner.

Only two situations raise:
FabricSpecInvalid when a raw payload cannot be turned into a fabric spec.
TopologyComputationFailed when compute_topology hits an unexpected failure.
"""


class FabricPlannerError(Exception):
    """Base class for all fabric planner exceptions."""


class FabricSpecInvalid(FabricPlannerError, ValueError):
    """Raised when a payload does not describe exactly one fabric spec shape."""


class TopologyComputationFailed(FabricPlannerError):
    """
    Raised when topology computation fails unexpectedly.

    elapsed_ms records how long the computation ran before failing.
    The original exception is chained as __cause__.
    """

    def __init__(self, elapsed_ms: float, cause: BaseException) -> None:
        super().__init__(f"Topology computation failed after {elapsed_ms:.0f}ms: {cause}")
        self.elapsed_ms = elapsed_ms
        self.cause = cause
