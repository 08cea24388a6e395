"""
Exceptions raised at the tier engine's collaborator boundaries.

The transition orchestrator converts each of these into a
TransitionError; none of them escapes request_transition().
"""


class OperatorNotFound(LookupError):
    def __init__(self, operator_id):
        self.operator_id = operator_id
        super().__init__(f"Operator {operator_id} not found")


class IncompleteSnapshotError(ValueError):
    """Snapshot is missing a metric required for qualification."""

    def __init__(self, operator_id, missing):
        self.operator_id = operator_id
        self.missing = tuple(missing)
        super().__init__(
            f"Operator {operator_id} snapshot is missing: {', '.join(self.missing)}"
        )


class TierUpdateConflict(Exception):
    """Stored tier no longer matches the tier the update was based on."""

    def __init__(self, operator_id, expected_tier):
        self.operator_id = operator_id
        self.expected_tier = expected_tier
        super().__init__(
            f"Operator {operator_id} is no longer at {expected_tier}"
        )


class PersistenceFailure(Exception):
    """Storage could not apply a tier update."""


class AuditWriteError(Exception):
    """Audit sink could not append an entry."""


class OperatorBusy(Exception):
    """Per-operator lock could not be acquired within the bounded wait."""

    def __init__(self, operator_id, waited):
        self.operator_id = operator_id
        self.waited = waited
        super().__init__(
            f"Another tier transition is in progress for operator {operator_id}"
        )
