"""
Placement engine errors.

Validation errors (InvalidTransition, NoActivePlacement, AlreadyReneged,
DataIntegrityError) are caller mistakes and are never retried.
ConcurrentModification is safe to retry against fresh state.
StorageUnavailable is fatal to the request; the transaction is rolled back.
"""


class PlacementEngineError(Exception):
    """Base class for every error the engine raises on purpose."""

    status_code = 400

    def __init__(self, message: str, candidate_id: int = None):
        super().__init__(message)
        self.message = message
        self.candidate_id = candidate_id


class InvalidTransition(PlacementEngineError):
    """Requested stage is not reachable from the current stage."""

    def __init__(self, current_stage: str, target_stage: str, candidate_id: int = None):
        super().__init__(
            f"Cannot move candidate from '{current_stage}' to '{target_stage}'",
            candidate_id,
        )
        self.current_stage = current_stage
        self.target_stage = target_stage


class NoActivePlacement(PlacementEngineError):
    pass


class AlreadyReneged(PlacementEngineError):
    status_code = 409


class ConcurrentModification(PlacementEngineError):
    """Another mutation on the same candidate won the race. Retry with fresh state."""

    status_code = 409


class StorageUnavailable(PlacementEngineError):
    status_code = 503


class DataIntegrityError(PlacementEngineError):
    """Stored data contradicts a rule, e.g. joining without an offer."""

    status_code = 422


class CandidateNotFound(PlacementEngineError):
    status_code = 404

    def __init__(self, candidate_id: int):
        super().__init__(f"Candidate {candidate_id} not found", candidate_id)


class InvalidResumeText(PlacementEngineError):
    pass


class ResumeParsingFailed(PlacementEngineError):
    """The parsing model answered with something that is not a JSON object."""

    status_code = 502
