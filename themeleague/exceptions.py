"""Error taxonomy for league, round and voting operations.

Every error is recoverable by the caller: it carries a user-facing message,
a stable machine code and the HTTP status the API layer answers with.
"""


class LeagueError(Exception):
    """Base class for all league engine errors."""

    code = "league_error"
    status_code = 400

    def __init__(self, message: str = None):
        self.message = message or self.default_message()
        super().__init__(self.message)

    @classmethod
    def default_message(cls) -> str:
        return cls.code.replace("_", " ").capitalize()


class BudgetExceeded(LeagueError):
    code = "budget_exceeded"
    status_code = 400


class AlreadyCommitted(LeagueError):
    code = "already_committed"
    status_code = 409

    @classmethod
    def default_message(cls) -> str:
        return "You have already submitted your votes for this round"


class SelfVoteForbidden(LeagueError):
    code = "self_vote_forbidden"
    status_code = 403

    @classmethod
    def default_message(cls) -> str:
        return "Cannot vote for your own submission"


class VotingClosed(LeagueError):
    code = "voting_closed"
    status_code = 409

    @classmethod
    def default_message(cls) -> str:
        return "Voting is not open for this round"


class SubmissionClosed(LeagueError):
    code = "submission_closed"
    status_code = 409

    @classmethod
    def default_message(cls) -> str:
        return "This round is not accepting submissions"


class InvalidTransition(LeagueError):
    code = "invalid_transition"
    status_code = 409


class NotFound(LeagueError):
    code = "not_found"
    status_code = 404


class Conflict(LeagueError):
    """A concurrent update won the race; re-read the state and retry."""

    code = "conflict"
    status_code = 409


class Forbidden(LeagueError):
    code = "forbidden"
    status_code = 403


class ValidationFailed(LeagueError):
    code = "validation_failed"
    status_code = 400


class Unavailable(LeagueError):
    """The data store could not be reached. Safe to retry with backoff."""

    code = "unavailable"
    status_code = 503

    @classmethod
    def default_message(cls) -> str:
        return "The service is temporarily unavailable, please retry"
