import pytest

from themeleague.exceptions import NotFound
from themeleague.models.models import RoundState
from themeleague.services import ledger, round_state, tally
from themeleague.services.allocation import PendingVote


@pytest.fixture
def scored_round(db, make_user, make_league, make_round, make_submission):
    """Bob's entry gets +3 and -1, Alice's gets +2, Carol's nothing."""
    names = ("Alice", "Bob", "Carol", "Dave", "Erin")
    users = {name: make_user(name) for name in names}
    league = make_league(
        users["Alice"],
        members=[users[n] for n in names[1:]],
        upvotes=3,
        downvotes=1,
    )
    round_obj = make_round(league)
    entries = {
        name: make_submission(users[name], round_obj)
        for name in ("Alice", "Bob", "Carol")
    }
    round_state.start_voting(db, users["Alice"], round_obj.round_id)

    ballots = {
        "Carol": {entries["Bob"].sub_id: PendingVote(3, "so warm")},
        "Dave": {entries["Bob"].sub_id: PendingVote(-1, "too dark")},
        "Erin": {entries["Alice"].sub_id: PendingVote(2)},
    }
    for voter, pending in ballots.items():
        ledger.commit_votes(db, users[voter], round_obj.round_id, pending)
    return {
        "league": league,
        "round": round_obj,
        "users": users,
        "entries": entries,
    }


class TestRanking:
    def test_dense_ranks(self):
        assert tally.dense_ranks([5, 5, 3, 3, 1]) == [1, 1, 2, 2, 3]
        assert tally.dense_ranks([0, -2]) == [1, 2]
        assert tally.dense_ranks([]) == []

    def test_rank_totals_orders_and_breaks_ties_by_name(self):
        standings = tally.rank_totals(
            {1: 4, 2: 7, 3: 4},
            {1: "Zoe", 2: "Max", 3: "Ann"},
        )
        assert [(s.username, s.total, s.rank) for s in standings] == [
            ("Max", 7, 1),
            ("Ann", 4, 2),
            ("Zoe", 4, 2),
        ]

    def test_rank_totals_keeps_users_sharing_a_name_apart(self):
        standings = tally.rank_totals({7: 3, 4: 3}, {7: "Sam", 4: "Sam"})
        assert [(s.user_id, s.rank) for s in standings] == [(4, 1), (7, 1)]


class TestRoundTally:
    def test_totals_and_ties(self, db, scored_round):
        results = tally.get_tally(db, scored_round["round"].round_id)
        assert [(t.username, t.total, t.rank) for t in results] == [
            ("Alice", 2, 1),
            ("Bob", 2, 1),
            ("Carol", 0, 2),
        ]

    def test_votes_grouped_by_voter(self, db, scored_round):
        results = tally.get_tally(db, scored_round["round"].round_id)
        bob = next(t for t in results if t.username == "Bob")
        assert [(v.username, v.value, v.comments) for v in bob.votes] == [
            ("Carol", 3, ["so warm"]),
            ("Dave", -1, ["too dark"]),
        ]
        carol = next(t for t in results if t.username == "Carol")
        assert carol.votes == []

    def test_group_by_voter_sums_rows(self, db, scored_round):
        rows = ledger.round_votes(db, scored_round["round"].round_id)
        names = {u.user_id: u.username for u in scored_round["users"].values()}
        grouped = tally.group_by_voter(rows, names)
        assert sum(c.value for c in grouped) == 4

    def test_tally_before_any_votes(
        self, db, make_user, make_league, make_round, make_submission
    ):
        alice = make_user("Alice")
        round_obj = make_round(make_league(alice))
        make_submission(alice, round_obj)
        results = tally.get_tally(db, round_obj.round_id)
        assert [(t.total, t.rank) for t in results] == [(0, 1)]

    def test_unknown_round(self, db):
        with pytest.raises(NotFound):
            tally.get_tally(db, 404)


class TestLeagueStandings:
    def test_single_round(self, db, scored_round):
        standings = tally.get_league_standings(
            db, scored_round["league"].league_id
        )
        assert [(s.username, s.total, s.rank) for s in standings] == [
            ("Alice", 2, 1),
            ("Bob", 2, 1),
            ("Carol", 0, 2),
        ]

    def test_accumulates_across_rounds(
        self, db, scored_round, make_round, make_submission
    ):
        users = scored_round["users"]
        alice = users["Alice"]
        round_state.close_voting(db, alice, scored_round["round"].round_id)
        second = make_round(scored_round["league"], theme="Shadows")
        dave_entry = make_submission(users["Dave"], second)
        bob_entry = make_submission(users["Bob"], second)
        round_state.start_voting(db, alice, second.round_id)
        ledger.commit_votes(
            db,
            users["Erin"],
            second.round_id,
            {
                dave_entry.sub_id: PendingVote(3),
                bob_entry.sub_id: PendingVote(1),
            },
        )

        standings = tally.get_league_standings(
            db, scored_round["league"].league_id
        )
        assert [(s.username, s.total, s.rank) for s in standings] == [
            ("Bob", 3, 1),
            ("Dave", 3, 1),
            ("Alice", 2, 2),
            ("Carol", 0, 3),
        ]

    def test_members_without_submissions_left_out(self, db, scored_round):
        standings = tally.get_league_standings(
            db, scored_round["league"].league_id
        )
        assert "Erin" not in {s.username for s in standings}

    def test_empty_league(self, db, make_user, make_league):
        league = make_league(make_user("Alice"))
        assert tally.get_league_standings(db, league.league_id) == []

    def test_unknown_league(self, db):
        with pytest.raises(NotFound):
            tally.get_league_standings(db, 404)


class TestMemberStatus:
    @pytest.mark.parametrize(
        "state, submitted, committed, expected",
        [
            (RoundState.DRAFT, False, False, "Pending"),
            (RoundState.SUBMISSION_OPEN, True, False, "Submitted"),
            (RoundState.SUBMISSION_OPEN, False, False, "Pending"),
            (RoundState.VOTING_OPEN, True, True, "Voted"),
            (RoundState.VOTING_OPEN, True, False, "Pending"),
            (RoundState.CLOSED, True, True, "Voted"),
            (RoundState.CLOSED, True, False, "Did not vote"),
        ],
    )
    def test_status_label(self, state, submitted, committed, expected):
        assert tally.status_label(state, submitted, committed) == expected

    def test_statuses_while_submitting(
        self, db, make_user, make_league, make_round, make_submission
    ):
        alice, bob = make_user("Alice"), make_user("Bob")
        round_obj = make_round(make_league(alice, members=(bob,)))
        make_submission(bob, round_obj)
        statuses = tally.member_statuses(db, round_obj.round_id)
        assert [(s.username, s.submitted, s.status) for s in statuses] == [
            ("Alice", False, "Pending"),
            ("Bob", True, "Submitted"),
        ]

    def test_statuses_after_close(self, db, scored_round):
        alice = scored_round["users"]["Alice"]
        round_id = scored_round["round"].round_id
        round_state.close_voting(db, alice, round_id)
        statuses = {
            s.username: s.status for s in tally.member_statuses(db, round_id)
        }
        assert statuses == {
            "Alice": "Did not vote",
            "Bob": "Did not vote",
            "Carol": "Voted",
            "Dave": "Voted",
            "Erin": "Voted",
        }
