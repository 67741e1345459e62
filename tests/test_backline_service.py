"""
tests/test_backline_service.py — Backline Applications
=======================================================
Application uniqueness per identity+type, band consensus activation,
votes and ordering, eligibility, and withdrawal.
"""

from __future__ import annotations

import logging
import uuid

import pytest
from conftest import seed_artist, seed_band

from showspot.engine.backline import compute_eligibility
from showspot.errors import (
    AlreadyAppliedError,
    BacklineNotFoundError,
    ConflictError,
    InvalidDecisionError,
    MemberNotFoundError,
    ShowNotFoundError,
    ValidationError,
)
from showspot.services import backline_service


@pytest.fixture
def opener(db_engine):
    """An artist off the bill who also plays in a two-piece band."""
    artist = seed_artist(db_engine, "Opener")
    mate = seed_artist(db_engine, "Mate")
    band = seed_band(db_engine, [artist, mate], "Openers")
    return {"artist": artist, "mate": mate, "band": band}


class TestApply:
    def test_solo_is_active_immediately(self, db_engine, lineup, opener):
        app = backline_service.apply(
            db_engine, lineup["show"].id, opener["artist"].id, "artist",
            requested_by=opener["artist"].id,
        )
        assert app.status == "active"
        assert app.consensus == []

    def test_duplicate_solo_rejected_but_band_allowed(self, db_engine, lineup, opener):
        show_id = lineup["show"].id
        backline_service.apply(db_engine, show_id, opener["artist"].id, "artist")

        with pytest.raises(AlreadyAppliedError) as exc:
            backline_service.apply(db_engine, show_id, opener["artist"].id, "artist")
        assert isinstance(exc.value, ConflictError)

        band_app = backline_service.apply(
            db_engine, show_id, opener["band"].id, "band",
            requested_by=opener["artist"].id,
        )
        assert band_app.status == "pending_consensus"
        decisions = {c.band_member_id: c.decision for c in band_app.consensus}
        assert decisions == {opener["artist"].id: True, opener["mate"].id: False}

    def test_single_member_band_by_its_member_is_active(self, db_engine, lineup):
        solo = seed_artist(db_engine, "One")
        band = seed_band(db_engine, [solo], "One Man Band")
        app = backline_service.apply(
            db_engine, lineup["show"].id, band.id, "band", requested_by=solo.id
        )
        assert app.status == "active"

    def test_performer_cannot_apply(self, db_engine, lineup):
        with pytest.raises(ConflictError, match="already performs"):
            backline_service.apply(
                db_engine, lineup["show"].id, lineup["band_members"][0].id, "artist"
            )
        with pytest.raises(ConflictError, match="already performs"):
            backline_service.apply(db_engine, lineup["show"].id, lineup["band"].id, "band")

    def test_band_with_a_performer_on_the_bill_refused(self, db_engine, lineup):
        ana = lineup["solo"][0]
        side_project = seed_band(db_engine, [ana], "Side Project")
        eligibility = backline_service.get_eligibility(db_engine, lineup["show"].id, ana.user_id)
        assert eligibility.reason == "already_performing"
        with pytest.raises(ConflictError, match="already performs"):
            backline_service.apply(
                db_engine, lineup["show"].id, side_project.id, "band", requested_by=ana.id
            )
        assert backline_service.list_applications(db_engine, lineup["show"].id) == []

    def test_requester_outside_band_rejected(self, db_engine, lineup, opener):
        with pytest.raises(ValidationError, match="not in band"):
            backline_service.apply(
                db_engine, lineup["show"].id, opener["band"].id, "band",
                requested_by=lineup["solo"][0].id,
            )

    def test_bad_inputs(self, db_engine, lineup, opener):
        with pytest.raises(ValidationError):
            backline_service.apply(db_engine, lineup["show"].id, opener["artist"].id, "duo")
        with pytest.raises(ValidationError):
            backline_service.apply(db_engine, lineup["show"].id, uuid.uuid4(), "artist")
        with pytest.raises(ShowNotFoundError):
            backline_service.apply(db_engine, uuid.uuid4(), opener["artist"].id, "artist")


class TestBandConsensus:
    def _band_app(self, db_engine, lineup, opener):
        return backline_service.apply(
            db_engine, lineup["show"].id, opener["band"].id, "band",
            requested_by=opener["artist"].id,
        )

    def test_last_acceptance_activates_and_notifies(self, db_engine, lineup, opener, notifier):
        self._band_app(db_engine, lineup, opener)
        app = backline_service.update_consensus(
            db_engine, lineup["show"].id, opener["band"].id, opener["mate"].id, True,
            notifier=notifier,
        )
        assert app.status == "active"
        recipients = {c.args[0] for c in notifier.send.call_args_list}
        assert recipients == {str(opener["artist"].user_id), str(opener["mate"].user_id)}
        assert {c.args[1] for c in notifier.send.call_args_list} == {"backline_activated"}

    def test_decline_keeps_pending(self, db_engine, lineup, opener, notifier):
        self._band_app(db_engine, lineup, opener)
        app = backline_service.update_consensus(
            db_engine, lineup["show"].id, opener["band"].id, opener["mate"].id, False,
            notifier=notifier,
        )
        assert app.status == "pending_consensus"
        notifier.send.assert_not_called()

    def test_frozen_once_active(self, db_engine, lineup, opener):
        self._band_app(db_engine, lineup, opener)
        backline_service.update_consensus(
            db_engine, lineup["show"].id, opener["band"].id, opener["mate"].id, True
        )
        with pytest.raises(ConflictError):
            backline_service.update_consensus(
                db_engine, lineup["show"].id, opener["band"].id, opener["mate"].id, False
            )

    def test_outsider_and_bad_decision(self, db_engine, lineup, opener):
        self._band_app(db_engine, lineup, opener)
        with pytest.raises(MemberNotFoundError):
            backline_service.update_consensus(
                db_engine, lineup["show"].id, opener["band"].id, uuid.uuid4(), True
            )
        with pytest.raises(InvalidDecisionError):
            backline_service.update_consensus(
                db_engine, lineup["show"].id, opener["band"].id, opener["mate"].id, 1
            )

    def test_no_application(self, db_engine, lineup, opener):
        with pytest.raises(BacklineNotFoundError):
            backline_service.update_consensus(
                db_engine, lineup["show"].id, opener["band"].id, opener["mate"].id, True
            )


class TestVotesAndListing:
    def test_vote_once_per_voter(self, db_engine, lineup, opener):
        show_id = lineup["show"].id
        backline_service.apply(db_engine, show_id, opener["artist"].id, "artist")
        voter = uuid.uuid4()
        assert backline_service.vote(db_engine, show_id, opener["artist"].id, voter) is True
        assert backline_service.vote(db_engine, show_id, opener["artist"].id, voter) is False

        [listed] = backline_service.list_applications(db_engine, show_id, voter)
        assert listed["vote_count"] == 1
        assert listed["user_has_voted"] is True
        assert listed["applicant_name"] == "Opener"

    def test_new_vote_is_committed_and_logged(self, db_engine, lineup, opener, caplog):
        show_id = lineup["show"].id
        app = backline_service.apply(db_engine, show_id, opener["artist"].id, "artist")
        voter = uuid.uuid4()
        with caplog.at_level(logging.INFO, logger="showspot.services.backline_service"):
            assert backline_service.vote(db_engine, show_id, opener["artist"].id, voter) is True
        assert f"Backline vote on application {app.id} by {voter}" in caplog.text
        [listed] = backline_service.list_applications(db_engine, show_id)
        assert listed["vote_count"] == 1

    def test_vote_on_missing_application(self, db_engine, lineup):
        with pytest.raises(BacklineNotFoundError):
            backline_service.vote(db_engine, lineup["show"].id, uuid.uuid4(), uuid.uuid4())

    def test_most_voted_first(self, db_engine, lineup, opener):
        show_id = lineup["show"].id
        backline_service.apply(db_engine, show_id, opener["artist"].id, "artist")
        backline_service.apply(db_engine, show_id, opener["band"].id, "band")
        for _ in range(2):
            backline_service.vote(db_engine, show_id, opener["band"].id, uuid.uuid4())

        listed = backline_service.list_applications(db_engine, show_id)
        assert [a["applicant_type"] for a in listed] == ["band", "artist"]
        assert [a["vote_count"] for a in listed] == [2, 0]

    def test_tie_keeps_application_order(self, db_engine, lineup, opener):
        show_id = lineup["show"].id
        backline_service.apply(db_engine, show_id, opener["artist"].id, "artist")
        backline_service.apply(db_engine, show_id, opener["band"].id, "band")
        listed = backline_service.list_applications(db_engine, show_id)
        assert [a["applicant_type"] for a in listed] == ["artist", "band"]


class TestEligibility:
    def test_fresh_user_can_apply_both_ways(self, db_engine, lineup, opener):
        result = backline_service.get_eligibility(
            db_engine, lineup["show"].id, opener["artist"].user_id
        )
        assert result.eligible is True
        assert result.available_artist_id == opener["artist"].id
        assert result.available_band_ids == [opener["band"].id]

    def test_solo_applied_band_still_open(self, db_engine, lineup, opener):
        backline_service.apply(db_engine, lineup["show"].id, opener["artist"].id, "artist")
        result = backline_service.get_eligibility(
            db_engine, lineup["show"].id, opener["artist"].user_id
        )
        assert result.eligible is True
        assert result.available_artist_id is None
        assert result.available_band_ids == [opener["band"].id]

    def test_all_identities_applied(self, db_engine, lineup, opener):
        show_id = lineup["show"].id
        backline_service.apply(db_engine, show_id, opener["artist"].id, "artist")
        backline_service.apply(db_engine, show_id, opener["band"].id, "band")
        result = backline_service.get_eligibility(db_engine, show_id, opener["artist"].user_id)
        assert (result.eligible, result.reason) == (False, "all_identities_applied")

    def test_performer_and_stranger(self, db_engine, lineup):
        performer = backline_service.get_eligibility(
            db_engine, lineup["show"].id, lineup["band_members"][1].user_id
        )
        assert performer.reason == "already_performing"
        stranger = backline_service.get_eligibility(db_engine, lineup["show"].id, uuid.uuid4())
        assert stranger.reason == "no_artist_profile"
        ghost = backline_service.get_eligibility(db_engine, uuid.uuid4(), uuid.uuid4())
        assert ghost.reason == "show_not_found"

    def test_pure_rules(self):
        artist, band = uuid.uuid4(), uuid.uuid4()
        result = compute_eligibility(
            is_performer=False,
            artist_id=artist,
            band_ids=[band],
            applications=[(band, "band")],
        )
        assert result.to_dict() == {
            "eligible": True,
            "reason": None,
            "available_artist_id": str(artist),
            "available_band_ids": [],
        }


class TestWithdraw:
    def test_withdraw_without_votes(self, db_engine, lineup, opener):
        show_id = lineup["show"].id
        backline_service.apply(db_engine, show_id, opener["artist"].id, "artist")
        backline_service.withdraw(db_engine, show_id, opener["artist"].id, "artist")
        assert backline_service.list_applications(db_engine, show_id) == []
        # The identity is free again.
        backline_service.apply(db_engine, show_id, opener["artist"].id, "artist")

    def test_withdraw_blocked_by_votes(self, db_engine, lineup, opener):
        show_id = lineup["show"].id
        backline_service.apply(db_engine, show_id, opener["artist"].id, "artist")
        backline_service.vote(db_engine, show_id, opener["artist"].id, uuid.uuid4())
        with pytest.raises(ConflictError, match="1 votes"):
            backline_service.withdraw(db_engine, show_id, opener["artist"].id, "artist")

    def test_withdraw_missing(self, db_engine, lineup):
        with pytest.raises(BacklineNotFoundError):
            backline_service.withdraw(db_engine, lineup["show"].id, uuid.uuid4())
