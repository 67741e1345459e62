"""
tests/test_show_service.py — Show Creation, Decisions & Activation
===================================================================
Integration tests against the in-memory SQLite engine: band snapshots,
decision writes, the pending → active transition and its notifications.
"""

from __future__ import annotations

import uuid
from datetime import date, time
from decimal import Decimal

import pytest
from conftest import seed_artist, seed_band, seed_show, seed_venue
from sqlalchemy.orm import Session

from showspot.database.models import Show, ShowStatus
from showspot.errors import (
    InvalidDecisionError,
    MemberNotFoundError,
    ShowNotFoundError,
    ShowNotPendingError,
    ValidationError,
    VenueNotFoundError,
)
from showspot.services import activation_service, negotiation_service, show_service
from showspot.services.show_service import MemberInvite


def _accept_all(engine, lineup, except_artist=None):
    for artist in [*lineup["solo"], *lineup["band_members"]]:
        if artist is except_artist:
            continue
        show_service.record_member_decision(engine, lineup["show"].id, artist.id, True)


def _status(engine, show_id) -> str:
    with Session(engine) as session:
        return session.get(Show, show_id).status


class TestCreateShow:
    def test_snapshots_band_roster(self, db_engine, lineup):
        show = lineup["show"]
        assert show.status == ShowStatus.PENDING.value
        band_row = next(m for m in show.members if m.member_type == "band")
        assert {c.sub_member_id for c in band_row.consensus} == {
            a.id for a in lineup["band_members"]
        }
        assert all(not c.decision for c in band_row.consensus)

    def test_unknown_venue(self, db_engine):
        artist = seed_artist(db_engine)
        with pytest.raises(VenueNotFoundError):
            show_service.create_show(
                db_engine,
                venue_id=uuid.uuid4(),
                promoter_id=uuid.uuid4(),
                preferred_date=date(2026, 11, 20),
                preferred_time=time(20, 30),
                members=[MemberInvite(artist.id, "artist")],
            )

    def test_empty_band_rejected(self, db_engine):
        venue = seed_venue(db_engine)
        band = seed_band(db_engine, [])
        with pytest.raises(ValidationError, match="no members"):
            seed_show(db_engine, venue, bands=[band])

    def test_duplicate_member_rejected(self, db_engine):
        venue = seed_venue(db_engine)
        artist = seed_artist(db_engine)
        with pytest.raises(ValidationError, match="more than once"):
            seed_show(db_engine, venue, [artist, artist])


class TestRecordDecision:
    def test_band_holdout_keeps_show_pending(self, db_engine, lineup, cfg):
        """Venue and everyone else accepted; one band member declined."""
        holdout = lineup["band_members"][2]
        _accept_all(db_engine, lineup, except_artist=holdout)
        show_service.record_member_decision(db_engine, lineup["show"].id, holdout.id, False)
        negotiation_service.commit_venue_acceptance(
            db_engine, cfg, lineup["show"].id, Decimal("20"), 15
        )

        view = show_service.get_show(db_engine, lineup["show"].id)
        band = next(m for m in view["members"] if m["member_type"] == "band")
        assert band["decision"] is False
        assert view["status"] == "pending"
        assert view["pending_members"][0]["waiting_on"] == [str(holdout.id)]

    def test_decline_is_retractable_and_last_accept_activates(self, db_engine, lineup, cfg):
        holdout = lineup["band_members"][0]
        _accept_all(db_engine, lineup, except_artist=holdout)
        negotiation_service.commit_venue_acceptance(
            db_engine, cfg, lineup["show"].id, Decimal("20"), 15
        )
        show_service.record_member_decision(db_engine, lineup["show"].id, holdout.id, False)
        assert _status(db_engine, lineup["show"].id) == "pending"

        result = show_service.record_member_decision(
            db_engine, lineup["show"].id, holdout.id, True
        )
        assert result.activated is True
        assert result.status == "active"

        with Session(db_engine) as session:
            show = session.get(Show, lineup["show"].id)
            assert show.activated_at is not None

    def test_decisions_freeze_once_active(self, db_engine, lineup, cfg):
        _accept_all(db_engine, lineup)
        negotiation_service.commit_venue_acceptance(
            db_engine, cfg, lineup["show"].id, Decimal("20"), 15
        )
        assert _status(db_engine, lineup["show"].id) == "active"
        with pytest.raises(ShowNotPendingError):
            show_service.record_member_decision(
                db_engine, lineup["show"].id, lineup["solo"][0].id, False
            )

    def test_artist_in_band_and_solo_updates_both_entries(self, db_engine):
        venue = seed_venue(db_engine)
        both = seed_artist(db_engine, "Both")
        band = seed_band(db_engine, [both, seed_artist(db_engine, "Other")])
        show = seed_show(db_engine, venue, [both], [band])
        result = show_service.record_member_decision(db_engine, show.id, both.id, True)
        assert result.entries_updated == 2

    def test_unknown_member_raises(self, db_engine, lineup):
        with pytest.raises(MemberNotFoundError):
            show_service.record_member_decision(
                db_engine, lineup["show"].id, uuid.uuid4(), True
            )

    def test_unknown_show_raises(self, db_engine):
        with pytest.raises(ShowNotFoundError):
            show_service.record_member_decision(db_engine, uuid.uuid4(), uuid.uuid4(), True)

    def test_non_bool_decision_rejected(self, db_engine, lineup):
        with pytest.raises(InvalidDecisionError):
            show_service.record_member_decision(
                db_engine, lineup["show"].id, lineup["solo"][0].id, "yes"
            )


class TestActivation:
    def test_activation_notifies_performers_and_venue(self, db_engine, lineup, cfg, notifier):
        negotiation_service.commit_venue_acceptance(
            db_engine, cfg, lineup["show"].id, Decimal("20"), 15
        )
        last = lineup["band_members"][-1]
        _accept_all(db_engine, lineup, except_artist=last)
        result = show_service.record_member_decision(
            db_engine, lineup["show"].id, last.id, True, notifier=notifier
        )

        assert result.activated is True
        assert result.notification.ok
        recipients = {c.args[0] for c in notifier.send.call_args_list}
        expected = {str(a.user_id) for a in [*lineup["solo"], *lineup["band_members"]]}
        expected.add(str(lineup["venue"].owner_user_id))
        assert recipients == expected
        assert {c.args[1] for c in notifier.send.call_args_list} == {"show_activated"}

    def test_failed_notification_does_not_roll_back(self, db_engine, lineup, cfg, notifier):
        notifier.send.side_effect = RuntimeError("push gateway down")
        negotiation_service.commit_venue_acceptance(
            db_engine, cfg, lineup["show"].id, Decimal("20"), 15
        )
        last = lineup["solo"][0]
        _accept_all(db_engine, lineup, except_artist=last)
        result = show_service.record_member_decision(
            db_engine, lineup["show"].id, last.id, True, notifier=notifier
        )
        assert result.status == "active"
        assert not result.notification.ok
        assert _status(db_engine, lineup["show"].id) == "active"

    def test_reevaluation_is_idempotent(self, db_engine, lineup, cfg, notifier):
        _accept_all(db_engine, lineup)
        negotiation_service.commit_venue_acceptance(
            db_engine, cfg, lineup["show"].id, Decimal("20"), 15
        )
        outcome = activation_service.activate_if_ready(
            db_engine, lineup["show"].id, notifier=notifier
        )
        assert outcome.activated is False
        assert outcome.status == "active"
        notifier.send.assert_not_called()

    def test_status_matches_consensus_at_every_step(self, db_engine, lineup, cfg):
        """status == active exactly when the venue and every member consent."""
        show_id = lineup["show"].id
        steps = [*lineup["solo"], *lineup["band_members"]]
        for i, artist in enumerate(steps):
            show_service.record_member_decision(db_engine, show_id, artist.id, True)
            view = show_service.get_show(db_engine, show_id)
            assert (view["status"] == "active") == view["consensus_complete"]
            if i == 1:
                negotiation_service.commit_venue_acceptance(
                    db_engine, cfg, show_id, Decimal("20"), 15
                )
        assert _status(db_engine, show_id) == "active"


class TestResolutionReads:
    def test_is_user_performer(self, db_engine, lineup):
        show_id = lineup["show"].id
        assert show_service.is_user_performer(db_engine, show_id, lineup["solo"][0].user_id)
        assert show_service.is_user_performer(
            db_engine, show_id, lineup["band_members"][1].user_id
        )
        assert not show_service.is_user_performer(db_engine, show_id, uuid.uuid4())
        assert not show_service.is_user_performer(db_engine, uuid.uuid4(), uuid.uuid4())

    def test_guarantee_undetermined_before_negotiation(self, db_engine, lineup):
        [result] = show_service.get_user_guarantee(
            db_engine, lineup["show"].id, lineup["solo"][0].user_id
        )
        assert result["role"] == "artist"
        assert result["determined"] is False
        assert result["guarantee"] is None

    def test_guarantee_after_negotiation(self, db_engine, lineup, cfg):
        negotiation_service.commit_venue_acceptance(
            db_engine, cfg, lineup["show"].id, Decimal("20"), 15
        )
        [artist] = show_service.get_user_guarantee(
            db_engine, lineup["show"].id, lineup["band_members"][0].user_id
        )
        assert artist["stored"] is True
        assert artist["guarantee"]["sold_out"] == "680.00"

        [venue] = show_service.get_user_guarantee(
            db_engine, lineup["show"].id, lineup["venue"].owner_user_id
        )
        assert venue["role"] == "venue"
        assert venue["guarantee"]["twenty_five_pct"] == "150.00"

    def test_guarantee_lists_every_role_held(self, db_engine, cfg):
        owner = uuid.uuid4()
        venue = seed_venue(db_engine, owner_user_id=owner)
        main = seed_artist(db_engine, "Main", user_id=owner)
        alias = seed_artist(db_engine, "Alias", user_id=owner)
        other = seed_artist(db_engine, "Other")
        show = seed_show(db_engine, venue, [main, alias, other])
        negotiation_service.commit_venue_acceptance(db_engine, cfg, show.id, Decimal("20"), 15)

        roles = show_service.get_user_guarantee(db_engine, show.id, owner)
        assert sorted(r["role"] for r in roles) == ["artist", "artist", "venue"]
        assert {r["artist_id"] for r in roles if r["role"] == "artist"} == {
            str(main.id), str(alias.id)
        }
        assert all(r["determined"] for r in roles)

    def test_no_stake_returns_empty(self, db_engine, lineup):
        assert show_service.get_user_guarantee(db_engine, lineup["show"].id, uuid.uuid4()) == []
        assert show_service.get_user_guarantee(db_engine, uuid.uuid4(), uuid.uuid4()) == []
        assert show_service.get_user_guarantee(db_engine, lineup["show"].id, None) == []

