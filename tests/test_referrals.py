"""Tests for the referral program."""

import pytest

from manymarkets.config import REFERRAL_BONUS_SESSIONS
from manymarkets.exceptions import ReferralError
from manymarkets.models import Referral
from manymarkets.referrals import apply_referral_code, mask_email
from manymarkets.referrals.service import MAX_BONUS_SESSIONS


class TestMaskEmail:
    def test_masks_local_part(self):
        assert mask_email("johnny@example.com") == "jo***@example.com"

    def test_empty_is_anonymous(self):
        assert mask_email("") == "Anonymous"
        assert mask_email(None) == "Anonymous"


@pytest.fixture
def referrer(make_profile):
    return make_profile("ref-1", "referrer@example.com", referral_code="FRIEND42")


class TestApplyReferralCode:
    def test_awards_bonus(self, db_session, profile, referrer):
        awarded = apply_referral_code(db_session, profile, "  friend42 ")

        db_session.refresh(referrer)
        assert awarded is True
        assert profile.referred_by == "ref-1"
        assert referrer.referral_count == 1
        assert referrer.bonus_sessions == REFERRAL_BONUS_SESSIONS
        assert db_session.query(Referral).one().bonus_awarded is True

    def test_bonus_capped(self, db_session, profile, referrer):
        referrer.bonus_sessions = MAX_BONUS_SESSIONS
        referrer.referral_count = 10
        db_session.commit()

        awarded = apply_referral_code(db_session, profile, "FRIEND42")

        db_session.refresh(referrer)
        assert awarded is False
        assert referrer.referral_count == 11
        assert referrer.bonus_sessions == MAX_BONUS_SESSIONS

    @pytest.mark.parametrize("code", [None, "", "   ", 42])
    def test_code_required(self, db_session, profile, code):
        with pytest.raises(ReferralError, match="required"):
            apply_referral_code(db_session, profile, code)

    def test_own_code_rejected(self, db_session, profile):
        with pytest.raises(ReferralError, match="your own"):
            apply_referral_code(db_session, profile, "owner123")

    def test_unknown_code_rejected(self, db_session, profile):
        with pytest.raises(ReferralError, match="Invalid"):
            apply_referral_code(db_session, profile, "NOPE")

    def test_only_once(self, db_session, profile, referrer, make_profile):
        make_profile("ref-2", "other@example.com", referral_code="OTHER1")
        apply_referral_code(db_session, profile, "FRIEND42")

        with pytest.raises(ReferralError, match="already used"):
            apply_referral_code(db_session, profile, "OTHER1")


class TestReferralEndpoints:
    def test_stats(self, client, db_session, profile, referrer, headers_for):
        apply_referral_code(db_session, profile, "FRIEND42")

        data = client.get("/api/referrals", headers=headers_for("ref-1", "referrer@example.com")).json()

        assert data["referralCode"] == "FRIEND42"
        assert data["referralCount"] == 1
        assert data["bonusSessions"] == REFERRAL_BONUS_SESSIONS
        assert data["maxBonusSessions"] == MAX_BONUS_SESSIONS
        assert data["bonusPerReferral"] == REFERRAL_BONUS_SESSIONS
        assert data["wasReferred"] is False
        assert data["referrals"][0]["email"] == "ow***@example.com"
        assert data["referrals"][0]["bonusAwarded"] is True

    def test_apply(self, client, headers, profile, referrer):
        response = client.post("/api/referrals/apply", json={"referralCode": "friend42"}, headers=headers)

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "message": "Referral code applied successfully!",
            "bonusAwarded": True,
        }

    def test_apply_invalid(self, client, headers, profile):
        response = client.post("/api/referrals/apply", json={"referralCode": "nope"}, headers=headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid referral code"
