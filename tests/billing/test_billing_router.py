"""Tests for the authenticated billing endpoints."""

from manymarkets.config import FREE_WATERMARKED_EXPORTS, settings
from manymarkets.exceptions import AutumnError, AutumnNotFoundError, PaddleError


class TestBillingState:
    def test_requires_auth(self, client):
        assert client.get("/api/billing").status_code == 401

    def test_unknown_customer_is_free(self, client, headers, autumn):
        autumn.get_customer.side_effect = AutumnNotFoundError("missing", status_code=404)

        response = client.get("/api/billing", headers=headers)

        assert response.json() == {"customer": None, "products": [], "currentPlan": "free"}

    def test_autumn_failure_is_500(self, client, headers, autumn):
        autumn.get_customer.side_effect = AutumnError("boom", status_code=502)
        response = client.get("/api/billing", headers=headers)
        assert response.status_code == 500
        assert response.json()["detail"] == "Failed to fetch billing state"

    def test_pro_customer_syncs_profile_tier(self, client, headers, autumn, db_session, profile):
        autumn.get_customer.return_value = {"id": "user-1", "products": [{"id": "pro", "status": "active"}]}

        response = client.get("/api/billing", headers=headers)

        assert response.status_code == 200
        assert response.json()["currentPlan"] == "pro"
        db_session.expire_all()
        assert profile.subscription_tier == "pro"
        assert profile.billing_provider == "autumn"

    def test_profile_created_on_first_request(self, client, headers, autumn, db_session):
        from manymarkets.models import Profile

        autumn.get_customer.return_value = {"id": "user-1", "products": []}
        client.get("/api/billing", headers=headers)

        created = db_session.query(Profile).filter(Profile.id == "user-1").one()
        assert created.email == "owner@example.com"
        assert created.subscription_tier == "free"
        assert created.referral_code


class TestBillingActions:
    def test_invalid_action(self, client, headers):
        response = client.post("/api/billing", json={"action": "refund"}, headers=headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid action"

    def test_checkout_requires_product(self, client, headers):
        response = client.post("/api/billing", json={"action": "checkout"}, headers=headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Product ID required"

    def test_checkout_returns_url(self, client, headers, autumn):
        autumn.checkout.return_value = {"url": "https://checkout.test/1"}

        response = client.post("/api/billing", json={"action": "checkout", "productId": "pro"}, headers=headers)

        assert response.json() == {"url": "https://checkout.test/1", "preview": None}
        autumn.checkout.assert_called_once_with("user-1", "pro")

    def test_checkout_without_url_returns_preview(self, client, headers, autumn):
        autumn.checkout.return_value = {"lines": []}
        response = client.post("/api/billing", json={"action": "checkout", "productId": "pro"}, headers=headers)
        assert response.json() == {"url": None, "preview": {"lines": []}}

    def test_create_customer_uses_display_name(self, client, headers, autumn):
        autumn.create_customer.return_value = {"id": "user-1"}

        response = client.post("/api/billing", json={"action": "create_customer"}, headers=headers)

        assert response.json() == {"success": True, "customer": {"id": "user-1"}}
        autumn.create_customer.assert_called_once_with("user-1", "owner", "owner@example.com")

    def test_cancel_defaults_to_pro(self, client, headers, autumn):
        autumn.cancel.return_value = {"ok": True}
        client.post("/api/billing", json={"action": "cancel"}, headers=headers)
        autumn.cancel.assert_called_once_with("user-1", "pro")

    def test_autumn_error_is_500(self, client, headers, autumn):
        autumn.attach.side_effect = AutumnError("nope")
        response = client.post("/api/billing", json={"action": "attach", "productId": "pro"}, headers=headers)
        assert response.status_code == 500
        assert response.json() == {"detail": "Billing action failed"}


class TestFeatureChecks:
    def test_check_allowed(self, client, headers, autumn):
        autumn.check.return_value = {"allowed": True, "balance": 4, "unlimited": False}

        response = client.post("/api/billing/check", json={"featureId": "ai_sessions"}, headers=headers)

        assert response.json() == {"allowed": True, "balance": 4, "unlimited": False}
        autumn.check.assert_called_once_with("user-1", "ai_sessions", 1)

    def test_check_unknown_customer_is_denied(self, client, headers, autumn):
        autumn.check.side_effect = AutumnNotFoundError("missing", status_code=404)
        response = client.post("/api/billing/check", json={"featureId": "ai_sessions"}, headers=headers)
        assert response.json()["allowed"] is False

    def test_check_requires_feature(self, client, headers):
        assert client.post("/api/billing/check", json={}, headers=headers).status_code == 400

    def test_track(self, client, headers, autumn):
        autumn.track.return_value = {"id": "evt"}
        response = client.post("/api/billing/track", json={"featureId": "ai_sessions", "value": 2}, headers=headers)
        assert response.json() == {"success": True, "data": {"id": "evt"}}
        autumn.track.assert_called_once_with("user-1", "ai_sessions", 2)


class TestFreeExports:
    def test_counts_until_limit(self, client, headers, profile):
        for used in range(1, FREE_WATERMARKED_EXPORTS + 1):
            response = client.post("/api/billing/track-free-export", headers=headers)
            assert response.status_code == 200
            assert response.json() == {
                "success": True,
                "used": used,
                "limit": FREE_WATERMARKED_EXPORTS,
                "remaining": FREE_WATERMARKED_EXPORTS - used,
            }

        response = client.post("/api/billing/track-free-export", headers=headers)
        assert response.status_code == 403
        detail = response.json()["detail"]
        assert detail["limitReached"] is True
        assert detail["used"] == FREE_WATERMARKED_EXPORTS


class TestPaddleCheckout:
    def test_returns_pay_link(self, client, headers, paddle):
        paddle.create_checkout.return_value = "https://pay.paddle.test/x"

        response = client.post("/api/billing/paddle/checkout", json={"productId": "777"}, headers=headers)

        assert response.json() == {"url": "https://pay.paddle.test/x"}
        kwargs = paddle.create_checkout.call_args.kwargs
        assert kwargs["product_id"] == "777"
        assert kwargs["user_id"] == "user-1"
        assert kwargs["redirect_url"].endswith("/upgrade/complete")

    def test_not_configured(self, client, headers, paddle):
        paddle.is_configured = False
        assert client.post("/api/billing/paddle/checkout", json={}, headers=headers).status_code == 503

    def test_paddle_error(self, client, headers, paddle):
        paddle.create_checkout.side_effect = PaddleError("down")
        assert client.post("/api/billing/paddle/checkout", json={}, headers=headers).status_code == 500


def test_providers_report(client, paddle, monkeypatch):
    monkeypatch.setattr(settings, "whop_pro_plan_id", "plan_123")
    monkeypatch.setattr(settings, "autumn_api_key", None)

    data = client.get("/api/billing/providers").json()

    assert data["paddle"] is True
    assert data["whop"]["configured"] is True
    assert data["whop"]["returnUrl"].endswith("/upgrade/complete")
    assert data["autumn"] is False
