"""Screen flows with the data gateway and companion backend replaced by fakes."""

import pytest

from viblo.config import settings
from viblo.errors import FormValidationError, NotFoundError, PermissionDeniedError, RemoteCallError
from viblo.flows.campaigns import CampaignFlow
from viblo.flows.connections import BrowserResult, ConnectionFlow, poll_delays
from viblo.flows.inbox import InboxFlow
from viblo.flows.payments import PaymentFlow
from viblo.flows.profile import ProfileFlow
from viblo.flows.submissions import SubmissionFlow
from viblo.flows.wallet import WalletFlow
from viblo.models.campaign import CampaignForm, CampaignStatus
from viblo.models.messaging import ConversationSummary, Message
from viblo.models.payment import (
    Coupon,
    PaymentIntent,
    PaymentSheetResult,
    Payout,
    PayoutMethod,
    PayoutMethodForm,
    PayoutMethodType,
)
from viblo.models.profile import (
    AvatarUpload,
    PlatformStats,
    Profile,
    ProfileUpdate,
    SocialLink,
    SocialPlatform,
    UserType,
)
from viblo.models.submission import ContentSubmission, SubmissionReview, SubmissionStatus, VideoItem, VideoUpload
from viblo.services.backend_service import BackendService
from viblo.services.gateway import DataGateway
from viblo.services.supabase_service import SupabaseService
from viblo.session import SessionContext

from conftest import make_campaign


class FakeRemote:
    """Replaces gateway/backend classmethods and records every call."""

    def __init__(self, monkeypatch):
        self.monkeypatch = monkeypatch
        self.calls: list[tuple[str, tuple]] = []

    def on(self, target, name, result=None, error=None):
        async def fake(*args, **kwargs):
            self.calls.append((name, args))
            if error is not None:
                raise error
            return result(*args, **kwargs) if callable(result) else result

        self.monkeypatch.setattr(target, name, fake)

    def gateway(self, name, result=None, error=None):
        self.on(DataGateway, name, result, error)

    def backend(self, name, result=None, error=None):
        self.on(BackendService, name, result, error)

    def called(self, name) -> list[tuple]:
        return [args for called, args in self.calls if called == name]


@pytest.fixture
def remote(monkeypatch):
    return FakeRemote(monkeypatch)


def submission(**overrides) -> ContentSubmission:
    data = {
        "id": "sub-1",
        "influencer_id": "creator-1",
        "campaign_id": "camp-1",
        "status": SubmissionStatus.PENDING_REVIEW,
    }
    data.update(overrides)
    return ContentSubmission.model_validate(data)


def campaign_form(**overrides) -> CampaignForm:
    data = {
        "title": "Summer Launch",
        "total_budget": 1000,
        "cost_per_1k_views": 2.97,
        "target_niches": ["Gaming"],
        "target_platforms": ["tiktok"],
    }
    data.update(overrides)
    return CampaignForm(**data)


# ---------------------------------------------------------------------------
# Campaigns
# ---------------------------------------------------------------------------
class TestCampaignFlow:

    @pytest.mark.asyncio
    async def test_create_is_always_a_draft(self, remote, brand_session):
        remote.gateway("insert_campaign", lambda token, values: make_campaign(**values, id="new"))
        result = await CampaignFlow.create_campaign(brand_session, campaign_form(status=CampaignStatus.ACTIVE))

        values = remote.called("insert_campaign")[0][1]
        assert values["status"] == "draft"
        assert values["total_paid"] == 0
        assert values["brand_id"] == "brand-1"
        assert values["rate_per_view"] == pytest.approx(0.00295)
        assert result.next_step == "payment"
        assert result.payment_required

    @pytest.mark.asyncio
    async def test_create_draft_goes_to_detail(self, remote, brand_session):
        remote.gateway("insert_campaign", lambda token, values: make_campaign(**values, id="new"))
        result = await CampaignFlow.create_campaign(brand_session, campaign_form())
        assert result.next_step == "detail"

    @pytest.mark.asyncio
    async def test_invalid_form_issues_no_call(self, remote, brand_session):
        remote.gateway("insert_campaign", make_campaign())
        with pytest.raises(FormValidationError):
            await CampaignFlow.create_campaign(brand_session, campaign_form(target_platforms=[]))
        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_influencer_cannot_create(self, remote, influencer_session):
        with pytest.raises(PermissionDeniedError):
            await CampaignFlow.create_campaign(influencer_session, campaign_form())

    @pytest.mark.asyncio
    async def test_activating_unpaid_draft_needs_payment(self, remote, brand_session):
        remote.gateway("get_brand_campaign", make_campaign(status=CampaignStatus.DRAFT))
        remote.gateway("list_campaign_submission_statuses", [])
        remote.gateway("has_succeeded_payment", False)
        remote.gateway("update_campaign", lambda token, cid, values: make_campaign(status=CampaignStatus.DRAFT))

        form = campaign_form(status=CampaignStatus.ACTIVE, rate_per_view=0.001)
        result = await CampaignFlow.edit_campaign(brand_session, "camp-1", form)

        values = remote.called("update_campaign")[0][2]
        assert "status" not in values
        assert values["title"] == "Summer Launch"
        assert result.payment_required
        assert result.next_step == "payment"

    @pytest.mark.asyncio
    async def test_activating_paid_draft(self, remote, brand_session):
        remote.gateway("get_brand_campaign", make_campaign(status=CampaignStatus.DRAFT))
        remote.gateway("list_campaign_submission_statuses", [])
        remote.gateway("has_succeeded_payment", True)
        remote.gateway("update_campaign", lambda token, cid, values: make_campaign())

        form = campaign_form(status=CampaignStatus.ACTIVE, rate_per_view=0.001)
        result = await CampaignFlow.edit_campaign(brand_session, "camp-1", form)
        assert remote.called("update_campaign")[0][2]["status"] == "active"
        assert not result.payment_required

    @pytest.mark.asyncio
    async def test_financials_locked_once_submissions_exist(self, remote, brand_session):
        remote.gateway("get_brand_campaign", make_campaign(total_budget=1000, rate_per_view=0.0005))
        remote.gateway("list_campaign_submission_statuses", ["pending_review"])
        remote.gateway("update_campaign", lambda token, cid, values: make_campaign())

        changed = campaign_form(status=CampaignStatus.ACTIVE, total_budget=2000, rate_per_view=0.0005)
        with pytest.raises(FormValidationError):
            await CampaignFlow.edit_campaign(brand_session, "camp-1", changed)

        unchanged = campaign_form(status=CampaignStatus.ACTIVE, total_budget=1000, rate_per_view=0.0005)
        await CampaignFlow.edit_campaign(brand_session, "camp-1", unchanged)
        values = remote.called("update_campaign")[0][2]
        assert "total_budget" not in values
        assert "rate_per_view" not in values

    @pytest.mark.asyncio
    async def test_influencer_list_uses_profile_targeting(self, remote, influencer_session):
        remote.gateway("search_campaigns_for_influencer", [make_campaign(id="a"), make_campaign(id="b")])
        page = await CampaignFlow.list_campaigns(influencer_session, loaded=[make_campaign(id="a")])

        args = remote.called("search_campaigns_for_influencer")[0]
        assert args[2] == ["Gaming"]
        assert args[3] == "Canada"
        assert [c.id for c in page.campaigns] == ["a", "b"]
        assert not page.has_more

    @pytest.mark.asyncio
    async def test_brand_list_pages(self, monkeypatch, remote, brand_session):
        monkeypatch.setattr(settings, "campaign_page_size", 2)
        remote.gateway("list_brand_campaigns", [make_campaign(id="c"), make_campaign(id="d")])
        page = await CampaignFlow.list_campaigns(brand_session, page=1)
        assert remote.called("list_brand_campaigns")[0][1] == "brand-1"
        assert page.has_more

    @pytest.mark.asyncio
    async def test_detail_for_influencer(self, remote, influencer_session):
        remote.gateway("get_campaign_with_brand", (make_campaign(total_paid=900), None))
        remote.gateway("get_submission_status", None)
        detail = await CampaignFlow.load_campaign_detail(influencer_session, "camp-1")
        assert detail.budget.severity.value == "critical"
        assert detail.projection.primary_action_label == "Apply Now"

    @pytest.mark.asyncio
    async def test_detail_not_found(self, remote, influencer_session):
        remote.gateway("get_campaign_with_brand", error=NotFoundError("campaigns"))
        detail = await CampaignFlow.load_campaign_detail(influencer_session, "nope")
        assert detail.campaign is None
        assert detail.projection.error
        assert not detail.projection.primary_action_enabled

    @pytest.mark.asyncio
    async def test_analytics(self, remote, brand_session):
        remote.gateway("get_brand_campaign", make_campaign())
        remote.gateway("list_campaign_submissions", [
            {"id": "s1", "influencer_id": "c1", "status": "posted_live", "view_count": 500, "earned_amount": 0.25},
        ])
        analytics = await CampaignFlow.load_campaign_analytics(brand_session, "camp-1")
        statuses = remote.called("list_campaign_submissions")
        assert analytics.stats.total_views == 500
        assert statuses

    @pytest.mark.asyncio
    async def test_delete_refused_while_submissions_in_flight(self, remote, brand_session):
        remote.gateway("get_brand_campaign", make_campaign())
        remote.gateway("list_campaign_submission_statuses", ["completed", "approved"])
        remote.gateway("delete_campaign", None)
        with pytest.raises(FormValidationError) as exc:
            await CampaignFlow.delete_campaign(brand_session, "camp-1")
        assert "active submissions" in exc.value.message
        assert not remote.called("delete_campaign")

    @pytest.mark.asyncio
    async def test_delete_once_submissions_settled(self, remote, brand_session):
        remote.gateway("get_brand_campaign", make_campaign())
        remote.gateway("list_campaign_submission_statuses", ["completed", "needs_revision"])
        remote.gateway("delete_campaign", None)
        await CampaignFlow.delete_campaign(brand_session, "camp-1")
        assert remote.called("delete_campaign") == [("brand-token", "camp-1", "brand-1")]

    @pytest.mark.asyncio
    async def test_delete_someone_elses_campaign(self, remote, brand_session):
        remote.gateway("get_brand_campaign", error=NotFoundError("campaigns"))
        remote.gateway("delete_campaign", None)
        with pytest.raises(NotFoundError):
            await CampaignFlow.delete_campaign(brand_session, "camp-9")
        assert not remote.called("delete_campaign")

    @pytest.mark.asyncio
    async def test_influencer_cannot_delete(self, remote, influencer_session):
        with pytest.raises(PermissionDeniedError):
            await CampaignFlow.delete_campaign(influencer_session, "camp-1")
        assert remote.calls == []


# ---------------------------------------------------------------------------
# Submissions
# ---------------------------------------------------------------------------
class TestSubmissionFlow:

    @pytest.mark.asyncio
    async def test_apply_uploads_then_inserts(self, remote, influencer_session):
        remote.gateway("get_campaign", make_campaign())
        remote.gateway("find_submission", None)
        remote.gateway("upload", "https://cdn.test/video_submission/creator-1/camp-1.mov")
        remote.gateway("insert_submission", lambda token, values: submission(**values, id="sub-9"))

        result = await SubmissionFlow.apply(
            influencer_session, "camp-1", VideoUpload(content=b"video", file_name="clip.MOV")
        )
        upload_args = remote.called("upload")[0]
        assert upload_args[1] == "video_submission"
        assert upload_args[2] == "creator-1/camp-1.mov"
        assert upload_args[4] == "video/mov"
        values = remote.called("insert_submission")[0][1]
        assert values["status"] == "pending_review"
        assert values["review_video_url"].endswith("camp-1.mov")
        assert result.id == "sub-9"

    @pytest.mark.asyncio
    async def test_apply_twice_is_refused(self, remote, influencer_session):
        remote.gateway("get_campaign", make_campaign())
        remote.gateway("find_submission", submission())
        with pytest.raises(FormValidationError):
            await SubmissionFlow.apply(influencer_session, "camp-1", VideoUpload(content=b"v"))
        assert not remote.called("upload")

    @pytest.mark.asyncio
    async def test_oversized_video_never_uploads(self, monkeypatch, remote, influencer_session):
        monkeypatch.setattr(settings, "max_video_bytes", 3)
        with pytest.raises(FormValidationError):
            await SubmissionFlow.apply(influencer_session, "camp-1", VideoUpload(content=b"toolong"))
        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_apply_validates_the_video_once(self, monkeypatch, remote, influencer_session):
        checked = []
        monkeypatch.setattr(
            "viblo.flows.submissions.validate_video",
            lambda upload, max_bytes: checked.append(upload.file_name),
        )
        remote.gateway("get_campaign", make_campaign())
        remote.gateway("find_submission", None)
        remote.gateway("upload", "https://cdn.test/v.mp4")
        remote.gateway("insert_submission", lambda token, values: submission(**values))
        await SubmissionFlow.apply(influencer_session, "camp-1", VideoUpload(content=b"v", file_name="a.mp4"))
        assert checked == ["a.mp4"]

    @pytest.mark.asyncio
    async def test_empty_video_never_reaches_the_network(self, remote, influencer_session):
        with pytest.raises(FormValidationError) as exc:
            await SubmissionFlow.apply(influencer_session, "camp-1", VideoUpload(content=b""))
        assert exc.value.field == "video"
        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_resubmit_only_after_revision_request(self, remote, influencer_session):
        remote.gateway("get_submission", submission(status=SubmissionStatus.APPROVED))
        with pytest.raises(FormValidationError):
            await SubmissionFlow.resubmit(influencer_session, "sub-1", VideoUpload(content=b"v"))

    @pytest.mark.asyncio
    async def test_resubmit(self, remote, influencer_session):
        remote.gateway("get_submission", submission(status=SubmissionStatus.NEEDS_REVISION))
        remote.gateway("upload", "https://cdn.test/v.mp4")
        remote.gateway("update_submission", lambda token, sid, values: submission(**values))
        result = await SubmissionFlow.resubmit(influencer_session, "sub-1", VideoUpload(content=b"v"))
        assert result.status == SubmissionStatus.PENDING_REVIEW

    @pytest.mark.asyncio
    async def test_mark_posted_live(self, remote, influencer_session):
        remote.gateway("get_submission", submission(status=SubmissionStatus.APPROVED))
        remote.gateway("update_submission", lambda token, sid, values: submission(**values))
        video = VideoItem(id="v1", platform="tiktok", url="https://tiktok.test/v1")
        result = await SubmissionFlow.mark_posted_live(influencer_session, "sub-1", video)

        values = remote.called("update_submission")[0][2]
        assert values["public_post_url"] == "https://tiktok.test/v1"
        assert values["video_id"] == "v1"
        assert "posted_at" in values
        assert result.status == SubmissionStatus.POSTED_LIVE

    @pytest.mark.asyncio
    async def test_videos_only_for_approved(self, remote, influencer_session):
        remote.gateway("get_submission", submission())
        with pytest.raises(FormValidationError):
            await SubmissionFlow.list_videos_for_posting(influencer_session, "sub-1", SocialPlatform.TIKTOK)

    @pytest.mark.asyncio
    async def test_cannot_touch_someone_elses_submission(self, remote, influencer_session):
        remote.gateway("get_submission", submission(influencer_id="creator-2", status=SubmissionStatus.APPROVED))
        video = VideoItem(id="v1", platform="tiktok", url="https://tiktok.test/v1")
        with pytest.raises(PermissionDeniedError):
            await SubmissionFlow.mark_posted_live(influencer_session, "sub-1", video)

    @pytest.mark.asyncio
    async def test_brand_approves(self, remote, brand_session):
        remote.gateway("get_submission", submission())
        remote.gateway("get_campaign", make_campaign())
        remote.gateway("update_submission", lambda token, sid, values: submission(**values))
        review = SubmissionReview(status=SubmissionStatus.APPROVED, rating=8, justify="On brief")
        result = await SubmissionFlow.review_submission(brand_session, "sub-1", review)

        values = remote.called("update_submission")[0][2]
        assert values["rating"] == 8
        assert "approved_at" in values
        assert result.status == SubmissionStatus.APPROVED

    @pytest.mark.asyncio
    async def test_revision_needs_feedback(self, remote, brand_session):
        remote.gateway("get_submission", submission())
        remote.gateway("get_campaign", make_campaign())
        with pytest.raises(FormValidationError):
            await SubmissionFlow.review_submission(
                brand_session, "sub-1", SubmissionReview(status=SubmissionStatus.NEEDS_REVISION)
            )

    @pytest.mark.asyncio
    async def test_review_other_brands_campaign(self, remote, brand_session):
        remote.gateway("get_submission", submission())
        remote.gateway("get_campaign", make_campaign(brand_id="brand-2"))
        with pytest.raises(PermissionDeniedError):
            await SubmissionFlow.review_submission(
                brand_session, "sub-1", SubmissionReview(status=SubmissionStatus.APPROVED)
            )

    @pytest.mark.asyncio
    async def test_list_filters_by_title(self, remote, influencer_session):
        remote.gateway("list_influencer_submissions", [
            {"id": "1", "campaign": {"title": "Summer Launch"}},
            {"id": "2", "campaign": {"title": "Winter Sale"}},
            {"id": "3", "campaign": None},
        ])
        rows = await SubmissionFlow.list_my_submissions(influencer_session, search="summer")
        assert [r["id"] for r in rows] == ["1"]


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
INTENT = PaymentIntent(payment_intent="pi_42_secret_xyz", ephemeral_key="ek", customer_id="cus")


class TestPaymentFlow:

    @pytest.mark.asyncio
    async def test_successful_checkout_confirms_intent_id(self, remote, brand_session):
        remote.gateway("get_brand_campaign", make_campaign(status=CampaignStatus.DRAFT))
        remote.backend("create_payment_intent", INTENT)
        remote.backend("confirm_payment", {"success": True})
        shown = []

        async def present(params):
            shown.append(params)
            return PaymentSheetResult(completed=True)

        outcome = await PaymentFlow.pay(brand_session, "camp-1", present)
        assert outcome.succeeded
        assert outcome.summary.total == 1030
        assert shown[0].payment_intent_client_secret == "pi_42_secret_xyz"
        assert shown[0].merchant_display_name == settings.merchant_display_name
        assert remote.called("confirm_payment")[0] == ("camp-1", "pi_42")

    @pytest.mark.asyncio
    async def test_cancelled_sheet_is_reported(self, remote, brand_session):
        remote.gateway("get_brand_campaign", make_campaign(status=CampaignStatus.DRAFT))
        remote.backend("create_payment_intent", INTENT)
        remote.backend("confirm_payment", {})

        async def present(params):
            return PaymentSheetResult(completed=False, error_message="The payment flow has been canceled")

        outcome = await PaymentFlow.pay(brand_session, "camp-1", present)
        assert outcome.cancelled
        assert not outcome.succeeded
        assert remote.called("confirm_payment") == []

    @pytest.mark.asyncio
    async def test_coupon_in_summary_and_intent(self, remote, brand_session):
        remote.gateway("get_brand_campaign", make_campaign())
        remote.backend("validate_coupon", Coupon(coupon_id="SUMMER", percent_off=10))
        preparation = await PaymentFlow.apply_coupon(brand_session, "camp-1", "summer")
        assert preparation.summary.total == 927

        remote.backend("create_payment_intent", INTENT)
        await PaymentFlow.start_payment(brand_session, "camp-1", preparation.coupon)
        assert remote.called("create_payment_intent")[0] == ("camp-1", "brand-1", "SUMMER")

    @pytest.mark.asyncio
    async def test_blank_coupon(self, remote, brand_session):
        with pytest.raises(FormValidationError):
            await PaymentFlow.apply_coupon(brand_session, "camp-1", "  ")

    @pytest.mark.asyncio
    async def test_history_totals_succeeded_only(self, remote, brand_session):
        from viblo.models.payment import Payment

        remote.gateway("list_brand_payments", [
            Payment(id="p1", amount=1030, status="succeeded"),
            Payment(id="p2", amount=500, status="failed"),
            Payment(id="p3", amount=20.5, status="succeeded"),
        ])
        history = await PaymentFlow.payment_history(brand_session)
        assert history.total_spent == 1050.5


# ---------------------------------------------------------------------------
# Wallet
# ---------------------------------------------------------------------------
def payout_method(**overrides) -> PayoutMethod:
    data = {"id": "pm-1", "user_id": "creator-1", "method_type": "paypal", "details": {"name": "Sam", "email": "s@p.test"}}
    data.update(overrides)
    return PayoutMethod.model_validate(data)


def payout(**overrides) -> Payout:
    data = {"id": "po-1", "influencer_id": "creator-1", "amount": 10.0, "status": "completed"}
    data.update(overrides)
    return Payout.model_validate(data)


class TestWalletFlow:

    @pytest.mark.asyncio
    async def test_summary(self, remote, influencer_session):
        remote.gateway("list_earned_amounts", [1.25, 0.0, 3.5])
        remote.gateway("list_payout_methods", [])
        remote.gateway("list_payouts", [])
        summary = await WalletFlow.wallet_summary(influencer_session)
        assert summary.total_earnings == 4.75
        assert not summary.has_payout_method
        assert summary.paid_out == 0

    @pytest.mark.asyncio
    async def test_summary_splits_payouts_by_status(self, remote, influencer_session):
        remote.gateway("list_earned_amounts", [100.0])
        remote.gateway("list_payout_methods", [payout_method()])
        remote.gateway("list_payouts", [
            payout(id="po-1", amount=40.0, status="completed"),
            payout(id="po-2", amount=10.5, status="pending"),
            payout(id="po-3", amount=5.0, status="processing"),
            payout(id="po-4", amount=99.0, status="failed"),
        ])
        summary = await WalletFlow.wallet_summary(influencer_session)
        assert summary.paid_out == 40.0
        assert summary.pending_payouts == 15.5
        assert [p.id for p in summary.payouts] == ["po-1", "po-2", "po-3", "po-4"]
        assert remote.called("list_payouts") == [("creator-token", "creator-1")]

    @pytest.mark.asyncio
    async def test_add_stores_only_known_fields(self, remote, influencer_session):
        remote.gateway("insert_payout_method", lambda token, values: payout_method(**values, id="pm-2"))
        form = PayoutMethodForm(
            method_type=PayoutMethodType.PAYPAL,
            details={"name": "Sam", "email": "s@p.test", "extra": "x"},
            is_primary=True,
        )
        method = await WalletFlow.add_payout_method(influencer_session, form)
        values = remote.called("insert_payout_method")[0][1]
        assert values["details"] == {"name": "Sam", "email": "s@p.test"}
        assert values["is_primary"] is True
        assert method.typed_details().email == "s@p.test"

    @pytest.mark.asyncio
    async def test_update_keeps_method_type(self, remote, influencer_session):
        remote.gateway("get_payout_method", payout_method())
        remote.gateway("update_payout_method", lambda token, mid, values: payout_method(**values))
        form = PayoutMethodForm(
            method_type=PayoutMethodType.BANK_TRANSFER,
            details={"name": "Sam B", "email": "b@p.test"},
        )
        method = await WalletFlow.update_payout_method(influencer_session, "pm-1", form)
        assert method.method_type == PayoutMethodType.PAYPAL
        assert method.details["name"] == "Sam B"

    @pytest.mark.asyncio
    async def test_delete_someone_elses(self, remote, influencer_session):
        remote.gateway("get_payout_method", payout_method(user_id="creator-2"))
        remote.gateway("delete_payout_method", None)
        with pytest.raises(PermissionDeniedError):
            await WalletFlow.delete_payout_method(influencer_session, "pm-1")
        assert remote.called("delete_payout_method") == []


# ---------------------------------------------------------------------------
# Connections
# ---------------------------------------------------------------------------
def link(platform=SocialPlatform.TIKTOK) -> SocialLink:
    return SocialLink(user_id="creator-1", platform=platform, handle="@sam")


class TestConnectionFlow:

    @pytest.fixture(autouse=True)
    def fast_polling(self, monkeypatch):
        monkeypatch.setattr(settings, "connection_poll_base_delay", 0.0)
        monkeypatch.setattr(settings, "connection_poll_max_delay", 0.0)
        monkeypatch.setattr(settings, "connection_poll_attempts", 4)

    def test_backoff_schedule(self):
        assert poll_delays(5, 0.5, 4.0) == [0.5, 1.0, 2.0, 4.0, 4.0]

    @pytest.mark.asyncio
    async def test_connect_polls_until_link_appears(self, remote, influencer_session):
        results = [None, None, link()]
        remote.gateway("find_social_link", lambda *args: results.pop(0))
        opened = []

        async def browser(url):
            opened.append(url)
            return BrowserResult.DISMISS

        outcome = await ConnectionFlow.connect(influencer_session, SocialPlatform.TIKTOK, browser)
        assert outcome.connected
        assert outcome.attempts == 3
        assert "/api/tiktok/authorize?user_id=creator-1" in opened[0]

    @pytest.mark.asyncio
    async def test_connect_gives_up(self, remote, influencer_session):
        remote.gateway("find_social_link", None)

        async def browser(url):
            return BrowserResult.SUCCESS

        outcome = await ConnectionFlow.connect(influencer_session, "instagram", browser)
        assert not outcome.connected
        assert outcome.attempts == 4

    @pytest.mark.asyncio
    async def test_cancelled_browser_skips_polling(self, remote, influencer_session):
        remote.gateway("find_social_link", link())

        async def browser(url):
            return BrowserResult.CANCEL

        outcome = await ConnectionFlow.connect(influencer_session, SocialPlatform.YOUTUBE, browser)
        assert outcome.cancelled
        assert remote.called("find_social_link") == []

    @pytest.mark.asyncio
    async def test_unsupported_platform(self, remote, influencer_session):
        async def browser(url):
            return BrowserResult.SUCCESS

        with pytest.raises(FormValidationError):
            await ConnectionFlow.connect(influencer_session, SocialPlatform.SNAPCHAT, browser)

    @pytest.mark.asyncio
    async def test_disconnect_survives_revoke_and_token_failures(self, remote, influencer_session):
        remote.backend("revoke", error=RemoteCallError("upstream down", status_code=500))
        remote.gateway("delete_social_link", None)
        remote.gateway("delete_oauth_tokens", error=RemoteCallError("rls", status_code=403))

        await ConnectionFlow.disconnect(influencer_session, SocialPlatform.TIKTOK)
        assert remote.called("delete_social_link") == [("creator-token", "creator-1", SocialPlatform.TIKTOK)]

    @pytest.mark.asyncio
    async def test_instagram_is_not_revoked(self, remote, influencer_session):
        remote.backend("revoke", None)
        remote.gateway("delete_social_link", None)
        remote.gateway("delete_oauth_tokens", None)
        await ConnectionFlow.disconnect(influencer_session, SocialPlatform.INSTAGRAM)
        assert remote.called("revoke") == []


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------
class TestProfileFlow:

    @pytest.mark.asyncio
    async def test_update_with_avatar(self, remote, influencer_session):
        remote.gateway("upload", "https://cdn.test/profile_avatars/creator-1/profile_image.png")
        remote.gateway(
            "update_profile",
            lambda token, uid, values: Profile(id=uid, user_type=UserType.INFLUENCER, **values),
        )
        profile = await ProfileFlow.update_profile(
            influencer_session,
            ProfileUpdate(username=" sam ", bio=""),
            avatar=AvatarUpload(content=b"img", file_name="me.png"),
        )
        assert remote.called("upload")[0][2] == "creator-1/profile_image.png"
        assert "/profile_image.png?t=" in profile.avatar_url
        assert profile.username == "sam"
        assert profile.bio is None
        assert influencer_session.profile is profile

    @pytest.mark.asyncio
    async def test_onboarding_brand(self, remote, brand_session):
        remote.gateway("upsert_profile", lambda token, values: Profile(**values))
        from viblo.models.profile import OnboardingForm

        form = OnboardingForm(user_type=UserType.BRAND, username="acme", company_name=" Acme ", first_name="ignored")
        profile = await ProfileFlow.complete_onboarding(brand_session, form)
        values = remote.called("upsert_profile")[0][1]
        assert values["id"] == "brand-1"
        assert values["company_name"] == "Acme"
        assert "first_name" not in values
        assert profile.company_name == "Acme"

    @pytest.mark.asyncio
    async def test_delete_account_signs_out(self, remote, monkeypatch, influencer_session):
        remote.backend("delete_account", None)
        remote.on(SupabaseService, "sign_out", error=RemoteCallError("user gone", status_code=403))
        await ProfileFlow.delete_account(influencer_session)
        assert remote.called("delete_account") == [("creator-1",)]
        assert influencer_session.profile is None

    @pytest.mark.asyncio
    async def test_oversized_avatar_never_uploads(self, monkeypatch, remote, influencer_session):
        monkeypatch.setattr(settings, "max_avatar_bytes", 2)
        with pytest.raises(FormValidationError) as exc:
            await ProfileFlow.update_profile(
                influencer_session,
                ProfileUpdate(username="sam"),
                avatar=AvatarUpload(content=b"big image", file_name="me.png"),
            )
        assert exc.value.field == "avatar"
        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_sign_up_checks_credentials_first(self, remote):
        remote.on(SessionContext, "sign_up", None)
        with pytest.raises(FormValidationError) as exc:
            await ProfileFlow.sign_up("sam@creator.test", "12345")
        assert exc.value.field == "password"
        with pytest.raises(FormValidationError) as exc:
            await ProfileFlow.sign_up("not-an-email", "secret123")
        assert exc.value.field == "email"
        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_sign_up_pending_confirmation(self, remote):
        remote.on(SessionContext, "sign_up", None)
        assert await ProfileFlow.sign_up(" sam@creator.test ", "secret123") is None
        assert remote.called("sign_up") == [("sam@creator.test", "secret123")]

    @pytest.mark.asyncio
    async def test_password_reset_link_opens_the_app(self, remote):
        remote.on(SupabaseService, "recover", None)
        await ProfileFlow.request_password_reset(" sam@creator.test ")
        assert remote.called("recover") == [("sam@creator.test", settings.password_reset_url)]
        with pytest.raises(FormValidationError):
            await ProfileFlow.request_password_reset("  ")

    @pytest.mark.asyncio
    async def test_change_password(self, remote, influencer_session):
        remote.on(SupabaseService, "update_user", {"id": "creator-1"})
        remote.gateway("get_profile", influencer_session.profile)
        with pytest.raises(FormValidationError) as exc:
            await ProfileFlow.change_password(influencer_session, "secret123", "secret124")
        assert exc.value.field == "confirm_password"
        assert remote.calls == []

        profile = await ProfileFlow.change_password(influencer_session, "secret123", "secret123")
        assert remote.called("update_user") == [("creator-token", {"password": "secret123"})]
        assert profile.username == "sam"


def stats(platform, **counts) -> PlatformStats:
    return PlatformStats(platform=platform, handle=f"@{platform.value}", **counts)


class TestAudienceMetrics:

    @pytest.mark.asyncio
    async def test_failing_platform_is_left_out(self, remote, influencer_session):
        def per_platform(platform, user_id):
            if platform == SocialPlatform.INSTAGRAM:
                raise RemoteCallError("Instagram not connected", status_code=404)
            if platform == SocialPlatform.YOUTUBE:
                return stats(platform, followers=1000, views=50000, likes=700, comments=40)
            return stats(platform, followers=250, views=9000, likes=300, comments=12)

        remote.backend("platform_stats", per_platform)
        remote.gateway("list_payouts", [
            payout(amount=40.25, status="completed"),
            payout(id="po-2", amount=12.5, status="completed"),
            payout(id="po-3", amount=99.0, status="pending"),
        ])
        analytics = await ProfileFlow.profile_analytics(influencer_session)

        assert [p.platform for p in analytics.platforms] == [SocialPlatform.YOUTUBE, SocialPlatform.TIKTOK]
        assert analytics.total_followers == 1250
        assert analytics.total_views == 59000
        assert analytics.total_likes == 1000
        assert analytics.total_comments == 52
        assert analytics.earnings == 52.75
        assert analytics.last_updated is not None
        assert len(remote.called("platform_stats")) == 3

    @pytest.mark.asyncio
    async def test_analytics_are_for_influencers(self, remote, brand_session):
        with pytest.raises(PermissionDeniedError):
            await ProfileFlow.profile_analytics(brand_session)
        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_public_profile(self, remote, brand_session, influencer_session):
        remote.gateway("get_profile", influencer_session.profile)
        remote.backend("platform_stats", error=RemoteCallError("not connected", status_code=404))
        public = await ProfileFlow.public_profile(brand_session, "creator-1")

        assert public.display_name == "Sam Lee"
        assert public.profile.id == "creator-1"
        assert public.platforms == []
        assert public.total_followers == 0
        assert remote.called("get_profile") == [("brand-token", "creator-1")]
        assert {args[1] for args in remote.called("platform_stats")} == {"creator-1"}


# ---------------------------------------------------------------------------
# Inbox
# ---------------------------------------------------------------------------
class TestInboxFlow:

    @pytest.mark.asyncio
    async def test_open_marks_other_side_read(self, remote, brand_session):
        remote.gateway("list_messages", [
            Message(conversation_id="cv", sender_id="creator-1", content="hi", is_read=False),
            Message(conversation_id="cv", sender_id="brand-1", content="hello", is_read=False),
        ])
        remote.gateway("other_participant_id", "creator-1")
        remote.gateway("mark_messages_read", None)
        remote.gateway("get_profile", Profile(id="creator-1", user_type=UserType.INFLUENCER, username="sam"))

        thread = await InboxFlow.open_conversation(brand_session, "cv")
        assert remote.called("mark_messages_read")[0] == ("brand-token", "cv", "creator-1")
        assert thread.messages[0].is_read
        assert not thread.messages[1].is_read
        assert thread.other_participant.username == "sam"

    @pytest.mark.asyncio
    async def test_mark_read_failure_is_not_fatal(self, remote, brand_session):
        remote.gateway("list_messages", [])
        remote.gateway("other_participant_id", "creator-1")
        remote.gateway("mark_messages_read", error=RemoteCallError("boom"))
        remote.gateway("get_profile", Profile(id="creator-1", user_type=UserType.INFLUENCER))
        thread = await InboxFlow.open_conversation(brand_session, "cv")
        assert thread.conversation_id == "cv"

    @pytest.mark.asyncio
    async def test_send_message(self, remote, brand_session):
        remote.gateway("insert_message", lambda token, values: Message(**values, id="m1"))
        message = await InboxFlow.send_message(brand_session, "cv", "  Loved the video ")
        assert message.content == "Loved the video"
        assert message.sender_id == "brand-1"

    @pytest.mark.asyncio
    async def test_blank_message_not_sent(self, remote, brand_session):
        remote.gateway("insert_message", None)
        with pytest.raises(FormValidationError):
            await InboxFlow.send_message(brand_session, "cv", "   ")
        assert remote.calls == []

    @pytest.mark.asyncio
    async def test_unread_flags(self, remote, brand_session):
        remote.gateway("list_conversations", [
            ConversationSummary.model_validate({
                "id": "cv1",
                "last_message": {"content": "hi", "is_read": False, "sender_id": "creator-1"},
            }),
            ConversationSummary.model_validate({
                "id": "cv2",
                "last_message": {"content": "yo", "is_read": False, "sender_id": "brand-1"},
            }),
        ])
        entries = await InboxFlow.list_conversations(brand_session)
        assert [e.unread for e in entries] == [True, False]

    @pytest.mark.asyncio
    async def test_cannot_message_self(self, remote, brand_session):
        with pytest.raises(FormValidationError):
            await InboxFlow.start_conversation(brand_session, "brand-1")
