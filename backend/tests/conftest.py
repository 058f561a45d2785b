"""Shared fixtures: signed-in sessions and mock HTTP transports."""

import json

import httpx
import pytest

from viblo.models.campaign import Campaign, CampaignStatus
from viblo.models.profile import Profile, UserType
from viblo.services.backend_service import BackendService
from viblo.services.supabase_service import SupabaseService
from viblo.session import SessionContext


@pytest.fixture
def brand_session() -> SessionContext:
    return SessionContext(
        access_token="brand-token",
        user_id="brand-1",
        email="team@acme.test",
        profile=Profile(id="brand-1", user_type=UserType.BRAND, username="acme", company_name="Acme"),
    )


@pytest.fixture
def influencer_session() -> SessionContext:
    return SessionContext(
        access_token="creator-token",
        user_id="creator-1",
        email="sam@creator.test",
        profile=Profile(
            id="creator-1",
            user_type=UserType.INFLUENCER,
            username="sam",
            first_name="Sam",
            last_name="Lee",
            niches=["Gaming"],
            location="Canada",
        ),
    )


def make_campaign(**overrides) -> Campaign:
    data = {
        "id": "camp-1",
        "brand_id": "brand-1",
        "title": "Summer Launch",
        "status": CampaignStatus.ACTIVE,
        "total_budget": 1000.0,
        "total_paid": 0.0,
        "rate_per_view": 0.0005,
        "target_niches": ["Gaming"],
        "target_platforms": ["tiktok"],
    }
    data.update(overrides)
    return Campaign.model_validate(data)


class Recorder:
    """Mock transport handler that records requests and replays canned responses."""

    def __init__(self, *responses: httpx.Response) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]

    def last_json(self):
        return json.loads(self.last.content)


@pytest.fixture
def supabase_mock(monkeypatch):
    """Plug a Recorder into SupabaseService; call it with the responses to replay."""

    def install(*responses: httpx.Response) -> Recorder:
        recorder = Recorder(*responses)
        monkeypatch.setattr(SupabaseService, "transport", httpx.MockTransport(recorder))
        return recorder

    return install


@pytest.fixture
def backend_mock(monkeypatch):
    def install(*responses: httpx.Response) -> Recorder:
        recorder = Recorder(*responses)
        monkeypatch.setattr(BackendService, "transport", httpx.MockTransport(recorder))
        return recorder

    return install
