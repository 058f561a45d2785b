"""Form validation. Failures raise before any remote call is issued."""

from __future__ import annotations

from viblo.errors import FormValidationError
from viblo.models.campaign import (
    AVAILABLE_LOCATIONS,
    AVAILABLE_NICHES,
    AVAILABLE_PLATFORMS,
    CampaignForm,
)
from viblo.models.payment import DETAILS_BY_METHOD, PayoutMethodForm, PayoutMethodType
from viblo.models.profile import AvatarUpload, OnboardingForm, ProfileUpdate, UserType
from viblo.models.submission import VideoUpload

# Required keys of the ``details`` JSON per payout method type.
REQUIRED_PAYOUT_FIELDS: dict[PayoutMethodType, tuple[str, ...]] = {
    PayoutMethodType.PAYPAL: ("name", "email"),
    PayoutMethodType.WISE: ("name", "email", "wise_id"),
    PayoutMethodType.REVOLUT: ("name", "email", "revolut_tag"),
    PayoutMethodType.BANK_TRANSFER: (
        "iban", "account_owner", "swift_bic", "bank_name", "bank_address",
    ),
}


def _require_known(values: list[str], allowed: list[str], noun: str, field: str) -> None:
    unknown = [v for v in values if v not in allowed]
    if unknown:
        raise FormValidationError(f"Unknown {noun}: {unknown[0]}", field=field)


def validate_campaign_form(form: CampaignForm, editing: bool = False) -> None:
    if not form.title.strip():
        raise FormValidationError("Please enter a campaign title", field="title")
    if form.total_budget is None or form.total_budget <= 0:
        raise FormValidationError("Please enter a valid total budget", field="total_budget")
    if editing and (form.rate_per_view is None or form.rate_per_view <= 0):
        raise FormValidationError("Please enter a valid rate per view", field="rate_per_view")
    if not form.target_niches:
        raise FormValidationError("Please select at least one niche", field="target_niches")
    if not form.target_platforms:
        raise FormValidationError("Please select at least one platform", field="target_platforms")
    _require_known(form.target_niches, AVAILABLE_NICHES, "niche", "target_niches")
    _require_known(form.target_platforms, AVAILABLE_PLATFORMS, "platform", "target_platforms")
    _require_known(
        form.target_audience_locations, AVAILABLE_LOCATIONS, "location", "target_audience_locations"
    )


def clean_payout_details(form: PayoutMethodForm) -> dict[str, str]:
    """Validate the per-type details and return them with only the known keys."""
    details = {
        key: str(form.details.get(key) or "").strip()
        for key in REQUIRED_PAYOUT_FIELDS[form.method_type]
    }
    missing = [key for key, value in details.items() if not value]
    if missing:
        raise FormValidationError("Please fill in all required fields", field=missing[0])
    if "email" in details and "@" not in details["email"]:
        raise FormValidationError("Please enter a valid email address", field="email")
    # round-trip through the typed model so the stored shape always matches it
    return DETAILS_BY_METHOD[form.method_type].model_validate(details).model_dump()


def validate_upload_size(size: int, max_bytes: int, noun: str = "a video", field: str = "video") -> None:
    if size > max_bytes:
        limit_mb = max_bytes // (1024 * 1024)
        raise FormValidationError(f"Please select {noun} smaller than {limit_mb}MB.", field=field)


def validate_video(upload: VideoUpload, max_bytes: int) -> None:
    if upload.size == 0:
        raise FormValidationError("Please select a video", field="video")
    validate_upload_size(upload.size, max_bytes, "a video", "video")


def validate_avatar(avatar: AvatarUpload, max_bytes: int) -> None:
    if not avatar.content:
        raise FormValidationError("Please select an image", field="avatar")
    validate_upload_size(len(avatar.content), max_bytes, "an image", "avatar")


def validate_message(content: str) -> str:
    text = content.strip()
    if not text:
        raise FormValidationError("Message cannot be empty", field="content")
    return text


def validate_profile_update(update: ProfileUpdate) -> None:
    if not update.username.strip():
        raise FormValidationError("Please enter a username", field="username")


def validate_onboarding(form: OnboardingForm) -> None:
    if not form.username.strip():
        raise FormValidationError("Please fill in all required fields", field="username")
    if form.user_type == UserType.INFLUENCER:
        if not form.first_name.strip() or not form.last_name.strip():
            raise FormValidationError("Please fill in all required fields", field="first_name")
    elif not form.company_name.strip():
        raise FormValidationError("Please fill in all required fields", field="company_name")


def validate_credentials(email: str, password: str, min_length: int) -> str:
    """Return the trimmed email; passwords are kept exactly as typed."""
    email = email.strip()
    if not email or "@" not in email:
        raise FormValidationError("Please enter a valid email address", field="email")
    _require_length(password, min_length)
    return email


def validate_new_password(password: str, confirm_password: str, min_length: int) -> None:
    if password != confirm_password:
        raise FormValidationError("Passwords do not match", field="confirm_password")
    _require_length(password, min_length)


def _require_length(password: str, min_length: int) -> None:
    if len(password) < min_length:
        raise FormValidationError(
            f"Password must be at least {min_length} characters", field="password"
        )
