from datetime import timedelta

import pytest

from emr_auth.application.ports.challenge_repo import ChallengeDto
from emr_auth.application.services.otp_service import OTPService
from emr_auth.db.models.auth.otp import OtpPurpose
from emr_auth.exceptions import ChallengeAlreadyUsed, InvalidOrExpiredChallenge
from emr_auth.utils import generate_otp

MOBILE = "+919812345678"


def test_generated_codes_are_six_digits_without_leading_zero():
    for _ in range(2000):
        code = generate_otp()
        assert len(code) == 6
        assert code.isdigit()
        assert 100000 <= int(code) <= 999999


def test_request_challenge_persists_pending_record(otp_service, repo, clock):
    issued = otp_service.request_challenge(MOBILE, OtpPurpose.LOGIN)

    rec = repo.get(issued.challenge_id)
    assert rec.mobile_number == MOBILE
    assert rec.code == issued.code
    assert rec.purpose == OtpPurpose.LOGIN
    assert rec.verified is False
    assert rec.created_at == clock.now
    assert rec.expires_at == clock.now + timedelta(seconds=300)


def test_request_challenge_sends_purpose_specific_message(otp_service, notifier):
    issued = otp_service.request_challenge(MOBILE, OtpPurpose.PASSWORD_RESET)

    assert len(notifier.sent) == 1
    to, message = notifier.sent[0]
    assert to == MOBILE
    assert message == (
        f"Your Bharat EMR OTP for password reset is: {issued.code}. "
        "Valid for 5 minutes. Do not share with anyone."
    )


def test_dispatch_failure_does_not_fail_request(repo, clock):
    class ExplodingNotifier:
        def send(self, mobile_number, message):
            raise RuntimeError("provider down")

    svc = OTPService(repo=repo, notifier=ExplodingNotifier(), clock=clock)
    issued = svc.request_challenge(MOBILE, OtpPurpose.LOGIN)

    assert repo.get(issued.challenge_id) is not None
    svc.verify_challenge(MOBILE, issued.code, OtpPurpose.LOGIN)


def test_verify_succeeds_once_then_rejects(otp_service, repo):
    issued = otp_service.request_challenge(MOBILE, OtpPurpose.LOGIN)

    otp_service.verify_challenge(MOBILE, issued.code, OtpPurpose.LOGIN)
    assert repo.get(issued.challenge_id).verified is True

    with pytest.raises(InvalidOrExpiredChallenge):
        otp_service.verify_challenge(MOBILE, issued.code, OtpPurpose.LOGIN)


def test_verify_rejects_other_purpose(otp_service):
    issued = otp_service.request_challenge(MOBILE, OtpPurpose.LOGIN)

    with pytest.raises(InvalidOrExpiredChallenge):
        otp_service.verify_challenge(MOBILE, issued.code, OtpPurpose.REGISTRATION)

    # the failed attempt did not consume the LOGIN challenge
    otp_service.verify_challenge(MOBILE, issued.code, OtpPurpose.LOGIN)


def test_verify_rejects_wrong_code_and_unknown_mobile(otp_service):
    issued = otp_service.request_challenge(MOBILE, OtpPurpose.LOGIN)
    wrong = "100000" if issued.code != "100000" else "100001"

    with pytest.raises(InvalidOrExpiredChallenge):
        otp_service.verify_challenge(MOBILE, wrong, OtpPurpose.LOGIN)
    with pytest.raises(InvalidOrExpiredChallenge):
        otp_service.verify_challenge("+919999999999", issued.code, OtpPurpose.LOGIN)


def test_code_accepted_one_millisecond_before_expiry(otp_service, clock):
    issued = otp_service.request_challenge(MOBILE, OtpPurpose.LOGIN)

    clock.set(issued.expires_at - timedelta(milliseconds=1))
    otp_service.verify_challenge(MOBILE, issued.code, OtpPurpose.LOGIN)


def test_code_rejected_one_millisecond_after_expiry(otp_service, clock):
    issued = otp_service.request_challenge(MOBILE, OtpPurpose.LOGIN)

    clock.set(issued.expires_at + timedelta(milliseconds=1))
    with pytest.raises(InvalidOrExpiredChallenge):
        otp_service.verify_challenge(MOBILE, issued.code, OtpPurpose.LOGIN)


def test_code_rejected_at_exact_expiry(otp_service, clock):
    issued = otp_service.request_challenge(MOBILE, OtpPurpose.LOGIN)

    clock.set(issued.expires_at)
    with pytest.raises(InvalidOrExpiredChallenge):
        otp_service.verify_challenge(MOBILE, issued.code, OtpPurpose.LOGIN)


def test_outstanding_challenges_are_independent(otp_service, clock):
    first = otp_service.request_challenge(MOBILE, OtpPurpose.LOGIN)
    clock.advance(seconds=30)
    second = otp_service.request_challenge(MOBILE, OtpPurpose.LOGIN)

    # a newer challenge does not invalidate the older one
    otp_service.verify_challenge(MOBILE, first.code, OtpPurpose.LOGIN)
    if second.code != first.code:
        otp_service.verify_challenge(MOBILE, second.code, OtpPurpose.LOGIN)


class RacingRepo:
    """Lookup succeeds but the conditional update loses to someone else."""

    def __init__(self, rec, current):
        self.rec = rec
        self.current = current

    def find_valid(self, mobile_number, code, purpose, now):
        return self.rec

    def mark_verified(self, challenge_id, now):
        return False

    def get(self, challenge_id):
        return self.current


def _dto(clock, verified=False):
    return ChallengeDto(
        id=7,
        mobile_number=MOBILE,
        code="482193",
        purpose=OtpPurpose.LOGIN,
        verified=verified,
        expires_at=clock.now + timedelta(minutes=5),
        created_at=clock.now,
    )


def test_losing_the_single_use_race_reports_already_used(notifier, clock):
    repo = RacingRepo(_dto(clock), _dto(clock, verified=True))
    svc = OTPService(repo=repo, notifier=notifier, clock=clock)

    with pytest.raises(ChallengeAlreadyUsed):
        svc.verify_challenge(MOBILE, "482193", OtpPurpose.LOGIN)


def test_record_swept_mid_verification_reports_invalid(notifier, clock):
    repo = RacingRepo(_dto(clock), None)
    svc = OTPService(repo=repo, notifier=notifier, clock=clock)

    with pytest.raises(InvalidOrExpiredChallenge):
        svc.verify_challenge(MOBILE, "482193", OtpPurpose.LOGIN)


def test_resend_reuses_latest_pending_code(otp_service, notifier, repo):
    issued = otp_service.request_challenge(MOBILE, OtpPurpose.LOGIN)
    resent = otp_service.resend_challenge(MOBILE, OtpPurpose.LOGIN)

    assert resent.challenge_id == issued.challenge_id
    assert resent.code == issued.code
    assert len(repo) == 1
    assert len(notifier.sent) == 2
    assert issued.code in notifier.sent[1][1]


def test_resend_issues_new_code_once_latest_is_used(otp_service, repo):
    issued = otp_service.request_challenge(MOBILE, OtpPurpose.LOGIN)
    otp_service.verify_challenge(MOBILE, issued.code, OtpPurpose.LOGIN)

    resent = otp_service.resend_challenge(MOBILE, OtpPurpose.LOGIN)

    assert resent.challenge_id != issued.challenge_id
    assert len(repo) == 2


def test_resend_issues_new_code_once_latest_expired(otp_service, clock):
    issued = otp_service.request_challenge(MOBILE, OtpPurpose.LOGIN)
    clock.advance(minutes=6)

    resent = otp_service.resend_challenge(MOBILE, OtpPurpose.LOGIN)

    assert resent.challenge_id != issued.challenge_id
    assert resent.expires_at == clock.now + timedelta(seconds=300)
