"""Access policy decisions for every principal kind and action tag."""
import pytest

from blog_api.identity import ANONYMOUS, Identity
from blog_api.models import Role
from blog_api.policy import (
    ACTION_TAGS,
    DENY_STATUS,
    AccessDenied,
    Action,
    ActionTag,
    DenyReason,
    authorize,
    enforce,
)

ADMIN = Identity(id=1, role=Role.ADMIN, email_verified=True)
ADMIN_UNVERIFIED = Identity(id=2, role=Role.ADMIN, email_verified=False)
ALICE = Identity(id=10, role=Role.REGULAR, email_verified=True)
BOB = Identity(id=11, role=Role.REGULAR, email_verified=True)
UNVERIFIED = Identity(id=12, role=Role.REGULAR, email_verified=False)

ALL_PRINCIPALS = [ANONYMOUS, ADMIN, ADMIN_UNVERIFIED, ALICE, BOB, UNVERIFIED]


def _actions(tag: ActionTag) -> list[Action]:
    return [a for a, t in ACTION_TAGS.items() if t is tag]


def test_every_action_is_classified():
    assert set(ACTION_TAGS) == set(Action)


def test_every_deny_reason_has_a_status():
    assert set(DENY_STATUS) == set(DenyReason)
    assert DENY_STATUS[DenyReason.AUTHENTICATION_REQUIRED] == 401
    assert DENY_STATUS[DenyReason.UNAUTHORIZED] == 401
    assert DENY_STATUS[DenyReason.FORBIDDEN] == 403
    assert DENY_STATUS[DenyReason.EMAIL_NOT_VERIFIED] == 403


@pytest.mark.parametrize("action", _actions(ActionTag.PUBLIC))
@pytest.mark.parametrize("principal", ALL_PRINCIPALS)
def test_public_actions_always_allowed(principal, action):
    assert authorize(principal, action).allowed


@pytest.mark.parametrize(
    "action", [a for a in Action if ACTION_TAGS[a] is not ActionTag.PUBLIC]
)
def test_anonymous_needs_authentication(action):
    decision = authorize(ANONYMOUS, action, owner_id=10)
    assert not decision.allowed
    assert decision.reason is DenyReason.AUTHENTICATION_REQUIRED


@pytest.mark.parametrize("action", _actions(ActionTag.ADMIN_ONLY))
def test_admin_only_actions(action):
    assert authorize(ADMIN, action).allowed
    assert authorize(ADMIN_UNVERIFIED, action).allowed
    for principal in (ALICE, UNVERIFIED):
        decision = authorize(principal, action)
        assert decision.reason is DenyReason.FORBIDDEN


def test_owner_or_admin():
    assert authorize(ALICE, Action.DELETE_COMMENT, owner_id=ALICE.id).allowed
    assert authorize(ADMIN, Action.DELETE_COMMENT, owner_id=ALICE.id).allowed
    assert authorize(ADMIN, Action.DELETE_COMMENT, owner_id=None).allowed

    decision = authorize(BOB, Action.DELETE_COMMENT, owner_id=ALICE.id)
    assert decision.reason is DenyReason.UNAUTHORIZED


def test_owner_check_with_unknown_owner_denies_regular_user():
    decision = authorize(ALICE, Action.DELETE_COMMENT, owner_id=None)
    assert decision.reason is DenyReason.UNAUTHORIZED


def test_unverified_owner_may_still_withdraw():
    assert authorize(UNVERIFIED, Action.DELETE_COMMENT, owner_id=UNVERIFIED.id).allowed


@pytest.mark.parametrize("action", _actions(ActionTag.AUTHENTICATED))
def test_authenticated_actions_for_verified_users(action):
    assert authorize(ALICE, action).allowed
    assert authorize(ADMIN, action).allowed


def test_commenting_requires_verified_email():
    decision = authorize(UNVERIFIED, Action.CREATE_COMMENT)
    assert decision.reason is DenyReason.EMAIL_NOT_VERIFIED
    # Other authenticated actions do not.
    assert authorize(UNVERIFIED, Action.LIKE_POST).allowed
    assert authorize(UNVERIFIED, Action.RESEND_VERIFICATION).allowed


def test_enforce_raises_with_mapped_status():
    with pytest.raises(AccessDenied) as exc_info:
        enforce(ALICE, Action.CREATE_POST)
    assert exc_info.value.status_code == 403
    assert exc_info.value.code == "forbidden"

    with pytest.raises(AccessDenied) as exc_info:
        enforce(ANONYMOUS, Action.LIKE_POST)
    assert exc_info.value.status_code == 401
    assert exc_info.value.reason is DenyReason.AUTHENTICATION_REQUIRED


def test_enforce_allows_silently():
    assert enforce(ADMIN, Action.APPROVE_COMMENT) is None
