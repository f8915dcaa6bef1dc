from __future__ import annotations

import pytest

from app.competitions.domain import policies
from app.competitions.domain.exceptions import AuthorizationError, ConflictError
from app.competitions.domain.models import MemberRole
from app.competitions.domain.policies import Action

OWNER, ADMIN, MEMBER = MemberRole.OWNER, MemberRole.ADMIN, MemberRole.MEMBER


def test_role_ordering():
	assert OWNER.outranks(ADMIN)
	assert ADMIN.outranks(MEMBER)
	assert not ADMIN.outranks(ADMIN)
	assert MEMBER.at_least(MEMBER)
	assert not MEMBER.at_least(ADMIN)


@pytest.mark.parametrize("action", list(Action))
def test_non_members_are_always_rejected(action):
	with pytest.raises(AuthorizationError) as excinfo:
		policies.authorize(None, action)
	assert excinfo.value.detail == policies.NOT_A_MEMBER


@pytest.mark.parametrize(
	("role", "action", "allowed"),
	[
		(MEMBER, Action.VIEW_GROUP, True),
		(MEMBER, Action.VIEW_LEADERBOARD, True),
		(MEMBER, Action.VIEW_MEMBERS, True),
		(MEMBER, Action.UPDATE_GROUP, False),
		(MEMBER, Action.INVITE_MEMBER, False),
		(MEMBER, Action.REGENERATE_JOIN_CODE, False),
		(ADMIN, Action.UPDATE_GROUP, True),
		(ADMIN, Action.INVITE_MEMBER, True),
		(ADMIN, Action.REMOVE_MEMBER, True),
		(ADMIN, Action.REGENERATE_JOIN_CODE, True),
		(ADMIN, Action.DELETE_GROUP, False),
		(OWNER, Action.DELETE_GROUP, True),
	],
)
def test_permission_matrix(role, action, allowed):
	if allowed:
		policies.authorize(role, action)
	else:
		with pytest.raises(AuthorizationError) as excinfo:
			policies.authorize(role, action)
		assert excinfo.value.detail == policies.PERMISSIONS[action].denied


@pytest.mark.parametrize("caller", [OWNER, ADMIN, MEMBER])
def test_owner_is_never_removable(caller):
	with pytest.raises(AuthorizationError) as excinfo:
		policies.authorize(caller, Action.REMOVE_MEMBER, OWNER)
	assert excinfo.value.detail == "Cannot remove the group owner."


def test_remove_target_must_rank_below_caller():
	policies.authorize(OWNER, Action.REMOVE_MEMBER, ADMIN)
	policies.authorize(ADMIN, Action.REMOVE_MEMBER, MEMBER)
	with pytest.raises(AuthorizationError) as excinfo:
		policies.authorize(ADMIN, Action.REMOVE_MEMBER, ADMIN)
	assert excinfo.value.detail == "Admins cannot remove other admins."
	with pytest.raises(AuthorizationError):
		policies.authorize(MEMBER, Action.REMOVE_MEMBER, MEMBER)


@pytest.mark.parametrize(
	("caller", "target", "desired", "message"),
	[
		(ADMIN, OWNER, MEMBER, "Cannot change the owner's role."),
		(OWNER, MEMBER, OWNER, "Ownership cannot be assigned."),
		(ADMIN, MEMBER, ADMIN, "Only the owner can promote members to admin."),
		(ADMIN, ADMIN, MEMBER, "Admins cannot demote other admins."),
		(MEMBER, MEMBER, MEMBER, "Only owners and admins can change member roles."),
	],
)
def test_role_change_rules(caller, target, desired, message):
	with pytest.raises(AuthorizationError) as excinfo:
		policies.authorize(caller, Action.CHANGE_MEMBER_ROLE, target, desired_role=desired)
	assert excinfo.value.detail == message


def test_allowed_role_changes():
	policies.authorize(OWNER, Action.CHANGE_MEMBER_ROLE, MEMBER, desired_role=ADMIN)
	policies.authorize(OWNER, Action.CHANGE_MEMBER_ROLE, ADMIN, desired_role=MEMBER)
	policies.authorize(ADMIN, Action.CHANGE_MEMBER_ROLE, MEMBER, desired_role=MEMBER)


@pytest.mark.parametrize("role", [OWNER, ADMIN, MEMBER])
def test_authorize_returns_the_caller_role(role):
	assert policies.authorize(role, Action.VIEW_GROUP) is role
	if role is not MEMBER:
		assert policies.authorize(role, Action.REMOVE_MEMBER, MEMBER) is role


def test_join_code_visibility():
	assert policies.can_view_join_code(OWNER)
	assert policies.can_view_join_code(ADMIN)
	assert not policies.can_view_join_code(MEMBER)
	assert not policies.can_view_join_code(None)


def test_leave_rules():
	policies.ensure_can_leave(MEMBER, other_members=5)
	policies.ensure_can_leave(OWNER, other_members=0)
	with pytest.raises(ConflictError):
		policies.ensure_can_leave(OWNER, other_members=1)
	with pytest.raises(ConflictError):
		policies.ensure_can_leave(None, other_members=0)
