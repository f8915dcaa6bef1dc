"""Authorization policies for competition groups.

Every role check in the service goes through :func:`authorize`, which looks the
action up in ``PERMISSIONS`` and then applies the target-specific rules for
actions that act on another member. Nothing here touches storage.
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple, Optional

from app.competitions.domain.exceptions import AuthorizationError, ConflictError
from app.competitions.domain.models import MemberRole

NOT_A_MEMBER = "You are not a member of this group."


class Action(str, Enum):
	VIEW_GROUP = "view_group"
	VIEW_LEADERBOARD = "view_leaderboard"
	VIEW_MEMBERS = "view_members"
	UPDATE_GROUP = "update_group"
	INVITE_MEMBER = "invite_member"
	REMOVE_MEMBER = "remove_member"
	CHANGE_MEMBER_ROLE = "change_member_role"
	REGENERATE_JOIN_CODE = "regenerate_join_code"
	DELETE_GROUP = "delete_group"


class Permission(NamedTuple):
	minimum: MemberRole
	denied: str


PERMISSIONS: dict[Action, Permission] = {
	Action.VIEW_GROUP: Permission(MemberRole.MEMBER, NOT_A_MEMBER),
	Action.VIEW_LEADERBOARD: Permission(MemberRole.MEMBER, NOT_A_MEMBER),
	Action.VIEW_MEMBERS: Permission(MemberRole.MEMBER, NOT_A_MEMBER),
	Action.UPDATE_GROUP: Permission(MemberRole.ADMIN, "Only group owners and admins can update the group."),
	Action.INVITE_MEMBER: Permission(MemberRole.ADMIN, "Only group owners and admins can invite members."),
	Action.REMOVE_MEMBER: Permission(MemberRole.ADMIN, "Only group owners and admins can remove members."),
	Action.CHANGE_MEMBER_ROLE: Permission(MemberRole.ADMIN, "Only owners and admins can change member roles."),
	Action.REGENERATE_JOIN_CODE: Permission(
		MemberRole.ADMIN, "Only group owners and admins can regenerate the join code."
	),
	Action.DELETE_GROUP: Permission(MemberRole.OWNER, "Only the group owner can delete the group."),
}

# Roles allowed to see a private group's join code.
JOIN_CODE_VIEWERS = frozenset({MemberRole.OWNER, MemberRole.ADMIN})


def authorize(
	caller_role: Optional[MemberRole],
	action: Action,
	target_role: Optional[MemberRole] = None,
	*,
	desired_role: Optional[MemberRole] = None,
) -> MemberRole:
	"""Raise :class:`AuthorizationError` unless ``caller_role`` may perform ``action``.

	``caller_role`` is ``None`` for non-members. ``target_role`` is the role of
	the member being acted upon, when the action has one. Returns the caller's
	role, which is never ``None`` once the check passes.
	"""
	if caller_role is None:
		raise AuthorizationError(NOT_A_MEMBER)
	if action is Action.REMOVE_MEMBER and target_role is MemberRole.OWNER:
		raise AuthorizationError("Cannot remove the group owner.")
	if action is Action.CHANGE_MEMBER_ROLE and target_role is MemberRole.OWNER:
		raise AuthorizationError("Cannot change the owner's role.")
	permission = PERMISSIONS[action]
	if not caller_role.at_least(permission.minimum):
		raise AuthorizationError(permission.denied)
	if target_role is None:
		return caller_role
	if action is Action.REMOVE_MEMBER:
		_check_remove_target(caller_role, target_role)
	elif action is Action.CHANGE_MEMBER_ROLE:
		_check_role_change(caller_role, target_role, desired_role)
	return caller_role


def _check_remove_target(caller_role: MemberRole, target_role: MemberRole) -> None:
	if not caller_role.outranks(target_role):
		raise AuthorizationError("Admins cannot remove other admins.")


def _check_role_change(
	caller_role: MemberRole,
	target_role: MemberRole,
	desired_role: Optional[MemberRole],
) -> None:
	if desired_role is None:
		raise AuthorizationError("A new role is required.")
	if desired_role is MemberRole.OWNER:
		raise AuthorizationError("Ownership cannot be assigned.")
	if desired_role is MemberRole.ADMIN and caller_role is not MemberRole.OWNER:
		raise AuthorizationError("Only the owner can promote members to admin.")
	if target_role is MemberRole.ADMIN and not caller_role.outranks(target_role):
		raise AuthorizationError("Admins cannot demote other admins.")


def can_view_join_code(role: Optional[MemberRole]) -> bool:
	return role in JOIN_CODE_VIEWERS


def ensure_can_leave(role: Optional[MemberRole], *, other_members: int) -> None:
	"""Owners may only leave a group nobody else belongs to."""
	if role is None:
		raise ConflictError(NOT_A_MEMBER)
	if role is MemberRole.OWNER and other_members > 0:
		raise ConflictError(
			"Group owner cannot leave. Transfer ownership to another member first or delete the group."
		)
