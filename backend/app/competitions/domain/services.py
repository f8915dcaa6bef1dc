"""Service layer orchestrating competition group operations.

Each operation validates its input, loads the group and the caller's
membership, authorizes through :mod:`policies`, then mutates or queries via the
storage collaborators. Membership mutations are serialized per group.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Callable, Optional, Union
from uuid import UUID, uuid4
from zoneinfo import ZoneInfo

from app.competitions.domain import models, policies, repo as repo_module
from app.competitions.domain.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.competitions.domain.join_codes import JoinCodeManager
from app.competitions.domain.leaderboard import LeaderboardCalculator
from app.competitions.domain.locks import GroupLockRegistry
from app.competitions.domain.policies import Action
from app.competitions.schemas import dto
from app.obs import metrics as obs_metrics
from app.settings import settings

logger = logging.getLogger(__name__)

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 50
DESCRIPTION_MAX_LENGTH = 500
SEARCH_LIMIT_MAX = 100

IdLike = Union[UUID, str, None]


def _require_id(value: IdLike, label: str) -> UUID:
	if value is None:
		raise ValidationError(f"{label} cannot be empty.")
	if isinstance(value, UUID):
		parsed = value
	else:
		text = str(value).strip()
		if not text:
			raise ValidationError(f"{label} cannot be empty.")
		try:
			parsed = UUID(text)
		except ValueError as exc:
			raise ValidationError(f"{label} is not a valid identifier.") from exc
	if parsed.int == 0:
		raise ValidationError(f"{label} cannot be empty.")
	return parsed


def _validate_name(name: Optional[str]) -> str:
	if name is None or not name.strip():
		raise ValidationError("Group name cannot be empty.")
	trimmed = name.strip()
	if not NAME_MIN_LENGTH <= len(trimmed) <= NAME_MAX_LENGTH:
		raise ValidationError(
			f"Group name must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters."
		)
	return trimmed


def _validate_description(description: Optional[str]) -> Optional[str]:
	if description is None:
		return None
	trimmed = description.strip()
	if len(trimmed) > DESCRIPTION_MAX_LENGTH:
		raise ValidationError(f"Group description cannot exceed {DESCRIPTION_MAX_LENGTH} characters.")
	return trimmed or None


def _default_today() -> date:
	return datetime.now(ZoneInfo(settings.competitions_timezone)).date()


class GroupDomainService:
	"""Implements membership, join-code and leaderboard rules for competition groups."""

	def __init__(
		self,
		groups: repo_module.GroupStore | None = None,
		memberships: repo_module.MembershipStore | None = None,
		leaderboards: repo_module.LeaderboardStore | None = None,
		users: repo_module.UserLookup | None = None,
		*,
		join_codes: JoinCodeManager | None = None,
		calculator: LeaderboardCalculator | None = None,
		locks: GroupLockRegistry | None = None,
		today: Callable[[], date] | None = None,
	) -> None:
		default_repo: repo_module.CompetitionsRepository | None = None
		if groups is None or memberships is None or leaderboards is None:
			default_repo = repo_module.CompetitionsRepository()
		self.groups = groups or default_repo
		self.memberships = memberships or default_repo
		self.leaderboards = leaderboards or default_repo
		self.users = users or repo_module.UserDirectory()
		self.join_codes = join_codes or JoinCodeManager()
		self.calculator = calculator or LeaderboardCalculator()
		self.locks = locks or GroupLockRegistry()
		self._today = today or _default_today

	# ------------------------------------------------------------------
	# Helpers

	@staticmethod
	def _group_to_response(group: models.Group, *, role: models.MemberRole) -> dto.GroupResponse:
		return dto.GroupResponse(
			id=group.id,
			name=group.name,
			description=group.description,
			is_public=group.is_public,
			join_code=group.join_code if policies.can_view_join_code(role) else None,
			period_type=group.period_type,
			member_count=group.member_count,
			role=role,
			created_at=group.created_at,
		)

	@staticmethod
	def _member_to_response(
		membership: models.GroupMembership, user: models.User | None
	) -> dto.GroupMemberResponse:
		return dto.GroupMemberResponse(
			user_id=membership.user_id,
			display_name=user.display_name if user else "Unknown",
			avatar_url=user.avatar_url if user else None,
			role=membership.role,
			joined_at=membership.joined_at,
		)

	@staticmethod
	def _new_membership(group_id: UUID, user_id: UUID, role: models.MemberRole) -> models.GroupMembership:
		return models.GroupMembership(
			id=uuid4(),
			group_id=group_id,
			user_id=user_id,
			role=role,
			joined_at=datetime.now(timezone.utc),
		)

	async def _load_group(self, group_id: UUID) -> models.Group:
		group = await self.groups.get_by_id(group_id)
		if group is None:
			raise NotFoundError(f"Group not found: {group_id}")
		return group

	async def _caller_role(self, group_id: UUID, user_id: UUID) -> Optional[models.MemberRole]:
		membership = await self.memberships.get_membership(group_id, user_id)
		return membership.role if membership else None

	async def _unused_join_code(self, current: Optional[str] = None) -> str:
		for _ in range(max(1, settings.competitions_join_code_max_attempts)):
			code = self.join_codes.regenerate(current)
			if await self.groups.get_by_join_code(code) is None:
				return code
		raise ConflictError("Could not allocate a unique join code.")

	@staticmethod
	def _record(event: str, *, group_id: UUID, user_id: UUID, **extra: object) -> None:
		obs_metrics.inc_competition_mutation(event)
		logger.info(
			f"competitions.{event}",
			extra={"group_id": str(group_id), "actor_id": str(user_id), **extra},
		)

	# ------------------------------------------------------------------
	# Group operations

	async def create_group(self, user_id: IdLike, payload: dto.GroupCreateRequest) -> dto.GroupResponse:
		caller = _require_id(user_id, "User ID")
		name = _validate_name(payload.name)
		description = _validate_description(payload.description)
		join_code = None if payload.is_public else await self._unused_join_code()
		group = models.Group(
			id=uuid4(),
			name=name,
			description=description,
			created_by_id=caller,
			is_public=payload.is_public,
			join_code=join_code,
			period_type=payload.period_type,
			created_at=datetime.now(timezone.utc),
		)
		owner = self._new_membership(group.id, caller, models.MemberRole.OWNER)
		created = await self.groups.create(group, owner=owner)
		self._record("group.created", group_id=created.id, user_id=caller, is_public=created.is_public)
		return self._group_to_response(created, role=models.MemberRole.OWNER)

	async def get_group(self, user_id: IdLike, group_id: IdLike) -> dto.GroupResponse:
		caller = _require_id(user_id, "User ID")
		gid = _require_id(group_id, "Group ID")
		group = await self._load_group(gid)
		role = await self._caller_role(gid, caller)
		role = policies.authorize(role, Action.VIEW_GROUP)
		return self._group_to_response(group, role=role)

	async def get_user_groups(self, user_id: IdLike) -> dto.GroupListResponse:
		caller = _require_id(user_id, "User ID")
		pairs = await self.memberships.get_user_groups(caller)
		return dto.GroupListResponse(groups=[self._group_to_response(group, role=role) for group, role in pairs])

	async def update_group(
		self,
		user_id: IdLike,
		group_id: IdLike,
		payload: dto.GroupUpdateRequest,
	) -> dto.GroupResponse:
		caller = _require_id(user_id, "User ID")
		gid = _require_id(group_id, "Group ID")
		name = _validate_name(payload.name)
		description = _validate_description(payload.description)
		async with self.locks.hold(gid):
			group = await self._load_group(gid)
			role = await self._caller_role(gid, caller)
			role = policies.authorize(role, Action.UPDATE_GROUP)
			if payload.is_public:
				join_code = None
			elif group.is_public or not group.join_code:
				join_code = await self._unused_join_code()
			else:
				join_code = group.join_code
			updated = await self.groups.update(
				group.model_copy(
					update={
						"name": name,
						"description": description,
						"is_public": payload.is_public,
						"join_code": join_code,
					}
				)
			)
		self._record("group.updated", group_id=gid, user_id=caller, is_public=updated.is_public)
		return self._group_to_response(updated, role=role)

	async def delete_group(self, user_id: IdLike, group_id: IdLike) -> None:
		caller = _require_id(user_id, "User ID")
		gid = _require_id(group_id, "Group ID")
		async with self.locks.hold(gid):
			await self._load_group(gid)
			role = await self._caller_role(gid, caller)
			policies.authorize(role, Action.DELETE_GROUP)
			if not await self.groups.delete(gid):
				raise NotFoundError(f"Group not found: {gid}")
		self._record("group.deleted", group_id=gid, user_id=caller)

	# ------------------------------------------------------------------
	# Membership operations

	async def join_group(
		self,
		user_id: IdLike,
		group_id: IdLike,
		payload: dto.JoinGroupRequest | None = None,
	) -> dto.GroupResponse:
		caller = _require_id(user_id, "User ID")
		gid = _require_id(group_id, "Group ID")
		supplied = payload.join_code if payload else None
		async with self.locks.hold(gid):
			group = await self._load_group(gid)
			if await self.memberships.get_membership(gid, caller) is not None:
				raise ConflictError("You are already a member of this group.")
			if not group.is_public:
				if supplied is None or not supplied.strip():
					raise ValidationError("Join code is required for private groups.")
				if not self.join_codes.validate(group, supplied):
					raise AuthorizationError("Invalid join code.")
			await self.memberships.add_member(self._new_membership(gid, caller, models.MemberRole.MEMBER))
			refreshed = await self._load_group(gid)
		self._record("member.joined", group_id=gid, user_id=caller)
		return self._group_to_response(refreshed, role=models.MemberRole.MEMBER)

	async def join_by_code(self, user_id: IdLike, code: Optional[str]) -> dto.GroupResponse:
		caller = _require_id(user_id, "User ID")
		if code is None or not code.strip():
			raise ValidationError("Join code cannot be empty.")
		code = code.strip()
		group = await self.groups.get_by_join_code(code) if self.join_codes.is_well_formed(code) else None
		if group is None:
			raise NotFoundError("Invalid join code. Group not found.")
		async with self.locks.hold(group.id):
			if await self.memberships.get_membership(group.id, caller) is not None:
				raise ConflictError("You are already a member of this group.")
			await self.memberships.add_member(
				self._new_membership(group.id, caller, models.MemberRole.MEMBER)
			)
			refreshed = await self._load_group(group.id)
		self._record("member.joined", group_id=group.id, user_id=caller, via="code")
		return self._group_to_response(refreshed, role=models.MemberRole.MEMBER)

	async def leave_group(self, user_id: IdLike, group_id: IdLike) -> None:
		"""Remove the caller's membership.

		When the owner leaves as the last member the group itself is deleted, so a
		group never outlives its owner.
		"""
		caller = _require_id(user_id, "User ID")
		gid = _require_id(group_id, "Group ID")
		async with self.locks.hold(gid):
			await self._load_group(gid)
			role = await self._caller_role(gid, caller)
			others = 0
			if role is models.MemberRole.OWNER:
				members = await self.memberships.get_members(gid)
				others = sum(1 for member in members if member.user_id != caller)
			policies.ensure_can_leave(role, other_members=others)
			if role is models.MemberRole.OWNER:
				await self.groups.delete(gid)
			else:
				await self.memberships.remove_member(gid, caller)
		self._record("member.left", group_id=gid, user_id=caller)

	async def invite_member(
		self,
		user_id: IdLike,
		group_id: IdLike,
		payload: dto.InviteMemberRequest,
	) -> dto.GroupMemberResponse:
		caller = _require_id(user_id, "User ID")
		gid = _require_id(group_id, "Group ID")
		target_id = _require_id(payload.user_id, "User ID to invite")
		async with self.locks.hold(gid):
			await self._load_group(gid)
			role = await self._caller_role(gid, caller)
			policies.authorize(role, Action.INVITE_MEMBER)
			target_user = await self.users.get_by_id(target_id)
			if target_user is None:
				raise NotFoundError(f"User not found: {target_id}")
			if await self.memberships.get_membership(gid, target_id) is not None:
				raise ConflictError("User is already a member of this group.")
			created = await self.memberships.add_member(
				self._new_membership(gid, target_id, models.MemberRole.MEMBER)
			)
		self._record("member.invited", group_id=gid, user_id=caller, target_id=str(target_id))
		return self._member_to_response(created, target_user)

	async def remove_member(self, user_id: IdLike, group_id: IdLike, target_user_id: IdLike) -> None:
		caller = _require_id(user_id, "User ID")
		gid = _require_id(group_id, "Group ID")
		target_id = _require_id(target_user_id, "Target user ID")
		async with self.locks.hold(gid):
			await self._load_group(gid)
			role = await self._caller_role(gid, caller)
			policies.authorize(role, Action.REMOVE_MEMBER)
			target = await self.memberships.get_membership(gid, target_id)
			if target is None:
				raise ConflictError("User is not a member of this group.")
			policies.authorize(role, Action.REMOVE_MEMBER, target.role)
			await self.memberships.remove_member(gid, target_id)
		self._record("member.removed", group_id=gid, user_id=caller, target_id=str(target_id))

	async def update_member_role(
		self,
		user_id: IdLike,
		group_id: IdLike,
		target_user_id: IdLike,
		payload: dto.UpdateMemberRoleRequest,
	) -> dto.GroupMemberResponse:
		caller = _require_id(user_id, "User ID")
		gid = _require_id(group_id, "Group ID")
		target_id = _require_id(target_user_id, "Target user ID")
		async with self.locks.hold(gid):
			await self._load_group(gid)
			role = await self._caller_role(gid, caller)
			if role is None:
				raise AuthorizationError(policies.NOT_A_MEMBER)
			# Missing targets are reported before the caller's rank is checked.
			target = await self.memberships.get_membership(gid, target_id)
			if target is None:
				raise NotFoundError(f"Member not found: {target_id}")
			policies.authorize(role, Action.CHANGE_MEMBER_ROLE, target.role, desired_role=payload.role)
			updated = await self.memberships.update_member_role(gid, target_id, payload.role)
		self._record(
			"member.role_changed",
			group_id=gid,
			user_id=caller,
			target_id=str(target_id),
			role=payload.role.value,
		)
		return self._member_to_response(updated, await self.users.get_by_id(target_id))

	async def get_members(
		self,
		user_id: IdLike,
		group_id: IdLike,
		role_filter: models.MemberRole | None = None,
	) -> list[dto.GroupMemberResponse]:
		caller = _require_id(user_id, "User ID")
		gid = _require_id(group_id, "Group ID")
		await self._load_group(gid)
		role = await self._caller_role(gid, caller)
		policies.authorize(role, Action.VIEW_MEMBERS)
		memberships = await self.memberships.get_members(gid)
		if role_filter is not None:
			memberships = [m for m in memberships if m.role is role_filter]
		if not memberships:
			return []
		users = await self.users.get_by_ids([m.user_id for m in memberships])
		by_id = {user.id: user for user in users}
		# sorted() is stable, so storage's join order is kept within a role.
		ordered = sorted(memberships, key=lambda m: -m.role.rank)
		return [self._member_to_response(m, by_id.get(m.user_id)) for m in ordered]

	# ------------------------------------------------------------------
	# Leaderboard & join codes

	async def get_leaderboard(self, user_id: IdLike, group_id: IdLike) -> dto.LeaderboardResponse:
		caller = _require_id(user_id, "User ID")
		gid = _require_id(group_id, "Group ID")
		group = await self._load_group(gid)
		role = await self._caller_role(gid, caller)
		policies.authorize(role, Action.VIEW_LEADERBOARD)
		window = self.calculator.compute_window(group.period_type, self._today())
		totals = await self.leaderboards.get_totals(gid, window)
		entries = self.calculator.rank(totals)
		return dto.LeaderboardResponse(
			group_id=gid,
			period_start=window.start,
			period_end=window.end,
			entries=[
				dto.LeaderboardEntrySchema(
					rank=entry.rank,
					user_id=entry.user_id,
					display_name=entry.display_name,
					avatar_url=entry.avatar_url,
					total_steps=entry.total_steps,
					total_distance_meters=entry.total_distance_meters,
				)
				for entry in entries
			],
		)

	async def regenerate_join_code(self, user_id: IdLike, group_id: IdLike) -> dto.GroupResponse:
		caller = _require_id(user_id, "User ID")
		gid = _require_id(group_id, "Group ID")
		async with self.locks.hold(gid):
			group = await self._load_group(gid)
			role = await self._caller_role(gid, caller)
			role = policies.authorize(role, Action.REGENERATE_JOIN_CODE)
			if group.is_public:
				raise ConflictError("Public groups do not have join codes.")
			code = await self._unused_join_code(group.join_code)
			updated = await self.groups.update(group.model_copy(update={"join_code": code}))
		self._record("join_code.regenerated", group_id=gid, user_id=caller)
		return self._group_to_response(updated, role=role)

	async def search_public_groups(self, query: Optional[str], limit: int) -> list[dto.GroupSearchResponse]:
		if query is None or not query.strip():
			raise ValidationError("Search query cannot be empty.")
		if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= SEARCH_LIMIT_MAX:
			raise ValidationError(f"Limit must be between 1 and {SEARCH_LIMIT_MAX}.")
		groups = await self.groups.search_public(query.strip(), limit)
		return [
			dto.GroupSearchResponse(
				id=group.id,
				name=group.name,
				description=group.description,
				member_count=group.member_count,
				is_public=group.is_public,
			)
			for group in groups
		]
