"""Storage collaborators for competition groups.

The service only depends on the protocols below. ``CompetitionsRepository`` and
``UserDirectory`` are the asyncpg-backed implementations used in production.
"""

from __future__ import annotations

from typing import Optional, Protocol, Sequence
from uuid import UUID

import asyncpg

from app.competitions.domain import models
from app.competitions.domain.exceptions import ConflictError, NotFoundError
from app.infra.postgres import get_pool


class GroupStore(Protocol):
	async def create(self, group: models.Group, *, owner: models.GroupMembership) -> models.Group:
		"""Persist the group and its owner membership as one unit."""
		...

	async def get_by_id(self, group_id: UUID) -> Optional[models.Group]:
		...

	async def get_by_join_code(self, join_code: str) -> Optional[models.Group]:
		...

	async def update(self, group: models.Group) -> models.Group:
		...

	async def delete(self, group_id: UUID) -> bool:
		...

	async def search_public(self, query: str, limit: int) -> list[models.Group]:
		...


class MembershipStore(Protocol):
	async def get_membership(self, group_id: UUID, user_id: UUID) -> Optional[models.GroupMembership]:
		...

	async def get_members(self, group_id: UUID) -> list[models.GroupMembership]:
		...

	async def add_member(self, membership: models.GroupMembership) -> models.GroupMembership:
		...

	async def remove_member(self, group_id: UUID, user_id: UUID) -> bool:
		...

	async def update_member_role(
		self, group_id: UUID, user_id: UUID, role: models.MemberRole
	) -> models.GroupMembership:
		...

	async def get_user_groups(self, user_id: UUID) -> list[tuple[models.Group, models.MemberRole]]:
		...


class LeaderboardStore(Protocol):
	async def get_totals(self, group_id: UUID, window: models.DateRange) -> list[models.StepTotal]:
		...


class UserLookup(Protocol):
	async def get_by_id(self, user_id: UUID) -> Optional[models.User]:
		...

	async def get_by_ids(self, user_ids: Sequence[UUID]) -> list[models.User]:
		...


_GROUP_SELECT = """
	SELECT g.id, g.name, g.description, g.created_by_id, g.is_public, g.join_code,
		g.period_type, g.created_at,
		(SELECT COUNT(*) FROM competition_group_member m WHERE m.group_id = g.id) AS member_count
	FROM competition_group g
"""


def _escape_like(value: str) -> str:
	return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _group(record: asyncpg.Record) -> models.Group:
	return models.Group.model_validate(dict(record))


def _membership(record: asyncpg.Record) -> models.GroupMembership:
	return models.GroupMembership.model_validate(dict(record))


class CompetitionsRepository:
	"""Thin data-access layer around asyncpg for groups, memberships and totals."""

	async def _fetch_group(self, conn: asyncpg.Connection, group_id: UUID) -> Optional[models.Group]:
		record = await conn.fetchrow(f"{_GROUP_SELECT} WHERE g.id = $1", group_id)
		return _group(record) if record else None

	# --- Group operations -------------------------------------------------

	async def create(self, group: models.Group, *, owner: models.GroupMembership) -> models.Group:
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				try:
					await conn.execute(
						"""
						INSERT INTO competition_group (id, name, description, created_by_id, is_public,
							join_code, period_type, created_at)
						VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
						""",
						group.id,
						group.name,
						group.description,
						group.created_by_id,
						group.is_public,
						group.join_code,
						group.period_type.value,
						group.created_at,
					)
				except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
					raise ConflictError("Join code is already in use.") from exc
				await conn.execute(
					"""
					INSERT INTO competition_group_member (id, group_id, user_id, role, joined_at)
					VALUES ($1, $2, $3, $4, $5)
					""",
					owner.id,
					group.id,
					owner.user_id,
					models.MemberRole.OWNER.value,
					owner.joined_at,
				)
				created = await self._fetch_group(conn, group.id)
		assert created is not None
		return created

	async def get_by_id(self, group_id: UUID) -> Optional[models.Group]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			return await self._fetch_group(conn, group_id)

	async def get_by_join_code(self, join_code: str) -> Optional[models.Group]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(f"{_GROUP_SELECT} WHERE g.join_code = $1", join_code)
		return _group(record) if record else None

	async def update(self, group: models.Group) -> models.Group:
		pool = await get_pool()
		async with pool.acquire() as conn:
			try:
				status = await conn.execute(
					"""
					UPDATE competition_group
					SET name = $2, description = $3, is_public = $4, join_code = $5, period_type = $6
					WHERE id = $1
					""",
					group.id,
					group.name,
					group.description,
					group.is_public,
					group.join_code,
					group.period_type.value,
				)
			except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
				raise ConflictError("Join code is already in use.") from exc
			if status.endswith(" 0"):
				raise NotFoundError(f"Group not found: {group.id}")
			updated = await self._fetch_group(conn, group.id)
		assert updated is not None
		return updated

	async def delete(self, group_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute("DELETE FROM competition_group WHERE id = $1", group_id)
		return not status.endswith(" 0")

	async def search_public(self, query: str, limit: int) -> list[models.Group]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				f"""
				{_GROUP_SELECT}
				WHERE g.is_public AND g.name ILIKE $1 ESCAPE '\\'
				ORDER BY g.name ASC, g.id ASC
				LIMIT $2
				""",
				f"%{_escape_like(query)}%",
				limit,
			)
		return [_group(row) for row in rows]

	# --- Membership operations --------------------------------------------

	async def get_membership(self, group_id: UUID, user_id: UUID) -> Optional[models.GroupMembership]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT * FROM competition_group_member WHERE group_id = $1 AND user_id = $2",
				group_id,
				user_id,
			)
		return _membership(record) if record else None

	async def get_members(self, group_id: UUID) -> list[models.GroupMembership]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT * FROM competition_group_member WHERE group_id = $1 ORDER BY joined_at ASC",
				group_id,
			)
		return [_membership(row) for row in rows]

	async def add_member(self, membership: models.GroupMembership) -> models.GroupMembership:
		pool = await get_pool()
		async with pool.acquire() as conn:
			try:
				record = await conn.fetchrow(
					"""
					INSERT INTO competition_group_member (id, group_id, user_id, role, joined_at)
					VALUES ($1, $2, $3, $4, $5)
					RETURNING *
					""",
					membership.id,
					membership.group_id,
					membership.user_id,
					membership.role.value,
					membership.joined_at,
				)
			except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
				raise ConflictError("User is already a member of this group.") from exc
			except asyncpg.ForeignKeyViolationError as exc:  # type: ignore[attr-defined]
				raise NotFoundError(f"Group not found: {membership.group_id}") from exc
		return _membership(record)

	async def remove_member(self, group_id: UUID, user_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute(
				"DELETE FROM competition_group_member WHERE group_id = $1 AND user_id = $2",
				group_id,
				user_id,
			)
		return not status.endswith(" 0")

	async def update_member_role(
		self, group_id: UUID, user_id: UUID, role: models.MemberRole
	) -> models.GroupMembership:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				UPDATE competition_group_member SET role = $3
				WHERE group_id = $1 AND user_id = $2
				RETURNING *
				""",
				group_id,
				user_id,
				role.value,
			)
		if record is None:
			raise NotFoundError(f"Member not found: {user_id}")
		return _membership(record)

	async def get_user_groups(self, user_id: UUID) -> list[tuple[models.Group, models.MemberRole]]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT g.id, g.name, g.description, g.created_by_id, g.is_public, g.join_code,
					g.period_type, g.created_at, m.role AS member_role,
					(SELECT COUNT(*) FROM competition_group_member c WHERE c.group_id = g.id) AS member_count
				FROM competition_group_member m
				JOIN competition_group g ON g.id = m.group_id
				WHERE m.user_id = $1
				ORDER BY m.joined_at ASC
				""",
				user_id,
			)
		return [(_group(row), models.MemberRole(row["member_role"])) for row in rows]

	# --- Leaderboard --------------------------------------------------------

	async def get_totals(self, group_id: UUID, window: models.DateRange) -> list[models.StepTotal]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT m.user_id, u.display_name, u.avatar_url,
					COALESCE(SUM(se.step_count), 0) AS total_steps,
					COALESCE(SUM(se.distance_meters), 0) AS total_distance_meters
				FROM competition_group_member m
				JOIN users u ON u.id = m.user_id
				LEFT JOIN step_entries se ON se.user_id = m.user_id
					AND se.date BETWEEN $2 AND $3
				WHERE m.group_id = $1
				GROUP BY m.user_id, u.display_name, u.avatar_url
				""",
				group_id,
				window.start,
				window.end,
			)
		return [
			models.StepTotal(
				user_id=row["user_id"],
				display_name=row["display_name"] or "",
				avatar_url=row["avatar_url"],
				total_steps=int(row["total_steps"]),
				total_distance_meters=float(row["total_distance_meters"]),
			)
			for row in rows
		]


class UserDirectory:
	"""Read-only lookups against the users table."""

	async def get_by_id(self, user_id: UUID) -> Optional[models.User]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT id, display_name, avatar_url FROM users WHERE id = $1",
				user_id,
			)
		return models.User.model_validate(dict(record)) if record else None

	async def get_by_ids(self, user_ids: Sequence[UUID]) -> list[models.User]:
		if not user_ids:
			return []
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT id, display_name, avatar_url FROM users WHERE id = ANY($1::uuid[])",
				list(user_ids),
			)
		return [models.User.model_validate(dict(row)) for row in rows]
