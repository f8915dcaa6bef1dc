"""Per-group serialization of membership mutations."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator
from uuid import UUID


class GroupLockRegistry:
	"""Hands out one ``asyncio.Lock`` per group, dropped once nobody holds or waits on it."""

	def __init__(self) -> None:
		self._locks: dict[UUID, asyncio.Lock] = {}
		self._waiters: dict[UUID, int] = {}

	def _lock(self, group_id: UUID) -> asyncio.Lock:
		if group_id not in self._locks:
			self._locks[group_id] = asyncio.Lock()
		return self._locks[group_id]

	@asynccontextmanager
	async def hold(self, group_id: UUID) -> AsyncIterator[None]:
		lock = self._lock(group_id)
		self._waiters[group_id] = self._waiters.get(group_id, 0) + 1
		try:
			async with lock:
				yield
		finally:
			remaining = self._waiters[group_id] - 1
			if remaining:
				self._waiters[group_id] = remaining
			else:
				self._waiters.pop(group_id, None)
				self._locks.pop(group_id, None)

	def __len__(self) -> int:
		return len(self._locks)
