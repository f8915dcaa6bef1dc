"""Apply the SQL files under ``backend/migrations`` in version order."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List

import asyncpg

LOGGER = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"


def migration_version(path: Path) -> str:
	return path.name.split("_", 1)[0]


def pending_migrations(directory: Path, applied: Iterable[str]) -> List[Path]:
	"""Return the ``*.sql`` files in ``directory`` whose version is not in ``applied``."""
	done = set(applied)
	return [path for path in sorted(directory.glob("*.sql")) if migration_version(path) not in done]


async def apply_migrations(pool: asyncpg.pool.Pool, directory: Path = MIGRATIONS_DIR) -> List[str]:
	async with pool.acquire() as conn:
		await conn.execute(
			"""
			CREATE TABLE IF NOT EXISTS schema_migrations (
				version TEXT PRIMARY KEY,
				applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
			)
			"""
		)
		applied = [row["version"] for row in await conn.fetch("SELECT version FROM schema_migrations")]
		versions: List[str] = []
		for path in pending_migrations(directory, applied):
			version = migration_version(path)
			async with conn.transaction():
				await conn.execute(path.read_text())
				await conn.execute("INSERT INTO schema_migrations (version) VALUES ($1)", version)
			LOGGER.info("migration.applied", extra={"version": version, "file": path.name})
			versions.append(version)
	return versions
