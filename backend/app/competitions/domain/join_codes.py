"""Join codes gating entry to private groups."""

from __future__ import annotations

import secrets
from typing import Optional

from app.competitions.domain.models import Group

JOIN_CODE_LENGTH = 8
# Uppercase letters and digits without the look-alikes I, O, 0 and 1.
JOIN_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


class JoinCodeManager:
	"""Generates and checks opaque join codes."""

	def __init__(self, *, length: int = JOIN_CODE_LENGTH, alphabet: str = JOIN_CODE_ALPHABET) -> None:
		self.length = length
		self.alphabet = alphabet

	def generate(self) -> str:
		return "".join(secrets.choice(self.alphabet) for _ in range(self.length))

	def regenerate(self, current_code: Optional[str]) -> str:
		"""Return a fresh code guaranteed to differ from ``current_code``."""
		while True:
			code = self.generate()
			if code != current_code:
				return code

	@staticmethod
	def validate(group: Group, supplied_code: Optional[str]) -> bool:
		"""Case-sensitive exact match; public groups have nothing to match."""
		if group.is_public or not group.join_code or not supplied_code:
			return False
		return secrets.compare_digest(group.join_code.encode("utf-8"), supplied_code.encode("utf-8"))

	def is_well_formed(self, code: str) -> bool:
		return len(code) == self.length and all(char in self.alphabet for char in code)
