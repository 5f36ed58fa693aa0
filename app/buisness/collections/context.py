"""
CallerContext - who is calling and how long they are willing to wait
"""

import time
from dataclasses import dataclass
from typing import Optional

from app.buisness.collections.errors import DeadlineExceededError


@dataclass(frozen=True)
class CallerContext:
    """
    Identity and deadline of the caller.

    ``deadline`` is a time.monotonic() value. Without one, deadline checks are
    no-ops.
    """
    user_id: Optional[int] = None
    role: Optional[str] = None
    deadline: Optional[float] = None

    @classmethod
    def with_timeout(cls, seconds: float, user_id: Optional[int] = None, role: Optional[str] = None) -> 'CallerContext':
        return cls(user_id=user_id, role=role, deadline=time.monotonic() + seconds)

    @property
    def is_admin(self) -> bool:
        return self.role == 'ADMIN'

    def check_deadline(self, stage: str = '') -> None:
        if self.deadline is not None and time.monotonic() > self.deadline:
            raise DeadlineExceededError(f"Deadline exceeded{' during ' + stage if stage else ''}")


SYSTEM_CALLER = CallerContext(role='SYSTEM')
