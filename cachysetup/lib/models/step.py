from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
	from ..context import SetupContext


class StepStatus(Enum):
	Applied = 'applied'
	Skipped = 'skipped'
	FailedSoft = 'failed-soft'
	FailedHard = 'failed-hard'

	@property
	def failed(self) -> bool:
		return self in (StepStatus.FailedSoft, StepStatus.FailedHard)


@dataclass(frozen=True)
class Step:
	"""
	One declarative, idempotent unit of system configuration.

	check() answers "is this already in place?", apply() makes it so and
	signals failure by raising. apply() may return a short detail text for
	the run summary.
	"""

	id: str
	description: str
	check: Callable[[SetupContext], bool]
	apply: Callable[[SetupContext], str | None]
	backup_path: Path | None = None
	rollback: Callable[[SetupContext], None] | None = None
	critical: bool = False
	precondition: Callable[[SetupContext], bool] | None = None
	verify: Callable[[SetupContext], None] | None = None
	requires: tuple[str, ...] = ()


@dataclass(frozen=True)
class StepGroup:
	"""
	Optional steps gated as a single unit by one prompt.

	When options are given the accepted group also asks which of the
	named option step lists to run.
	"""

	id: str
	question: str
	steps: tuple[Step, ...] = ()
	default: bool = False
	exclusive_with: tuple[str, ...] = ()
	options: dict[str, tuple[Step, ...]] = field(default_factory=dict)
	option_question: str = 'Enter choice'


@dataclass(frozen=True)
class BackupRecord:
	source: Path
	backup_path: Path
	timestamp: datetime
	content: bytes | None

	@property
	def existed(self) -> bool:
		return self.content is not None


@dataclass(frozen=True)
class RunResult:
	step_id: str
	status: StepStatus
	detail: str = ''
	backup: BackupRecord | None = None

	def table_data(self) -> dict[str, str]:
		return {
			'step': self.step_id,
			'result': self.status.value,
			'detail': self.detail,
		}
