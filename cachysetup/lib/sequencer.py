from collections.abc import Sequence
from typing import TypeAlias, TypeVar

from .context import SetupContext
from .exceptions import StepError
from .models.step import BackupRecord, RunResult, Step, StepGroup, StepStatus
from .output import debug, error, info, warn

SequenceItem: TypeAlias = Step | StepGroup

T = TypeVar('T', bound=Step | StepGroup)


def _dependencies(item: SequenceItem) -> set[str]:
	if isinstance(item, Step):
		return set(item.requires)

	inner = {step.id for step in _all_steps(item)}
	return {dep for step in _all_steps(item) for dep in step.requires} - inner


def _all_steps(item: SequenceItem) -> list[Step]:
	if isinstance(item, Step):
		return [item]

	steps = list(item.steps)
	for option_steps in item.options.values():
		steps.extend(option_steps)
	return steps


def _validate(items: Sequence[SequenceItem]) -> None:
	known: set[str] = set()

	for item in items:
		ids = [item.id]
		if isinstance(item, StepGroup):
			ids.extend(step.id for step in _all_steps(item))

		for step_id in ids:
			if step_id in known:
				raise StepError(f'Duplicate step id: {step_id}')
			known.add(step_id)

	for item in items:
		for step in _all_steps(item):
			if unknown := set(step.requires) - known:
				raise StepError(f'Step {step.id} requires unknown step(s): {", ".join(sorted(unknown))}')


def order_steps(items: Sequence[T]) -> list[T]:
	"""
	Stable topological order: an item runs after everything it requires
	that lives at the same level, otherwise registration order is kept.
	"""
	level_ids = {item.id for item in items}
	for item in items:
		if isinstance(item, StepGroup):
			level_ids |= {step.id for step in _all_steps(item)}

	def _owner(step_id: str) -> str:
		for item in items:
			if step_id == item.id or step_id in {step.id for step in _all_steps(item)}:
				return item.id
		return step_id

	pending = list(items)
	emitted: set[str] = set()
	ordered: list[T] = []

	while pending:
		for index, item in enumerate(pending):
			deps = {_owner(dep) for dep in _dependencies(item) if dep in level_ids}
			if deps <= emitted:
				ordered.append(item)
				emitted.add(item.id)
				del pending[index]
				break
		else:
			cycle = ', '.join(item.id for item in pending)
			raise StepError(f'Circular step dependencies between: {cycle}')

	return ordered


class Sequencer:
	"""
	Runs configuration steps one by one.

	A satisfied step is skipped, anything else is applied with the touched
	file backed up first. Soft failures are rolled back and the sequence
	continues, a failing critical step aborts the remainder and leaves the
	backups in place.
	"""

	def __init__(self, context: SetupContext) -> None:
		self._ctx = context
		self._results: list[RunResult] = []
		self._by_id: dict[str, RunResult] = {}
		self._accepted_groups: set[str] = set()
		self._aborted = False

	@property
	def aborted(self) -> bool:
		return self._aborted

	@property
	def results(self) -> list[RunResult]:
		return list(self._results)

	def run(self, items: Sequence[SequenceItem]) -> list[RunResult]:
		self._results = []
		self._by_id = {}
		self._accepted_groups = set()
		self._aborted = False

		_validate(items)

		for item in order_steps(items):
			if self._aborted:
				break

			if isinstance(item, StepGroup):
				self._run_group(item)
			else:
				self._run_step(item)

		return self.results

	def _record(self, step_id: str, status: StepStatus, detail: str = '', backup: BackupRecord | None = None) -> RunResult:
		result = RunResult(step_id, status, detail, backup)
		self._results.append(result)
		self._by_id[step_id] = result
		debug(f'{step_id}: {status.value} {detail}'.rstrip())
		return result

	def _run_group(self, group: StepGroup) -> None:
		if selected := [other for other in group.exclusive_with if other in self._accepted_groups]:
			info(f'Skipped {group.id} ({selected[0]} was selected)')
			self._record(group.id, StepStatus.Skipped, f'not offered, {selected[0]} was selected')
			return

		if not self._ctx.prompt.ask(group.question, group.default):
			info(f'Skipped {group.id}')
			self._record(group.id, StepStatus.Skipped, 'declined')
			return

		self._accepted_groups.add(group.id)
		steps = list(group.steps)

		if group.options:
			choice = self._ctx.prompt.choose(group.option_question, list(group.options))

			if choice is None:
				self._record(group.id, StepStatus.Skipped, 'no valid option selected')
				return

			steps.extend(group.options[choice])

		for step in order_steps(steps):
			if self._aborted:
				break
			self._run_step(step)

	def _run_step(self, step: Step) -> None:
		ctx = self._ctx

		if blocked := [dep for dep in step.requires if (dep_result := self._by_id.get(dep)) and dep_result.status.failed]:
			warn(f'Skipping {step.id}, it depends on failed step(s): {", ".join(blocked)}')
			self._record(step.id, StepStatus.FailedSoft, f'blocked by {", ".join(blocked)}')
			return

		try:
			if step.precondition is not None and not step.precondition(ctx):
				self._record(step.id, StepStatus.Skipped, 'not applicable')
				return

			if step.check(ctx):
				self._record(step.id, StepStatus.Skipped, 'already satisfied')
				return
		except Exception as err:
			self._fail(step, None, f'could not check state: {err}')
			return

		info(step.description)

		backup = None
		try:
			if step.backup_path is not None:
				backup = ctx.backups.snapshot(step.backup_path)

			detail = step.apply(ctx)
		except Exception as err:
			self._fail(step, backup, str(err))
			return

		try:
			if step.verify is not None:
				step.verify(ctx)

			satisfied = step.check(ctx)
		except Exception as err:
			warn(f'Verification of {step.id} failed: {err}')
			self._rollback(step, backup)
			self._record(step.id, StepStatus.FailedSoft, f'verification failed: {err}', backup)
			return

		if not satisfied:
			warn(f'{step.id} reported success but is still not in place')
			self._rollback(step, backup)
			self._record(step.id, StepStatus.FailedSoft, 'not in place after apply', backup)
			return

		self._record(step.id, StepStatus.Applied, detail or step.description, backup)

	def _fail(self, step: Step, backup: BackupRecord | None, message: str) -> None:
		if step.critical:
			error(f'{step.id} failed: {message}')
			if backup is not None and backup.existed:
				warn(f'Leaving {step.backup_path} as is, the original is at {backup.backup_path}')
			error('Aborting the remaining setup steps')

			self._record(step.id, StepStatus.FailedHard, message, backup)
			self._aborted = True
			return

		warn(f'{step.id} failed: {message}')
		self._rollback(step, backup)
		self._record(step.id, StepStatus.FailedSoft, message, backup)

	def _rollback(self, step: Step, backup: BackupRecord | None) -> None:
		try:
			if step.rollback is not None:
				step.rollback(self._ctx)
			elif backup is not None:
				self._ctx.backups.restore(backup)
		except Exception as err:
			error(f'Rolling back {step.id} failed: {err}')
