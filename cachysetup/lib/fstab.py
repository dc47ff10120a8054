from pathlib import Path

from .context import SetupContext
from .models.config import FstabEntry
from .models.step import Step
from .output import info

MOUNTPOINTS_STEP = 'fstab:mountpoints'


def has_line(content: str | None, line: str) -> bool:
	"""
	Exact, whole-line match, the same as `grep -qxF`.
	"""
	if not content:
		return False
	return any(existing == line for existing in content.splitlines())


def mount_all(ctx: SetupContext) -> None:
	info('Testing fstab by mounting all entries...')
	ctx.runner.run(['mount', '-a'], elevated=True).check()


def mountpoints_step(mountpoints: tuple[Path, ...]) -> Step:
	def _missing(ctx: SetupContext) -> list[Path]:
		return [path for path in mountpoints if not ctx.state.path_exists(path)]

	def _apply(ctx: SetupContext) -> str:
		missing = _missing(ctx)
		ctx.runner.run(['mkdir', '-p', *[str(path) for path in missing]], elevated=True).check()
		return 'created ' + ' '.join(str(path) for path in missing)

	return Step(
		id=MOUNTPOINTS_STEP,
		description='Creating mount points ' + ' '.join(str(path) for path in mountpoints),
		check=lambda ctx: not _missing(ctx),
		apply=_apply,
	)


def fstab_entry_step(fstab: Path, entry: FstabEntry) -> Step:
	def _check(ctx: SetupContext) -> bool:
		return has_line(ctx.state.read_file(fstab), entry.line)

	def _apply(ctx: SetupContext) -> str:
		ctx.runner.append_line(fstab, entry.line)
		info(f'Added to {fstab}: {entry.line}')
		return f'{entry.device} -> {entry.mountpoint}'

	return Step(
		id=f'fstab:{entry.mountpoint}',
		description=f'Adding automount entry for {entry.device} on {entry.mountpoint}',
		check=_check,
		apply=_apply,
		backup_path=fstab,
		precondition=lambda ctx: ctx.state.block_device_exists(entry.device),
		verify=mount_all,
		requires=(MOUNTPOINTS_STEP,),
	)


def fstab_steps(fstab: Path, entries: tuple[FstabEntry, ...], mountpoints: tuple[Path, ...]) -> list[Step]:
	return [mountpoints_step(mountpoints)] + [fstab_entry_step(fstab, entry) for entry in entries]
