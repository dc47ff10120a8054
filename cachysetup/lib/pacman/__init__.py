import time
from pathlib import Path

from ..context import SetupContext
from ..exceptions import PackageError
from ..general import ToolResult, ToolRunner
from ..models.packages import PackageSet
from ..models.step import RunResult, Step, StepStatus
from ..output import error, info, warn
from .config import PacmanConfig


class Pacman:
	def __init__(self, runner: ToolRunner, db_lock: Path = Path('/var/lib/pacman/db.lck'), lock_timeout: float = 60 * 10) -> None:
		self._runner = runner
		self._db_lock = db_lock
		self._lock_timeout = lock_timeout

	def _wait_for_lock(self) -> None:
		"""
		Protects us from colliding with other running pacman sessions.
		The grace period is 10 minutes before giving up.
		"""
		if self._db_lock.exists():
			warn('Pacman is already running, waiting maximum 10 minutes for it to terminate.')

		started = time.time()
		while self._db_lock.exists():
			time.sleep(0.25)

			if time.time() - started > self._lock_timeout:
				error('Pre-existing pacman lock never exited. Please clean up any existing pacman sessions before running the setup.')
				raise PackageError(f'Pacman database is locked: {self._db_lock}')

	def run(self, args: list[str], timeout: float | None = None, capture: bool = True) -> ToolResult:
		"""
		A centralized function to call pacman with elevated privileges.
		"""
		self._wait_for_lock()
		return self._runner.run(['pacman', *args], timeout=timeout, elevated=True, capture=capture)

	def sync(self) -> None:
		info('Updating package database...')
		self.run(['-Syy', '--noconfirm']).check()

	def install(self, packages: list[str]) -> ToolResult:
		info(f'Installing packages: {" ".join(packages)}')
		return self.run(['-S', '--needed', '--noconfirm', *packages], capture=False)


def _sync_stamp(ctx: SetupContext) -> Path:
	return ctx.config.paths.state_dir / 'pacman-sync.done'


def database_sync_step(critical: bool = True) -> Step:
	"""
	Refreshes the sync databases unless the last refresh done by us is
	younger than both the mirror list and the refresh interval.

	pacman sets the mtime of a downloaded database to the server's
	Last-Modified time, so the age is taken from a stamp file written
	after each successful sync.
	"""

	def _check(ctx: SetupContext) -> bool:
		paths = ctx.config.paths
		if not ctx.state.path_exists(paths.pacman_sync_db):
			return False

		synced = ctx.state.file_mtime(_sync_stamp(ctx))
		mirrors_mtime = ctx.state.file_mtime(paths.mirrorlist)

		if synced is None:
			return False
		if mirrors_mtime is not None and synced < mirrors_mtime:
			return False

		return ctx.clock() - synced < ctx.config.mirrors.refresh_interval

	def _apply(ctx: SetupContext) -> str:
		Pacman(ctx.runner, db_lock=ctx.config.paths.pacman_db_lock).sync()

		stamp = _sync_stamp(ctx)
		stamp.parent.mkdir(parents=True, exist_ok=True)
		stamp.write_text(f'{ctx.clock()}\n')
		return 'package database refreshed'

	return Step(
		id='pacman:sync',
		description='Updating package database with the new mirrors',
		check=_check,
		apply=_apply,
		critical=critical,
	)


class PackageInstaller:
	"""
	Installs the part of a package set that is not installed yet,
	in one pacman call.
	"""

	def __init__(self, context: SetupContext) -> None:
		self._ctx = context
		self._pacman = Pacman(context.runner, db_lock=context.config.paths.pacman_db_lock)

	@staticmethod
	def plan(requested: PackageSet, installed: set[str]) -> list[str]:
		return [pkg for pkg in requested.packages if pkg not in installed]

	def install(self, packages: PackageSet) -> RunResult:
		step_id = _step_id(packages)

		try:
			detail = self.install_missing(packages)
		except PackageError as err:
			warn(str(err))
			return RunResult(step_id, StepStatus.FailedSoft, str(err))

		if detail is None:
			present = ', '.join(packages.packages)
			return RunResult(step_id, StepStatus.Skipped, f'already installed: {present}')

		return RunResult(step_id, StepStatus.Applied, detail)

	def install_missing(self, packages: PackageSet) -> str | None:
		installed = self._ctx.state.installed_packages()
		delta = self.plan(packages, installed)
		present = [pkg for pkg in packages.packages if pkg in installed]

		if not delta:
			info(f'All {packages.name} already installed')
			return None

		result = self._pacman.install(delta)
		if not result.ok:
			raise PackageError(f'Failed to install some {packages.name} (exit code {result.exit_code})')

		# pacman may report success while a multi-package transaction left some out
		installed = self._ctx.state.installed_packages()
		if missing := [pkg for pkg in delta if pkg not in installed]:
			raise PackageError(f'{packages.name} still missing after install: {", ".join(missing)}')

		info(f'{packages.name} installed')

		detail = f'installed {", ".join(delta)}'
		if present:
			detail += f'; skipped (already installed) {", ".join(present)}'
		return detail


def _step_id(packages: PackageSet) -> str:
	return 'packages:' + packages.name.lower().replace(' ', '-')


def package_step(packages: PackageSet, critical: bool = False, requires: tuple[str, ...] = ()) -> Step:
	def _check(ctx: SetupContext) -> bool:
		return not PackageInstaller.plan(packages, ctx.state.installed_packages())

	def _apply(ctx: SetupContext) -> str | None:
		return PackageInstaller(ctx).install_missing(packages)

	return Step(
		id=_step_id(packages),
		description=f'Installing {packages.name}',
		check=_check,
		apply=_apply,
		critical=critical,
		requires=requires,
	)


__all__ = [
	'PackageInstaller',
	'Pacman',
	'PacmanConfig',
	'database_sync_step',
	'package_step',
]
