import os
import time
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import TypeAlias

import pytest

from cachysetup.lib.backup import BackupManager
from cachysetup.lib.context import SetupContext
from cachysetup.lib.general import ToolResult, ToolRunner, ToolStatus
from cachysetup.lib.interactions import PromptGate
from cachysetup.lib.models.config import FstabEntry, SetupConfiguration, SetupPaths
from cachysetup.lib.output import logger
from cachysetup.lib.state import LocalSystemState

_DATA = Path(__file__).parent / 'data'

Handler: TypeAlias = Callable[[list[str]], ToolResult]


def ok(cmd: list[str], stdout: str = '') -> ToolResult:
	return ToolResult(tuple(cmd), ToolStatus.Success, 0, stdout)


def failed(cmd: list[str], exit_code: int = 1, stderr: str = '') -> ToolResult:
	return ToolResult(tuple(cmd), ToolStatus.Failed, exit_code, '', stderr)


class FakeRunner(ToolRunner):
	"""
	Records every command instead of running it. File helpers stay real,
	tests point them at tmp_path.
	"""

	def __init__(self) -> None:
		super().__init__()
		self.calls: list[list[str]] = []
		self.elevated: list[list[str]] = []
		self.handlers: dict[str, Handler] = {}

	def run(
		self,
		cmd: list[str],
		timeout: float | None = None,
		input_data: str | bytes | None = None,
		elevated: bool = False,
		capture: bool = True,
	) -> ToolResult:
		cmd = list(cmd)
		self.calls.append(cmd)
		if elevated:
			self.elevated.append(cmd)

		if handler := self.handlers.get(cmd[0]):
			return handler(cmd)
		return ok(cmd)

	def commands(self, binary: str) -> list[list[str]]:
		return [cmd for cmd in self.calls if cmd[0] == binary]


class FakeState(LocalSystemState):
	"""
	Files come from disk, everything else from the sets below.
	"""

	def __init__(self) -> None:
		self.packages: set[str] = set()
		self.block_devices: set[Path] = set()
		self.binaries: set[str] = {'sudo', 'chezmoi'}
		self.services: set[str] = set()

	def installed_packages(self) -> set[str]:
		return set(self.packages)

	def block_device_exists(self, path: Path) -> bool:
		return path in self.block_devices

	def binary_exists(self, name: str) -> bool:
		return name in self.binaries

	def service_enabled(self, service: str) -> bool:
		return service in self.services


class SimulatedSystem:
	"""
	Wires a FakeRunner to a FakeState so that pacman, systemctl, reflector
	and friends change the state the way the real tools would.
	"""

	def __init__(self, config: SetupConfiguration) -> None:
		self.config = config
		self.state = FakeState()
		self.runner = FakeRunner()
		self.broken_packages: set[str] = set()
		self.reflector_output = (_DATA / 'mirrorlists' / 'reflector_output').read_text()
		self.reflector_status = ToolStatus.Success
		self.db_age = 30 * 60

		self.runner.handlers.update(
			{
				'pacman': self._pacman,
				'systemctl': self._systemctl,
				'reflector': self._reflector,
				'mkdir': self._mkdir,
				'chezmoi': self._chezmoi,
			}
		)

	def _pacman(self, cmd: list[str]) -> ToolResult:
		if '-Syy' in cmd:
			sync_db = self.config.paths.pacman_sync_db
			sync_db.parent.mkdir(parents=True, exist_ok=True)
			sync_db.touch()
			# pacman stamps the database with the server's Last-Modified time
			last_modified = time.time() - self.db_age
			os.utime(sync_db, (last_modified, last_modified))
			return ok(cmd)

		packages = cmd[cmd.index('--noconfirm') + 1 :]
		if broken := [pkg for pkg in packages if pkg in self.broken_packages]:
			return failed(cmd, stderr=f'error: target not found: {broken[0]}')

		self.state.packages.update(packages)
		return ok(cmd)

	def _systemctl(self, cmd: list[str]) -> ToolResult:
		if cmd[1] == 'enable':
			self.state.services.add(cmd[2])
		return ok(cmd)

	def _reflector(self, cmd: list[str]) -> ToolResult:
		if self.reflector_status == ToolStatus.Success:
			return ok(cmd, self.reflector_output)
		return ToolResult(tuple(cmd), self.reflector_status)

	def _mkdir(self, cmd: list[str]) -> ToolResult:
		for path in cmd[2:]:
			Path(path).mkdir(parents=True, exist_ok=True)
		return ok(cmd)

	def _chezmoi(self, cmd: list[str]) -> ToolResult:
		self.config.paths.chezmoi_source.mkdir(parents=True)
		return ok(cmd)

	def context(self, prompt: PromptGate | None = None, clock: Callable[[], float] | None = None) -> SetupContext:
		return SetupContext(
			config=self.config,
			state=self.state,
			runner=self.runner,
			prompt=prompt or PromptGate(silent=True),
			backups=BackupManager(self.runner),
			clock=clock or time.time,
		)


@pytest.fixture(autouse=True)
def log_directory(tmp_path: Path) -> Iterator[Path]:
	log_dir = tmp_path / 'log'
	previous = logger.directory
	logger.set_directory(log_dir)
	yield log_dir
	logger.set_directory(previous)


@pytest.fixture(scope='session')
def pacman_conf_fixture() -> Path:
	return _DATA / 'pacman.conf'


@pytest.fixture(scope='session')
def reflector_output_fixture() -> Path:
	return _DATA / 'mirrorlists' / 'reflector_output'


@pytest.fixture(scope='session')
def mirrorlist_no_country_fixture() -> Path:
	return _DATA / 'mirrorlists' / 'test_no_country'


@pytest.fixture(scope='session')
def mirrorlist_with_country_fixture() -> Path:
	return _DATA / 'mirrorlists' / 'test_with_country'


@pytest.fixture(scope='session')
def mirrorlist_multiple_countries_fixture() -> Path:
	return _DATA / 'mirrorlists' / 'test_multiple_countries'


@pytest.fixture
def setup_config(tmp_path: Path) -> SetupConfiguration:
	etc = tmp_path / 'etc'
	etc.mkdir()

	for name in ('pacman.conf', 'fstab', 'environment'):
		(etc / name).write_text((_DATA / name).read_text())
	(etc / 'mirrorlist').write_text((_DATA / 'mirrorlists' / 'test_with_country').read_text())

	mnt = tmp_path / 'mnt'

	return SetupConfiguration(
		paths=SetupPaths(
			pacman_conf=etc / 'pacman.conf',
			mirrorlist=etc / 'mirrorlist',
			fstab=etc / 'fstab',
			environment=etc / 'environment',
			pacman_db_lock=tmp_path / 'db.lck',
			pacman_sync_db=tmp_path / 'sync' / 'core.db',
			chezmoi_source=tmp_path / 'home' / '.local' / 'share' / 'chezmoi',
			state_dir=tmp_path / 'home' / '.local' / 'state' / 'cachysetup',
		),
		fstab_entries=(
			FstabEntry(device=Path('/dev/sda1'), mountpoint=mnt / 'D'),
			FstabEntry(device=Path('/dev/sdb3'), mountpoint=mnt / 'E'),
			FstabEntry(device=Path('/dev/nvme0n1p3'), mountpoint=mnt / 'C'),
		),
		mountpoints=(mnt / 'C', mnt / 'D', mnt / 'E'),
	)


@pytest.fixture
def system(setup_config: SetupConfiguration) -> SimulatedSystem:
	system = SimulatedSystem(setup_config)
	system.state.block_devices = {entry.device for entry in setup_config.fstab_entries}
	return system


@pytest.fixture
def context(system: SimulatedSystem) -> SetupContext:
	return system.context()
