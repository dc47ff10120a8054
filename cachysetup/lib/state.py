import stat
from pathlib import Path
from shutil import which
from typing import Protocol

from .exceptions import PackageError
from .general import ToolRunner


class SystemStateProvider(Protocol):
	"""
	Read-only view of the system that step checks consult.
	"""

	def installed_packages(self) -> set[str]: ...

	def read_file(self, path: Path) -> str | None: ...

	def file_mtime(self, path: Path) -> float | None: ...

	def path_exists(self, path: Path) -> bool: ...

	def block_device_exists(self, path: Path) -> bool: ...

	def binary_exists(self, name: str) -> bool: ...

	def service_enabled(self, service: str) -> bool: ...


class LocalSystemState:
	def __init__(self, runner: ToolRunner) -> None:
		self._runner = runner

	def installed_packages(self) -> set[str]:
		result = self._runner.run(['pacman', '-Qq'])
		if not result.ok:
			raise PackageError(f'Could not query installed packages: {result.stderr.strip()}')

		return {line.strip() for line in result.stdout.splitlines() if line.strip()}

	def read_file(self, path: Path) -> str | None:
		try:
			return path.read_text()
		except FileNotFoundError:
			return None

	def file_mtime(self, path: Path) -> float | None:
		try:
			return path.stat().st_mtime
		except FileNotFoundError:
			return None

	def path_exists(self, path: Path) -> bool:
		return path.exists()

	def block_device_exists(self, path: Path) -> bool:
		try:
			return stat.S_ISBLK(path.stat().st_mode)
		except FileNotFoundError:
			return False

	def binary_exists(self, name: str) -> bool:
		return which(name) is not None

	def service_enabled(self, service: str) -> bool:
		if Path(service).suffix not in ('.service', '.target', '.timer', '.socket'):
			service += '.service'  # Just to be safe

		return self._runner.run(['systemctl', 'is-enabled', '--quiet', service]).ok
