from datetime import datetime
from pathlib import Path

from .general import ToolRunner
from .models.step import BackupRecord
from .output import debug, info


class BackupManager:
	"""
	Takes a snapshot of a file before a step mutates it.

	The first snapshot of a path during a run is also copied next to the
	file as `<name>.backup` for manual recovery. Every snapshot keeps the
	exact content in memory so a failed step can be rolled back to the
	state right before it ran.
	"""

	def __init__(self, runner: ToolRunner, suffix: str = '.backup') -> None:
		self._runner = runner
		self._suffix = suffix
		self._written: dict[Path, Path] = {}

	@property
	def written(self) -> dict[Path, Path]:
		return dict(self._written)

	def backup_path_for(self, path: Path) -> Path:
		return path.with_name(path.name + self._suffix)

	def snapshot(self, path: Path) -> BackupRecord:
		try:
			content: bytes | None = path.read_bytes()
		except FileNotFoundError:
			content = None

		backup_path = self.backup_path_for(path)

		if content is not None and path not in self._written:
			self._runner.copy_file(path, backup_path)
			self._written[path] = backup_path
			info(f'Backed up {path} to {backup_path}')

		return BackupRecord(
			source=path,
			backup_path=backup_path,
			timestamp=datetime.now(),
			content=content,
		)

	def restore(self, record: BackupRecord) -> None:
		if record.content is None:
			debug(f'{record.source} did not exist before, removing it')
			self._runner.remove_file(record.source)
		else:
			self._runner.write_bytes(record.source, record.content)

		info(f'Restored {record.source} from backup')
