from pathlib import Path

from .models.step import RunResult, StepStatus
from .output import FormattedOutput


class _BackupRow:
	def __init__(self, source: Path, backup: Path) -> None:
		self.source = source
		self.backup = backup

	def table_data(self) -> dict[str, str]:
		return {'file': str(self.source), 'backup': str(self.backup)}


def count_by_status(results: list[RunResult]) -> dict[StepStatus, int]:
	counts = dict.fromkeys(StepStatus, 0)
	for result in results:
		counts[result.status] += 1
	return counts


def summary(results: list[RunResult], backups: dict[Path, Path]) -> str:
	"""
	Human readable end-of-run report: one row per step, the backups
	written during the run and a count per result.
	"""
	output = FormattedOutput.as_table(results, capitalize=True)

	if backups:
		rows = [_BackupRow(source, backup) for source, backup in backups.items()]
		output += '\nBackups written:\n' + FormattedOutput.as_table(rows, capitalize=True)

	counts = count_by_status(results)
	output += '\n' + ', '.join(f'{status.value}: {count}' for status, count in counts.items())

	return output
