import re
from pathlib import Path

from ..context import SetupContext
from ..models.step import Step


def _option_pattern(key: str) -> re.Pattern[str]:
	return re.compile(rf'^{re.escape(key)}\s*=\s*(.*?)\s*$')


def _flag_pattern(flag: str, commented: bool = False) -> re.Pattern[str]:
	prefix = r'#\s*' if commented else ''
	return re.compile(rf'^{prefix}{re.escape(flag)}\s*$')


def _insert_after(lines: list[str], index: int, line: str) -> list[str]:
	return lines[: index + 1] + [line + '\n'] + lines[index + 1 :]


def _find(lines: list[str], pattern: re.Pattern[str]) -> int | None:
	for index, line in enumerate(lines):
		if pattern.match(line.rstrip('\n')):
			return index
	return None


def _options_section(lines: list[str]) -> int | None:
	return _find(lines, re.compile(r'^\[options\]\s*$'))


class PacmanConfig:
	"""
	Line oriented editor for pacman.conf.

	All edits keep comments and ordering intact and are no-ops when the
	wanted line is already in place.
	"""

	def __init__(self, content: str) -> None:
		self._lines = content.splitlines(keepends=True)
		if self._lines and not self._lines[-1].endswith('\n'):
			self._lines[-1] += '\n'

	@classmethod
	def load(cls, path: Path) -> 'PacmanConfig':
		return cls(path.read_text())

	@property
	def content(self) -> str:
		return ''.join(self._lines)

	def get_option(self, key: str) -> str | None:
		pattern = _option_pattern(key)
		for line in self._lines:
			if match := pattern.match(line.rstrip('\n')):
				return match.group(1)
		return None

	def has_flag(self, flag: str) -> bool:
		return _find(self._lines, _flag_pattern(flag)) is not None

	def set_option(self, key: str, value: str) -> None:
		"""
		Replaces an active `key = ...` line, otherwise adds one below the
		commented default or at the top of the [options] section.
		"""
		wanted = f'{key} = {value}'

		if (index := _find(self._lines, _option_pattern(key))) is not None:
			self._lines[index] = wanted + '\n'
		elif (index := _find(self._lines, re.compile(rf'^#\s*{re.escape(key)}\b'))) is not None:
			self._lines = _insert_after(self._lines, index, wanted)
		elif (index := _options_section(self._lines)) is not None:
			self._lines = _insert_after(self._lines, index, wanted)
		else:
			self._lines.append(wanted + '\n')

	def enable_flag(self, flag: str, after: str | None = None) -> None:
		if self.has_flag(flag):
			return

		if (index := _find(self._lines, _flag_pattern(flag, commented=True))) is not None:
			self._lines[index] = flag + '\n'
		elif after and (index := _find(self._lines, _flag_pattern(after))) is not None:
			self._lines = _insert_after(self._lines, index, flag)
		elif (index := _options_section(self._lines)) is not None:
			self._lines = _insert_after(self._lines, index, flag)
		else:
			self._lines.append(flag + '\n')


def _read(ctx: SetupContext, path: Path) -> PacmanConfig:
	return PacmanConfig(ctx.state.read_file(path) or '')


def _write(ctx: SetupContext, path: Path, config: PacmanConfig) -> None:
	ctx.runner.write_file(path, config.content)


def parallel_downloads_step(path: Path, value: int) -> Step:
	def _check(ctx: SetupContext) -> bool:
		return _read(ctx, path).get_option('ParallelDownloads') == str(value)

	def _apply(ctx: SetupContext) -> str:
		config = _read(ctx, path)
		config.set_option('ParallelDownloads', str(value))
		_write(ctx, path, config)
		return f'ParallelDownloads = {value}'

	return Step(
		id='pacman:parallel-downloads',
		description=f'Setting ParallelDownloads to {value}',
		check=_check,
		apply=_apply,
		backup_path=path,
	)


def flag_step(path: Path, flag: str, description: str, after: str | None = None) -> Step:
	def _check(ctx: SetupContext) -> bool:
		return _read(ctx, path).has_flag(flag)

	def _apply(ctx: SetupContext) -> str:
		config = _read(ctx, path)
		config.enable_flag(flag, after=after)
		_write(ctx, path, config)
		return f'{flag} enabled'

	return Step(
		id=f'pacman:{flag.lower()}',
		description=description,
		check=_check,
		apply=_apply,
		backup_path=path,
		requires=(f'pacman:{after.lower()}',) if after else (),
	)


def pacman_tuning_steps(path: Path, parallel_downloads: int) -> list[Step]:
	return [
		parallel_downloads_step(path, parallel_downloads),
		flag_step(path, 'Color', 'Enabling colored output in pacman'),
		flag_step(path, 'ILoveCandy', 'Enabling progress bar candy in pacman', after='Color'),
	]
