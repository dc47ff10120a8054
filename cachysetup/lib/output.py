import logging
import os
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol


class _TableRow(Protocol):
	def table_data(self) -> dict[str, Any]: ...


class FormattedOutput:
	@classmethod
	def as_table(cls, obj: list[_TableRow], capitalize: bool = False) -> str:
		"""
		Formats a list of objects as a table, one record per line, so the
		result can be handed straight to print(). The columns are the keys
		of each object's table_data().
		"""
		raw_data = [o.table_data() for o in obj]

		# determine the maximum column size
		column_width: dict[str, int] = {}
		for o in raw_data:
			for k, v in o.items():
				column_width.setdefault(k, 0)
				column_width[k] = max([column_width[k], len(str(v)), len(k)])

		# create the header lines
		output = ''
		key_list = []
		for key, width in column_width.items():
			key = key.replace('_', ' ')

			if capitalize:
				key = key.capitalize()

			key_list.append(key.ljust(width))

		output += ' | '.join(key_list) + '\n'
		output += '-' * len(output) + '\n'

		# create the data lines
		for record in raw_data:
			obj_data = []
			for key, width in column_width.items():
				value = record.get(key, '')

				if isinstance(value, int | float) or (isinstance(value, str) and value.isnumeric()):
					obj_data.append(str(value).rjust(width))
				else:
					obj_data.append(str(value).ljust(width))

			output += ' | '.join(obj_data) + '\n'

		return output


class Journald:
	@staticmethod
	def log(message: str, level: int = logging.DEBUG) -> None:
		try:
			import systemd.journal  # type: ignore[import-not-found]
		except ModuleNotFoundError:
			return None

		log_adapter = logging.getLogger('cachysetup')
		if not log_adapter.handlers:
			log_fmt = logging.Formatter('[%(levelname)s]: %(message)s')
			log_ch = systemd.journal.JournalHandler()
			log_ch.setFormatter(log_fmt)
			log_adapter.addHandler(log_ch)
			log_adapter.setLevel(logging.DEBUG)

		log_adapter.log(level, message)


def _default_log_dir() -> Path:
	state_home = os.environ.get('XDG_STATE_HOME') or str(Path.home() / '.local' / 'state')
	return Path(state_home) / 'cachysetup'


class Logger:
	def __init__(self, path: Path | None = None) -> None:
		self._path = path or _default_log_dir()
		self.verbose = False

	@property
	def path(self) -> Path:
		return self._path / 'install.log'

	@property
	def directory(self) -> Path:
		return self._path

	def set_directory(self, path: Path) -> None:
		self._path = path

	def _check_permissions(self) -> None:
		log_file = self.path

		try:
			self._path.mkdir(exist_ok=True, parents=True)
			log_file.touch(exist_ok=True)

			with log_file.open('a') as f:
				f.write('')
		except PermissionError:
			# Fallback to creating the log file in the current folder
			self._path = Path('./').absolute()

			warn(f'Not enough permission to place log file at {log_file}, creating it in {self.path} instead')

	def log(self, level: int, content: str) -> None:
		self._check_permissions()

		with self.path.open('a') as f:
			ts = _timestamp()
			level_name = logging.getLevelName(level)
			f.write(f'[{ts}] - {level_name} - {content}\n')


logger = Logger()


def _supports_color() -> bool:
	"""
	Return True if the running system's terminal supports color,
	and False otherwise.
	Borrowed from:
		https://github.com/django/django/blob/master/django/core/management/color.py#L12
	"""
	supported_platform = sys.platform != 'win32' or 'ANSICON' in os.environ

	# isatty is not always implemented, #6223.
	is_a_tty = hasattr(sys.stdout, 'isatty') and sys.stdout.isatty()
	return supported_platform and is_a_tty


_COLORS = {
	'red': '31',
	'green': '32',
	'yellow': '33',
	'white': '37',
}


def _stylize_output(text: str, fg: str) -> str:
	"""
	Heavily influenced by:
		https://github.com/django/django/blob/ae8338daf34fd746771e0678081999b656177bae/django/utils/termcolors.py#L13

	Wraps text in the ANSI foreground color code of fg.
	"""
	return f'\033[{_COLORS[fg]}m{text}\033[0m'


def _timestamp() -> str:
	now = datetime.now(tz=UTC)
	return now.strftime('%Y-%m-%d %H:%M:%S')


_PREFIXES = {
	logging.INFO: '[INFO]',
	logging.WARNING: '[WARN]',
	logging.ERROR: '[ERROR]',
	logging.DEBUG: '[DEBUG]',
}


def info(*msgs: str) -> None:
	log(*msgs, level=logging.INFO, fg='green')


def debug(*msgs: str) -> None:
	log(*msgs, level=logging.DEBUG, fg='white')


def error(*msgs: str) -> None:
	log(*msgs, level=logging.ERROR, fg='red')


def warn(*msgs: str) -> None:
	log(*msgs, level=logging.WARNING, fg='yellow')


def log(*msgs: str, level: int = logging.INFO, fg: str = 'white') -> None:
	text = ' '.join([str(x) for x in msgs])

	logger.log(level, text)
	Journald.log(text, level=level)

	if level == logging.DEBUG and not logger.verbose:
		return

	prefix = _PREFIXES.get(level, '')

	# colorize the [INFO]/[WARN] tag only
	if _supports_color():
		prefix = _stylize_output(prefix, fg)

	print(f'{prefix} {text}' if prefix else text)
	sys.stdout.flush()
