from collections.abc import Callable

from ..output import debug, warn

_YES = ('y', 'yes')
_NO = ('n', 'no')


class PromptGate:
	"""
	Synchronous yes/no confirmation for optional step groups.

	With silent=True every question is answered with its default and
	nothing is read from stdin.
	"""

	def __init__(self, silent: bool = False, input_func: Callable[[str], str] = input) -> None:
		self.silent = silent
		self._input = input_func

	def ask(self, question: str, default: bool = False) -> bool:
		hint = '[Y/n]' if default else '[y/N]'

		if self.silent:
			debug(f'{question} {hint} -> {"yes" if default else "no"} (silent)')
			return default

		while True:
			try:
				reply = self._input(f'{question} {hint}: ').strip().lower()
			except EOFError:
				warn(f'No input available, answering {"yes" if default else "no"}')
				return default

			if not reply:
				return default
			if reply in _YES:
				return True
			if reply in _NO:
				return False

			warn('y/n only')

	def choose(self, question: str, options: list[str]) -> str | None:
		"""
		Shows a numbered menu and returns the selected option,
		or None for an invalid choice.
		"""
		if self.silent or not options:
			return None

		menu = '\n'.join(f'{nr}. {option}' for nr, option in enumerate(options, start=1))
		print(f'{menu}\n')

		try:
			reply = self._input(f'{question} [1-{len(options)}]: ').strip()
		except EOFError:
			warn('No input available, nothing selected')
			return None

		if reply.isdigit() and 1 <= int(reply) <= len(options):
			return options[int(reply) - 1]

		warn(f'Invalid choice: {reply}')
		return None
