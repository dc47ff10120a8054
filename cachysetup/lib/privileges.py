import threading
from types import TracebackType
from typing import Self

from .exceptions import RequirementError
from .general import ToolRunner, running_as_root
from .models.config import SetupConfiguration
from .networking import check_online
from .output import debug, info
from .state import SystemStateProvider


def check_preconditions(runner: ToolRunner, state: SystemStateProvider, config: SetupConfiguration) -> None:
	"""
	Hard requirements, checked before anything is touched.
	"""
	if running_as_root():
		raise RequirementError('Do not run as root, the setup elevates with sudo where needed')

	if not state.binary_exists('sudo'):
		raise RequirementError('sudo is required')

	if not check_online(runner, config.network_check_host):
		raise RequirementError(f'No internet connection ({config.network_check_host} is unreachable)')

	info('Asking for sudo privileges...')
	if not runner.run(['sudo', '-v'], capture=False).ok:
		raise RequirementError('Could not obtain sudo privileges')


class SudoKeepAlive:
	"""
	Refreshes the sudo timestamp in the background so long package
	transactions do not stall on a password prompt.
	"""

	def __init__(self, runner: ToolRunner, interval: float = 60) -> None:
		self._runner = runner
		self._interval = interval
		self._stop = threading.Event()
		self._thread: threading.Thread | None = None

	@property
	def running(self) -> bool:
		return self._thread is not None and self._thread.is_alive()

	def _loop(self) -> None:
		while not self._stop.wait(self._interval):
			result = self._runner.run(['sudo', '-n', 'true'])
			debug(f'sudo keep-alive: {result.status.value}')

	def start(self) -> None:
		if self.running:
			return

		self._stop.clear()
		self._thread = threading.Thread(target=self._loop, name='sudo-keepalive', daemon=True)
		self._thread.start()

	def stop(self) -> None:
		self._stop.set()

		if self._thread is not None:
			self._thread.join(timeout=5)
			self._thread = None

	def __enter__(self) -> Self:
		self.start()
		return self

	def __exit__(self, exc_type: type[BaseException] | None, exc_value: BaseException | None, traceback: TracebackType | None) -> None:
		self.stop()
