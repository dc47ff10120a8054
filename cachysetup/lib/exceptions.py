class RequirementError(Exception):
	pass


class SysCallError(Exception):
	def __init__(self, message: str, exit_code: int | None = None, worker_log: bytes = b'') -> None:
		super().__init__(message)
		self.message = message
		self.exit_code = exit_code
		self.worker_log = worker_log


class CommandTimeout(SysCallError):
	"""
	Raised when an external command exceeds its time budget and was killed.
	"""


class ServiceException(Exception):
	pass


class PackageError(Exception):
	pass


class MirrorError(Exception):
	pass


class StepError(Exception):
	pass


class DownloadError(Exception):
	pass
