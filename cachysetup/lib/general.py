from __future__ import annotations

import os
import re
import stat
import subprocess
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .exceptions import CommandTimeout, RequirementError, SysCallError
from .output import debug, logger

# https://stackoverflow.com/a/43627833/929999
_VT100_ESCAPE_REGEX = r'\x1B\[[?0-9;]*[a-zA-Z]'


def clear_vt100_escape_codes_from_str(data: str) -> str:
	return re.sub(_VT100_ESCAPE_REGEX, '', data)


def running_as_root() -> bool:
	return os.geteuid() == 0


class ToolStatus(Enum):
	Success = 'success'
	Timeout = 'timeout'
	Failed = 'failed'
	NotFound = 'not-found'


@dataclass(frozen=True)
class ToolResult:
	cmd: tuple[str, ...]
	status: ToolStatus
	exit_code: int | None = None
	stdout: str = ''
	stderr: str = ''

	@property
	def ok(self) -> bool:
		return self.status == ToolStatus.Success

	def check(self) -> ToolResult:
		"""
		Turns a non-successful result into the matching exception,
		returns the result unchanged otherwise so calls can be chained.
		"""
		match self.status:
			case ToolStatus.Success:
				return self
			case ToolStatus.Timeout:
				raise CommandTimeout(f'{list(self.cmd)} timed out', self.exit_code, worker_log=self.stderr.encode())
			case ToolStatus.NotFound:
				raise RequirementError(f'Binary {self.cmd[0]} does not exist.')
			case ToolStatus.Failed:
				output = (self.stderr or self.stdout)[-500:]
				raise SysCallError(
					f'{list(self.cmd)} exited with abnormal exit code [{self.exit_code}]: {output}',
					self.exit_code,
					worker_log=output.encode(),
				)


class ToolRunner:
	"""
	Uniform wrapper around external binaries.

	Every invocation is logged to the command history, gets an optional hard
	timeout and is mapped into a ToolResult instead of raising, callers decide
	whether a failure matters by calling ToolResult.check().
	"""

	def __init__(self, environment_vars: dict[str, str] | None = None) -> None:
		# define the standard locale for command outputs. For now the C ascii one.
		self.environment_vars = {'LC_ALL': 'C'}
		if environment_vars:
			self.environment_vars.update(environment_vars)

	def run(
		self,
		cmd: list[str],
		timeout: float | None = None,
		input_data: str | bytes | None = None,
		elevated: bool = False,
		capture: bool = True,
	) -> ToolResult:
		if isinstance(input_data, str):
			input_data = input_data.encode()

		if elevated and not running_as_root():
			cmd = ['sudo', *cmd]

		_log_cmd(cmd)

		try:
			proc = subprocess.run(
				cmd,
				input=input_data,
				stdout=subprocess.PIPE if capture else None,
				stderr=subprocess.PIPE if capture else None,
				timeout=timeout,
				env={**os.environ, **self.environment_vars},
			)
		except subprocess.TimeoutExpired as err:
			debug(f'{cmd} killed after {timeout} second(s)')
			return ToolResult(tuple(cmd), ToolStatus.Timeout, stdout=_as_str(err.stdout), stderr=_as_str(err.stderr))
		except FileNotFoundError:
			return ToolResult(tuple(cmd), ToolStatus.NotFound, exit_code=127)

		status = ToolStatus.Success if proc.returncode == 0 else ToolStatus.Failed
		stdout = clear_vt100_escape_codes_from_str(_as_str(proc.stdout))
		stderr = clear_vt100_escape_codes_from_str(_as_str(proc.stderr))

		if status == ToolStatus.Failed:
			debug(f'{cmd} exited with {proc.returncode}: {stderr.strip()[-500:]}')

		return ToolResult(tuple(cmd), status, proc.returncode, stdout, stderr)

	def write_file(self, path: Path, content: str) -> None:
		self.write_bytes(path, content.encode())

	def write_bytes(self, path: Path, content: bytes) -> None:
		"""
		Replaces the content of path byte for byte. Files we may not
		write to are piped thru `sudo tee` instead.
		"""
		if _writable(path):
			path.write_bytes(content)
			return

		self.run(['tee', str(path)], input_data=content, elevated=True).check()

	def append_line(self, path: Path, line: str) -> None:
		try:
			content = path.read_text()
		except FileNotFoundError:
			content = ''

		if content and not content.endswith('\n'):
			content += '\n'

		self.write_file(path, f'{content}{line}\n')

	def copy_file(self, source: Path, destination: Path) -> None:
		if _writable(destination):
			destination.write_bytes(source.read_bytes())
			return

		self.run(['cp', '-p', str(source), str(destination)], elevated=True).check()

	def remove_file(self, path: Path) -> None:
		if _writable(path):
			path.unlink(missing_ok=True)
			return

		self.run(['rm', '-f', str(path)], elevated=True).check()


def _writable(path: Path) -> bool:
	if path.exists():
		return os.access(path, os.W_OK)
	return os.access(path.parent, os.W_OK)


def _as_str(data: str | bytes | None) -> str:
	if data is None:
		return ''
	if isinstance(data, bytes):
		return data.decode('utf-8', errors='backslashreplace')
	return data


def _log_cmd(cmd: list[str]) -> None:
	history_logfile = logger.directory / 'cmd_history.txt'

	change_perm = False
	if history_logfile.exists() is False:
		change_perm = True

	try:
		with history_logfile.open('a') as cmd_log:
			cmd_log.write(f'{time.time()} {cmd}\n')

		if change_perm:
			history_logfile.chmod(stat.S_IRUSR | stat.S_IWUSR | stat.S_IRGRP)
	except (PermissionError, FileNotFoundError):
		# If history_logfile does not exist, ignore the error
		pass
