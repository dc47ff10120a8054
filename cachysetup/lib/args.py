import argparse
import json
from argparse import ArgumentParser
from importlib.metadata import version
from pathlib import Path
from typing import Any

from pydantic import ValidationError
from pydantic.dataclasses import dataclass as p_dataclass

from .exceptions import RequirementError
from .models.config import SetupConfiguration
from .output import logger, warn


@p_dataclass
class Arguments:
	config: Path | None = None
	silent: bool = False
	debug: bool = False
	skip_keepalive: bool = False


class SetupConfigHandler:
	def __init__(self, argv: list[str] | None = None) -> None:
		self._parser: ArgumentParser = self._define_arguments()
		self._args = self._parse_args(argv)
		self._config = self._parse_config()

	@property
	def config(self) -> SetupConfiguration:
		return self._config

	@property
	def args(self) -> Arguments:
		return self._args

	def _get_version(self) -> str:
		try:
			return version('cachysetup')
		except Exception:
			return 'cachysetup version not found'

	def _define_arguments(self) -> ArgumentParser:
		parser = ArgumentParser(prog='cachysetup', formatter_class=argparse.ArgumentDefaultsHelpFormatter)
		parser.add_argument(
			'-v',
			'--version',
			action='version',
			default=False,
			version='%(prog)s ' + self._get_version(),
		)
		parser.add_argument(
			'--config',
			type=Path,
			nargs='?',
			default=None,
			help='JSON file overriding the default setup values',
		)
		parser.add_argument(
			'--silent',
			action='store_true',
			default=False,
			help='Answer every question with its default',
		)
		parser.add_argument(
			'--debug',
			action='store_true',
			default=False,
			help='Print debug messages',
		)
		parser.add_argument(
			'--skip-keepalive',
			action='store_true',
			default=False,
			help='Do not refresh the sudo timestamp in the background',
		)

		return parser

	def _parse_args(self, argv: list[str] | None) -> Arguments:
		argparse_args = vars(self._parser.parse_args(argv))
		argparse_args.pop('version', None)
		args = Arguments(**argparse_args)

		if args.debug:
			logger.verbose = True
			warn(f'--debug mode will also write command output to {logger.directory}')

		return args

	def _parse_config(self) -> SetupConfiguration:
		data: dict[str, Any] = {}

		if self._args.config is not None:
			data = self._read_file(self._args.config)

		try:
			return SetupConfiguration.from_json(data)
		except ValidationError as err:
			raise RequirementError(f'Invalid configuration {self._args.config}:\n{err}')

	def _read_file(self, path: Path) -> dict[str, Any]:
		if not path.exists():
			raise RequirementError(f'Could not find file {path}')

		try:
			data = json.loads(path.read_text())
		except json.JSONDecodeError as err:
			raise RequirementError(f'Configuration file {path} is not valid JSON: {err}')

		if not isinstance(data, dict):
			raise RequirementError(f'Configuration file {path} must contain a JSON object')

		return data
