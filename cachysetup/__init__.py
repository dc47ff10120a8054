"""CachyOS post-install setup - idempotent and resumable."""

import sys
import textwrap
import traceback

from .lib.args import SetupConfigHandler
from .lib.backup import BackupManager
from .lib.context import SetupContext
from .lib.exceptions import RequirementError
from .lib.general import ToolRunner
from .lib.interactions import PromptGate
from .lib.output import debug, error, info, logger, warn
from .lib.privileges import SudoKeepAlive, check_preconditions
from .lib.registry import default_steps
from .lib.report import summary
from .lib.sequencer import Sequencer
from .lib.state import LocalSystemState


def run(argv: list[str] | None = None) -> int:
	try:
		handler = SetupConfigHandler(argv)
	except RequirementError as err:
		error(str(err))
		return 1

	args = handler.args
	config = handler.config
	debug(f'Arguments: {args}')

	runner = ToolRunner()
	state = LocalSystemState(runner)

	try:
		check_preconditions(runner, state, config)
	except RequirementError as err:
		error(str(err))
		return 1

	context = SetupContext(
		config=config,
		state=state,
		runner=runner,
		prompt=PromptGate(silent=args.silent),
		backups=BackupManager(runner),
	)
	sequencer = Sequencer(context)
	keepalive = SudoKeepAlive(runner, interval=config.keepalive_interval)

	info('Starting CachyOS setup...')

	if not args.skip_keepalive:
		keepalive.start()

	try:
		results = sequencer.run(default_steps(config))
	finally:
		keepalive.stop()

	print(summary(results, context.backups.written))

	if sequencer.aborted:
		error(f'Setup aborted, see {logger.path} for details. Re-running continues where it stopped.')
		return 1

	info('CachyOS setup completed successfully!')
	if context.backups.written:
		warn('Backups: ' + ', '.join(str(path) for path in context.backups.written.values()))

	return 0


def _error_message(exc: Exception) -> None:
	err = ''.join(traceback.format_exception(exc))
	error(err)

	text = textwrap.dedent(
		f"""\
		cachysetup experienced the above error.
		The full log is at "{logger.path}", every completed step is skipped when you run it again.
		"""
	)
	warn(text)


def main(argv: list[str] | None = None) -> int:
	rc = 0
	exc = None

	try:
		rc = run(argv)
	except KeyboardInterrupt:
		warn('Interrupted, re-run to continue where it stopped')
		rc = 130
	except Exception as e:
		exc = e
	finally:
		if exc:
			_error_message(exc)
			rc = 1

	return rc


def run_as_a_module() -> None:
	sys.exit(main())


__all__ = [
	'main',
	'run',
	'run_as_a_module',
]
