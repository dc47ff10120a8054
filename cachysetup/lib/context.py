import time
from collections.abc import Callable
from dataclasses import dataclass, field

from .backup import BackupManager
from .general import ToolRunner
from .interactions.prompt import PromptGate
from .models.config import SetupConfiguration
from .state import SystemStateProvider


@dataclass(frozen=True)
class SetupContext:
	"""
	Everything a step needs, handed to every check() and apply().
	"""

	config: SetupConfiguration
	state: SystemStateProvider
	runner: ToolRunner
	prompt: PromptGate
	backups: BackupManager
	clock: Callable[[], float] = field(default=time.time)
