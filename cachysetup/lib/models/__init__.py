from .config import FstabEntry, MirrorSettings, RiceOption, SetupConfiguration, SetupPaths
from .packages import PackageSet
from .step import BackupRecord, RunResult, Step, StepGroup, StepStatus

__all__ = [
	'BackupRecord',
	'FstabEntry',
	'MirrorSettings',
	'PackageSet',
	'RiceOption',
	'RunResult',
	'SetupConfiguration',
	'SetupPaths',
	'Step',
	'StepGroup',
	'StepStatus',
]
