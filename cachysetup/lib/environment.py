from pathlib import Path

from .context import SetupContext
from .models.step import Step


def defines_key(content: str | None, key: str) -> bool:
	if not content:
		return False
	return any(line.startswith(f'{key}=') for line in content.splitlines())


def environment_default_step(path: Path, key: str, value: str) -> Step:
	"""
	Appends KEY=VALUE unless KEY is already defined, an existing value
	is never touched.
	"""

	def _apply(ctx: SetupContext) -> str:
		ctx.runner.append_line(path, f'{key}={value}')
		return f'{key}={value}'

	return Step(
		id=f'environment:{key}',
		description=f'Adding {key}={value} to {path}',
		check=lambda ctx: defines_key(ctx.state.read_file(path), key),
		apply=_apply,
		backup_path=path,
	)


def environment_steps(path: Path, defaults: dict[str, str]) -> list[Step]:
	return [environment_default_step(path, key, value) for key, value in defaults.items()]
