import tempfile
from pathlib import Path

from .context import SetupContext
from .models.config import RiceOption
from .models.step import Step
from .networking import fetch_data_from_url
from .output import info


def _marker(ctx: SetupContext, rice: RiceOption) -> Path:
	return ctx.config.paths.state_dir / f'rice-{rice.name}.done'


def run_rice(ctx: SetupContext, rice: RiceOption) -> None:
	"""
	Downloads the installer script right before running it with bash,
	as the invoking user.
	"""
	info(f'Downloading {rice.name} installer from {rice.url}')
	script = fetch_data_from_url(rice.url)

	with tempfile.TemporaryDirectory(prefix='cachysetup-') as tmp:
		script_path = Path(tmp) / f'{rice.name}.sh'
		script_path.write_text(script)

		info(f'Running {rice.name} installer...')
		ctx.runner.run(['bash', str(script_path)], capture=False).check()


def rice_step(rice: RiceOption) -> Step:
	def _apply(ctx: SetupContext) -> str:
		run_rice(ctx, rice)

		marker = _marker(ctx, rice)
		marker.parent.mkdir(parents=True, exist_ok=True)
		marker.write_text(f'{rice.url}\n')

		info(f'{rice.name} installation completed!')
		return f'{rice.name} installed'

	return Step(
		id=f'rice:{rice.name}',
		description=f'Installing the {rice.name} rice',
		check=lambda ctx: ctx.state.path_exists(_marker(ctx, rice)),
		apply=_apply,
	)


def rice_options(rices: tuple[RiceOption, ...]) -> dict[str, tuple[Step, ...]]:
	return {rice.name: (rice_step(rice),) for rice in rices}
