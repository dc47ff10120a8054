from pathlib import Path

from .context import SetupContext
from .models.step import Step
from .output import info, warn


def dotfiles_step(repo: str, source_dir: Path) -> Step:
	"""
	Applies the dotfiles with chezmoi, once, as the invoking user.
	"""

	def _apply(ctx: SetupContext) -> str:
		warn(f'This will apply dotfiles from {repo} to your home directory')

		result = ctx.runner.run(['chezmoi', 'init', '--apply', repo], capture=False)
		if not result.ok:
			warn(f'You can manually run: chezmoi init --apply {repo}')
		result.check()

		info('Dotfiles applied successfully with chezmoi')
		return f'applied {repo}'

	return Step(
		id='dotfiles:chezmoi',
		description='Setting up dotfiles with chezmoi',
		check=lambda ctx: ctx.state.path_exists(source_dir),
		apply=_apply,
		precondition=lambda ctx: ctx.state.binary_exists('chezmoi'),
	)
