from pathlib import Path

from ..context import SetupContext
from ..exceptions import MirrorError
from ..models.config import MirrorSettings
from ..models.step import Step
from ..output import debug, info, warn


class MirrorListHandler:
	"""
	Ranks mirrors with reflector and replaces the local mirror list with
	the result, provided reflector finished in time and produced servers.
	"""

	def __init__(
		self,
		local_mirrorlist: Path = Path('/etc/pacman.d/mirrorlist'),
		settings: MirrorSettings | None = None,
	) -> None:
		self._local_mirrorlist = local_mirrorlist
		self._settings = settings or MirrorSettings()

	@staticmethod
	def parse_mirrors(mirrorlist: str) -> dict[str, list[str]]:
		"""
		Groups the `Server = ` lines of a mirror list by the `## Region`
		comment above them.
		"""
		mirror_list: dict[str, list[str]] = {}
		current_region = ''

		for line in mirrorlist.splitlines():
			line = line.strip()

			if line.startswith('## '):
				current_region = line.replace('## ', '').strip()
				mirror_list.setdefault(current_region, [])

			if line.startswith('Server = '):
				if not current_region:
					current_region = 'Local'
					mirror_list.setdefault(current_region, [])

				mirror_list[current_region].append(line.removeprefix('Server = '))

		return {region: urls for region, urls in mirror_list.items() if urls}

	@classmethod
	def count_servers(cls, mirrorlist: str) -> int:
		return sum(len(urls) for urls in cls.parse_mirrors(mirrorlist).values())

	@staticmethod
	def generated_by_reflector(mirrorlist: str) -> bool:
		for line in mirrorlist.splitlines():
			if line.startswith('# With:') and 'reflector' in line:
				return True
		return False

	def is_fresh(self, ctx: SetupContext) -> bool:
		content = ctx.state.read_file(self._local_mirrorlist)
		mtime = ctx.state.file_mtime(self._local_mirrorlist)

		if not content or mtime is None:
			return False

		if not self.generated_by_reflector(content) or not self.count_servers(content):
			return False

		return ctx.clock() - mtime < self._settings.refresh_interval

	def rank(self, ctx: SetupContext) -> str:
		info('Finding fastest mirrors with reflector...')
		warn(f'This may take up to {self._settings.timeout} seconds depending on your connection...')

		result = ctx.runner.run(['reflector', *self._settings.reflector_args()], timeout=self._settings.timeout)
		result.check()

		if not (servers := self.count_servers(result.stdout)):
			raise MirrorError('reflector returned an empty mirror list')

		debug(f'Mirrorlist:\n{result.stdout}')
		ctx.runner.write_file(self._local_mirrorlist, result.stdout)
		info(f'Updated mirrorlist saved to {self._local_mirrorlist}')

		return f'{servers} mirrors ranked by {self._settings.sort}'

	def step(self, requires: tuple[str, ...] = ()) -> Step:
		return Step(
			id='mirrors:rank',
			description='Optimizing the mirror list',
			check=self.is_fresh,
			apply=self.rank,
			backup_path=self._local_mirrorlist,
			requires=requires,
		)
