from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .packages import PackageSet

_ESSENTIAL_PACKAGES = [
	'git',
	'github-cli',
	'chezmoi',
	'nano',
	'micro',
	'fastfetch',
	'starship',
	'wget',
	'ntfs-3g',
	'baobab',
	'file-roller',
	'mpv',
	'transmission-cli',
	'transmission-remote-gtk',
	'neovim',
	'ripgrep',
	'gdu',
	'bottom',
	'nodejs',
	'lazygit',
	'python',
	'tree-sitter',
	'yazi',
	'kitty',
	'zen-browser-bin',
	'telegram-desktop',
	'ttf-jetbrains-mono-nerd',
	'qt5ct',
	'qt6ct',
	'kvantum',
	'kvantum-qt5',
]

_GAMING_PACKAGES = ['cachyos-gaming-meta', 'gamescope', 'goverlay', 'lutris']

_GNOME_PACKAGES = [
	'gdm',
	'gnome-control-center',
	'extension-manager',
	'loupe',
	'resources',
	'gnome-calendar',
	'gnome-weather',
	'ghostty',
]

_RICE_BASE_URL = 'https://github.com/arg9244/cachy-install/raw/main/rice'


class SetupPaths(BaseModel):
	model_config = ConfigDict(frozen=True)

	pacman_conf: Path = Path('/etc/pacman.conf')
	mirrorlist: Path = Path('/etc/pacman.d/mirrorlist')
	fstab: Path = Path('/etc/fstab')
	environment: Path = Path('/etc/environment')
	pacman_db_lock: Path = Path('/var/lib/pacman/db.lck')
	pacman_sync_db: Path = Path('/var/lib/pacman/sync/core.db')
	chezmoi_source: Path = Field(default_factory=lambda: Path.home() / '.local' / 'share' / 'chezmoi')
	state_dir: Path = Field(default_factory=lambda: Path.home() / '.local' / 'state' / 'cachysetup')


class MirrorSettings(BaseModel):
	model_config = ConfigDict(frozen=True)

	latest: int = 20
	protocol: str = 'https'
	sort: str = 'rate'
	fastest: int = 10
	threads: int = 4
	connection_timeout: int = 3
	download_timeout: int = 5
	# upper bound for the whole reflector run, in seconds
	timeout: int = 180
	refresh_interval: int = 24 * 60 * 60

	def reflector_args(self) -> list[str]:
		return [
			'--latest', str(self.latest),
			'--protocol', self.protocol,
			'--sort', self.sort,
			'--fastest', str(self.fastest),
			'--threads', str(self.threads),
			'--connection-timeout', str(self.connection_timeout),
			'--download-timeout', str(self.download_timeout),
		]


class FstabEntry(BaseModel):
	model_config = ConfigDict(frozen=True)

	device: Path
	mountpoint: Path
	fstype: str = 'auto'
	options: str = 'defaults,nofail'
	dump: int = 0
	passno: int = 0

	@property
	def line(self) -> str:
		return f'{self.device} {self.mountpoint} {self.fstype} {self.options} {self.dump} {self.passno}'


class RiceOption(BaseModel):
	model_config = ConfigDict(frozen=True)

	name: str
	url: str


def _package_set(name: str, packages: list[str]) -> PackageSet:
	return PackageSet(name=name, packages=tuple(packages))


class SetupConfiguration(BaseModel):
	"""
	Every value the setup sequence acts on.
	The defaults are the canonical CachyOS post-install values, a JSON
	file given with --config may override any of them.
	"""

	model_config = ConfigDict(frozen=True)

	paths: SetupPaths = Field(default_factory=SetupPaths)
	parallel_downloads: int = Field(default=10, ge=1)
	mirrors: MirrorSettings = Field(default_factory=MirrorSettings)
	essential_packages: PackageSet = Field(default_factory=lambda: _package_set('Essential packages', _ESSENTIAL_PACKAGES))
	gaming_packages: PackageSet = Field(default_factory=lambda: _package_set('Gaming packages', _GAMING_PACKAGES))
	gnome_packages: PackageSet = Field(default_factory=lambda: _package_set('GNOME packages', _GNOME_PACKAGES))
	sddm_packages: PackageSet = Field(default_factory=lambda: _package_set('SDDM', ['sddm']))
	# service -> package that has to be installed for the service to be enabled
	services: dict[str, str] = Field(default_factory=lambda: {'transmission.service': 'transmission-cli'})
	fstab_entries: tuple[FstabEntry, ...] = Field(
		default_factory=lambda: (
			FstabEntry(device=Path('/dev/sda1'), mountpoint=Path('/mnt/D')),
			FstabEntry(device=Path('/dev/sdb3'), mountpoint=Path('/mnt/E')),
			FstabEntry(device=Path('/dev/nvme0n1p3'), mountpoint=Path('/mnt/C')),
		)
	)
	mountpoints: tuple[Path, ...] = (Path('/mnt/C'), Path('/mnt/D'), Path('/mnt/E'))
	environment_defaults: dict[str, str] = Field(
		default_factory=lambda: {
			'AMD_VULKAN_ICD': 'RADV',
			'MESA_SHADER_CACHE_MAX_SIZE': '12G',
		}
	)
	dotfiles_repo: str = 'https://github.com/arg9244/dotfiles.git'
	rices: tuple[RiceOption, ...] = Field(
		default_factory=lambda: tuple(
			RiceOption(name=name, url=f'{_RICE_BASE_URL}/{name}.sh')
			for name in ('caelestia', 'end-4', 'gh0stzk', 'hypryou')
		)
	)
	network_check_host: str = 'archlinux.org'
	keepalive_interval: int = Field(default=60, gt=0)

	@field_validator('environment_defaults')
	@classmethod
	def _valid_keys(cls, value: dict[str, str]) -> dict[str, str]:
		for key in value:
			if not key or '=' in key or key.strip() != key:
				raise ValueError(f'Invalid environment variable name: {key!r}')
		return value

	@classmethod
	def from_json(cls, data: dict[str, Any]) -> 'SetupConfiguration':
		return cls.model_validate(data)
