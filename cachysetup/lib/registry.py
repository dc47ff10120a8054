from .dotfiles import dotfiles_step
from .environment import environment_steps
from .fstab import fstab_steps
from .mirror import MirrorListHandler
from .models.config import SetupConfiguration
from .models.packages import PackageSet
from .models.step import Step, StepGroup
from .pacman import database_sync_step, package_step
from .pacman.config import pacman_tuning_steps
from .rice import rice_options
from .services import service_step, service_steps


def default_steps(config: SetupConfiguration) -> list[Step | StepGroup]:
	"""
	The full CachyOS post-install sequence, in the order it runs.
	"""
	paths = config.paths
	reflector = package_step(PackageSet(name='Reflector', packages=('reflector',)))
	mirrors = MirrorListHandler(paths.mirrorlist, config.mirrors)

	items: list[Step | StepGroup] = []
	items += pacman_tuning_steps(paths.pacman_conf, config.parallel_downloads)
	items += [
		reflector,
		mirrors.step(requires=(reflector.id,)),
		database_sync_step(),
		package_step(config.essential_packages),
	]
	items += service_steps(config.services)
	items += fstab_steps(paths.fstab, config.fstab_entries, config.mountpoints)
	items += environment_steps(paths.environment, config.environment_defaults)

	gnome = package_step(config.gnome_packages)
	sddm = package_step(config.sddm_packages)

	items += [
		StepGroup(
			id='gaming',
			question='Do you want to install gaming packages?',
			steps=(package_step(config.gaming_packages),),
		),
		StepGroup(
			id='gnome',
			question='Do you want to install GNOME?',
			steps=(gnome, service_step('gdm.service', 'gdm', requires=(gnome.id,))),
		),
		StepGroup(
			id='sddm',
			question='Do you want to install SDDM?',
			steps=(sddm, service_step('sddm.service', 'sddm', requires=(sddm.id,))),
			exclusive_with=('gnome',),
		),
		dotfiles_step(config.dotfiles_repo, paths.chezmoi_source),
		StepGroup(
			id='rice',
			question='Do you rice?',
			options=rice_options(config.rices),
		),
	]

	return items
