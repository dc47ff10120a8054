from .context import SetupContext
from .exceptions import ServiceException, SysCallError
from .models.step import Step
from .output import info


def enable_service(ctx: SetupContext, service: str) -> None:
	info(f'Enabling service {service}')

	try:
		ctx.runner.run(['systemctl', 'enable', service], elevated=True).check()
	except SysCallError as err:
		raise ServiceException(f'Unable to enable service {service}: {err}')


def service_step(service: str, package: str, requires: tuple[str, ...] = ()) -> Step:
	"""
	Enables a unit at boot, only when the package shipping it is installed.
	"""

	def _apply(ctx: SetupContext) -> str:
		enable_service(ctx, service)
		return f'{service} enabled at boot'

	return Step(
		id=f'service:{service}',
		description=f'Enabling {service} to start at boot',
		check=lambda ctx: ctx.state.service_enabled(service),
		apply=_apply,
		precondition=lambda ctx: package in ctx.state.installed_packages(),
		requires=requires,
	)


def service_steps(services: dict[str, str], requires: tuple[str, ...] = ()) -> list[Step]:
	return [service_step(service, package, requires) for service, package in services.items()]
