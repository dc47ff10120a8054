import os
import time

import pytest
from conftest import SimulatedSystem, ok
from pydantic import ValidationError

from cachysetup.lib.models.packages import PackageSet
from cachysetup.lib.models.step import StepStatus
from cachysetup.lib.mirror import MirrorListHandler
from cachysetup.lib.pacman import PackageInstaller, database_sync_step, package_step
from cachysetup.lib.sequencer import Sequencer


def test_plan_keeps_requested_order() -> None:
	requested = PackageSet(name='Essential packages', packages=('git', 'nano', 'mpv', 'kitty'))

	assert PackageInstaller.plan(requested, {'nano', 'kitty', 'unrelated'}) == ['git', 'mpv']
	assert PackageInstaller.plan(requested, set()) == ['git', 'nano', 'mpv', 'kitty']
	assert PackageInstaller.plan(requested, {'git', 'nano', 'mpv', 'kitty'}) == []


def test_package_set_rejects_duplicates_and_blanks() -> None:
	with pytest.raises(ValidationError, match='Duplicate'):
		PackageSet(name='broken', packages=('git', 'git'))

	with pytest.raises(ValidationError):
		PackageSet(name='broken', packages=('git', '  '))


def test_install_only_missing_packages(system: SimulatedSystem) -> None:
	system.state.packages = {'foo'}
	packages = PackageSet(name='Test packages', packages=('foo', 'bar'))

	result = PackageInstaller(system.context()).install(packages)

	assert result.status == StepStatus.Applied
	assert result.detail == 'installed bar; skipped (already installed) foo'
	assert system.runner.commands('pacman') == [['pacman', '-S', '--needed', '--noconfirm', 'bar']]
	assert ['pacman', '-S', '--needed', '--noconfirm', 'bar'] in system.runner.elevated


def test_install_twice_is_a_noop(system: SimulatedSystem) -> None:
	system.state.packages = {'foo'}
	packages = PackageSet(name='Test packages', packages=('foo', 'bar'))
	installer = PackageInstaller(system.context())

	installer.install(packages)
	second = installer.install(packages)

	assert second.status == StepStatus.Skipped
	assert second.detail == 'already installed: foo, bar'
	assert len(system.runner.commands('pacman')) == 1


def test_failing_transaction_is_soft(system: SimulatedSystem) -> None:
	system.broken_packages = {'bar'}
	packages = PackageSet(name='Test packages', packages=('foo', 'bar'))

	result = PackageInstaller(system.context()).install(packages)

	assert result.status == StepStatus.FailedSoft
	assert 'exit code 1' in result.detail


def test_missing_after_successful_transaction_is_soft(system: SimulatedSystem) -> None:
	# pacman exits 0 but leaves the state untouched
	system.runner.handlers['pacman'] = ok
	packages = PackageSet(name='Test packages', packages=('foo',))

	result = PackageInstaller(system.context()).install(packages)

	assert result.status == StepStatus.FailedSoft
	assert result.detail == 'Test packages still missing after install: foo'


def test_package_step_in_sequence(system: SimulatedSystem) -> None:
	packages = PackageSet(name='Gaming packages', packages=('gamescope', 'lutris'))
	step = package_step(packages)

	first = Sequencer(system.context()).run([step])
	second = Sequencer(system.context()).run([step])

	assert step.id == 'packages:gaming-packages'
	assert first[0].status == StepStatus.Applied
	assert second[0].status == StepStatus.Skipped
	assert {'gamescope', 'lutris'} <= system.state.packages


def test_database_sync_after_ranking_is_kept(system: SimulatedSystem) -> None:
	paths = system.config.paths
	steps = [MirrorListHandler(paths.mirrorlist, system.config.mirrors).step(), database_sync_step()]

	first = Sequencer(system.context()).run(steps)
	second = Sequencer(system.context()).run(steps)

	# the downloaded database is older than the freshly ranked mirror list
	assert paths.pacman_sync_db.stat().st_mtime < paths.mirrorlist.stat().st_mtime
	assert [result.status for result in first] == [StepStatus.Applied, StepStatus.Applied]
	assert [result.status for result in second] == [StepStatus.Skipped, StepStatus.Skipped]
	assert len([cmd for cmd in system.runner.commands('pacman') if '-Syy' in cmd]) == 1


def test_database_sync_follows_new_mirrorlist(system: SimulatedSystem) -> None:
	paths = system.config.paths
	step = database_sync_step()

	Sequencer(system.context()).run([step])
	# the mirror list was ranked again after the last sync
	now = time.time()
	os.utime(paths.state_dir / 'pacman-sync.done', (now - 120, now - 120))
	os.utime(paths.mirrorlist, (now - 60, now - 60))
	results = Sequencer(system.context()).run([step])

	assert results[0].status == StepStatus.Applied
	assert len([cmd for cmd in system.runner.commands('pacman') if '-Syy' in cmd]) == 2
