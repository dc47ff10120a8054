import json
from pathlib import Path

import pytest
from conftest import SimulatedSystem, failed

import cachysetup
from cachysetup.lib.exceptions import RequirementError
from cachysetup.lib.general import ToolResult
from cachysetup.lib.interactions import PromptGate
from cachysetup.lib.models.step import StepGroup, StepStatus
from cachysetup.lib.registry import default_steps
from cachysetup.lib.report import count_by_status, summary
from cachysetup.lib.sequencer import Sequencer, order_steps


def test_registry_order(system: SimulatedSystem) -> None:
	items = default_steps(system.config)
	ids = [item.id for item in order_steps(items)]

	assert ids[:5] == ['pacman:parallel-downloads', 'pacman:color', 'pacman:ilovecandy', 'packages:reflector', 'mirrors:rank']
	assert ids.index('pacman:sync') < ids.index('packages:essential-packages') < ids.index('service:transmission.service')
	assert ids[-6:] == ['environment:MESA_SHADER_CACHE_MAX_SIZE', 'gaming', 'gnome', 'sddm', 'dotfiles:chezmoi', 'rice']

	groups = {item.id: item for item in items if isinstance(item, StepGroup)}
	assert groups['sddm'].exclusive_with == ('gnome',)
	assert list(groups['rice'].options) == ['caelestia', 'end-4', 'gh0stzk', 'hypryou']


def test_full_run_is_idempotent(system: SimulatedSystem) -> None:
	first = Sequencer(system.context()).run(default_steps(system.config))
	touched = {path: path.read_bytes() for path in system.config.paths.pacman_conf.parent.iterdir()}
	calls = len(system.runner.calls)

	second = Sequencer(system.context()).run(default_steps(system.config))

	assert not [result for result in first if result.status.failed]
	assert count_by_status(first)[StepStatus.Applied] == len(first) - 4
	assert {result.step_id for result in first if result.status == StepStatus.Skipped} == {'gaming', 'gnome', 'sddm', 'rice'}

	assert [result.status for result in second] == [StepStatus.Skipped] * len(second)
	assert len(system.runner.calls) == calls
	assert {path: path.read_bytes() for path in system.config.paths.pacman_conf.parent.iterdir()} == touched


def test_interrupted_run_resumes(system: SimulatedSystem) -> None:
	system.broken_packages = {'kitty'}
	first = Sequencer(system.context()).run(default_steps(system.config))

	system.broken_packages = set()
	second = Sequencer(system.context()).run(default_steps(system.config))

	failed_first = {result.step_id for result in first if result.status.failed}
	applied_second = {result.step_id for result in second if result.status == StepStatus.Applied}

	assert failed_first == {'packages:essential-packages'}
	# the service waits for the package that ships it
	assert applied_second == {'packages:essential-packages', 'service:transmission.service'}


def test_failed_database_sync_aborts(system: SimulatedSystem) -> None:
	sync = system.runner.handlers['pacman']

	def _pacman(cmd: list[str]) -> ToolResult:
		if '-Syy' in cmd:
			return failed(cmd, stderr='error: failed retrieving file')
		return sync(cmd)

	system.runner.handlers['pacman'] = _pacman

	sequencer = Sequencer(system.context())
	results = sequencer.run(default_steps(system.config))

	assert sequencer.aborted
	assert results[-1].step_id == 'pacman:sync'
	assert results[-1].status == StepStatus.FailedHard
	assert 'packages:essential-packages' not in {result.step_id for result in results}


def test_gnome_declines_sddm_question(system: SimulatedSystem) -> None:
	questions: list[str] = []

	def _answer(question: str) -> str:
		questions.append(question)
		return 'y' if 'GNOME' in question else 'n'

	results = Sequencer(system.context(prompt=PromptGate(input_func=_answer))).run(default_steps(system.config))
	by_id = {result.step_id: result for result in results}

	assert by_id['service:gdm.service'].status == StepStatus.Applied
	assert by_id['sddm'].detail == 'not offered, gnome was selected'
	assert not [question for question in questions if 'SDDM' in question]
	assert 'gdm.service' in system.state.services


def test_summary_lists_results_and_backups(system: SimulatedSystem) -> None:
	ctx = system.context()
	results = Sequencer(ctx).run(default_steps(system.config))

	text = summary(results, ctx.backups.written)

	assert 'mirrors:rank' in text
	assert 'Backups written' in text
	assert f'{system.config.paths.fstab}.backup' in text


@pytest.fixture
def patched_entry(system: SimulatedSystem, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> list[str]:
	config_file = tmp_path / 'config.json'
	config_file.write_text(json.dumps(system.config.model_dump(mode='json')))

	monkeypatch.setattr('cachysetup.ToolRunner', lambda: system.runner)
	monkeypatch.setattr('cachysetup.LocalSystemState', lambda runner: system.state)
	monkeypatch.setattr('cachysetup.check_preconditions', lambda runner, state, config: None)

	return ['--config', str(config_file), '--silent', '--skip-keepalive']


def test_main_exit_codes(system: SimulatedSystem, patched_entry: list[str]) -> None:
	assert cachysetup.main(patched_entry) == 0
	assert cachysetup.main(patched_entry) == 0

	system.runner.handlers['pacman'] = lambda cmd: failed(cmd)
	system.config.paths.pacman_sync_db.unlink()

	assert cachysetup.main(patched_entry) == 1


def test_main_refuses_failed_preconditions(monkeypatch: pytest.MonkeyPatch, patched_entry: list[str]) -> None:
	def _refuse(runner: object, state: object, config: object) -> None:
		raise RequirementError('Do not run as root')

	monkeypatch.setattr('cachysetup.check_preconditions', _refuse)

	assert cachysetup.main(patched_entry) == 1


def test_main_interrupted(monkeypatch: pytest.MonkeyPatch) -> None:
	def _interrupt(argv: list[str] | None = None) -> int:
		raise KeyboardInterrupt

	monkeypatch.setattr('cachysetup.run', _interrupt)

	assert cachysetup.main([]) == 130


def test_main_unexpected_error(monkeypatch: pytest.MonkeyPatch) -> None:
	def _crash(argv: list[str] | None = None) -> int:
		raise ValueError('unexpected')

	monkeypatch.setattr('cachysetup.run', _crash)

	assert cachysetup.main([]) == 1
