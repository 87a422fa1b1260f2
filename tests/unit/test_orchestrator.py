"""Unit tests for the Orchestrator — stage sequencing and failure handling."""

from __future__ import annotations

import pytest

from yubiforge.core.orchestrator import Orchestrator
from yubiforge.errors import UnsupportedPlatformError, UserAbortedError
from yubiforge.models.artifacts import Workflow
from yubiforge.models.stages import StageState
from yubiforge.stages.base import StagePrerequisiteError
from yubiforge.stages.s1_platform import PlatformDetectionStage


@pytest.fixture
def make_orchestrator(config, runner, gate, reporter):
    def _factory(workflow: Workflow = Workflow.SSH) -> Orchestrator:
        return Orchestrator(
            workflow,
            config=config,
            runner=runner,
            gate=gate,
            reporter=reporter,
            run_id="yf-test-run-001",
        )

    return _factory


class TestOrchestrator:
    def test_stage_order(self, make_orchestrator):
        orch = make_orchestrator()
        assert [s.stage_id for s in orch.stages] == [
            "s1_platform",
            "s2_dependencies",
            "s3_preconditions",
            "s4_provision",
            "s5_integration",
        ]

    def test_generated_run_id(self, config, runner, gate, reporter):
        orch = Orchestrator(Workflow.GPG, config=config, runner=runner, gate=gate, reporter=reporter)
        assert orch.run_id.startswith("yf-gpg-")

    def test_first_stage_failure_blocks_the_rest(self, make_orchestrator, monkeypatch):
        monkeypatch.setattr("yubiforge.core.platform.platform.system", lambda: "Plan9")
        orch = make_orchestrator()

        with pytest.raises(UnsupportedPlatformError):
            orch.run()

        states = orch.get_states()
        assert states["s1_platform"] == StageState.FAILED
        assert all(
            states[sid] == StageState.BLOCKED
            for sid in ("s2_dependencies", "s3_preconditions", "s4_provision", "s5_integration")
        )
        assert runner_calls_are_empty(orch)

    def test_unmet_stage_prerequisite_is_recorded_as_failure(
        self, make_orchestrator, debian_host, monkeypatch
    ):
        monkeypatch.setattr(PlatformDetectionStage, "requires", ("artifact",))
        orch = make_orchestrator()

        with pytest.raises(StagePrerequisiteError, match="artifact"):
            orch.run()

        states = orch.get_states()
        assert states["s1_platform"] == StageState.FAILED
        assert states["s5_integration"] == StageState.BLOCKED

    def test_gate_refusal_stops_before_provisioning(
        self, make_orchestrator, debian_host, answers, runner, config
    ):
        answers.extend(["n"])
        orch = make_orchestrator()

        with pytest.raises(UserAbortedError):
            orch.run()

        states = orch.get_states()
        assert states["s2_dependencies"] == StageState.PASSED
        assert states["s3_preconditions"] == StageState.FAILED
        assert states["s4_provision"] == StageState.BLOCKED
        assert not runner.commands("ssh-keygen")
        assert not config.ssh_config_path.exists()

    def test_failure_detail_in_summary(self, make_orchestrator, debian_host, answers, console, output):
        answers.extend(["n"])
        orch = make_orchestrator()
        with pytest.raises(UserAbortedError):
            orch.run()
        console.print(orch.summary_table())
        text = output()
        assert "PIN setup aborted" in text
        assert "blocked by s3_preconditions" in text

    def test_transitions_recorded(self, make_orchestrator, debian_host, answers):
        answers.extend(["n"])
        orch = make_orchestrator()
        with pytest.raises(UserAbortedError):
            orch.run()
        pairs = [(t.stage_id, t.to_state) for t in orch.get_transitions()]
        assert pairs[:2] == [
            ("s1_platform", StageState.RUNNING),
            ("s1_platform", StageState.PASSED),
        ]
        assert ("s3_preconditions", StageState.FAILED) in pairs


def runner_calls_are_empty(orch: Orchestrator) -> bool:
    return orch.services.runner.calls == []
